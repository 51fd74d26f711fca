"""Allow running runledger as a module: python -m runledger."""

from runledger.cli import main

if __name__ == "__main__":
    main()
