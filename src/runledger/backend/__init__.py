"""HTTP backend and persistence for runledger."""
