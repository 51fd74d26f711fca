"""API routers for the runledger backend."""
