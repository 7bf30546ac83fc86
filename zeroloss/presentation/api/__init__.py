"""API REST (FastAPI)."""
