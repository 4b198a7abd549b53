"""FastAPI application and HTTP routes."""
