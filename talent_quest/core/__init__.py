"""
Core application utilities for settings, logging, security and FastAPI dependencies.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with correlation ids
- Password hashing and session tokens
- Dependency helpers (session user, role checks, storage and mail clients)
"""
