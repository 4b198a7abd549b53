"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by area (registration, talent, entries, guests, passes)
and also include common reusable models such as pagination and the error envelope.
"""

from .common import MessageResponse  # noqa: F401
