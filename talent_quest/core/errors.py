from __future__ import annotations

from typing import Any, Optional


class TalentQuestError(Exception):
    """Base class for domain errors mapped to HTTP responses by the API layer."""

    status_code: int = 500
    error_type: str = "domain_error"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(TalentQuestError):
    """Requested record does not exist."""

    status_code = 404
    error_type = "not_found"


class BadRequestError(TalentQuestError):
    """Request is well-formed but cannot be processed as given."""

    status_code = 400
    error_type = "bad_request"


class RegistrationError(TalentQuestError):
    """Contestant or guest registration could not be completed."""

    status_code = 500
    error_type = "registration_error"
