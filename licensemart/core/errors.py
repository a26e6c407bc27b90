"""
Domain exceptions raised by the store, the fulfillment workflow and the API.

The API layer maps each class to an HTTP status (see licensemart.api.server).
"""
from typing import Any, Dict, Optional


class LicenseMartError(RuntimeError):
    """Base class for expected, client-facing failures."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body = {"message": self.message}
        body.update(self.details)
        return body


class ValidationError(LicenseMartError):
    """Malformed or missing input fields."""

    status_code = 400


class NotFoundError(LicenseMartError):
    """A directly requested record does not exist."""

    status_code = 404


class InvalidReferenceError(LicenseMartError):
    """A command referenced a record that does not exist (or does not fit)."""

    status_code = 400


class ConflictError(LicenseMartError):
    """Duplicate username or email at registration."""

    status_code = 409


class AuthenticationError(LicenseMartError):
    """Bad credentials or admin API key."""

    status_code = 401
