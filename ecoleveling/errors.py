"""
ecoleveling.errors — Domain Error Taxonomy
===========================================

Services raise these; the FastAPI app renders them as
``{"error": <code>, "message": <text>}`` with :attr:`status_code`.
"""

from __future__ import annotations


class EcoError(Exception):
    """Base class for every error the core raises on purpose."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str = "Internal error") -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error_code, "message": self.message}


class ValidationError(EcoError):
    """Malformed or missing required input."""
    status_code = 400
    error_code = "validation_error"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class Unauthorized(EcoError):
    """No valid session where one is required."""
    status_code = 401
    error_code = "unauthorized"

    def __init__(self, message: str = "Not logged in") -> None:
        super().__init__(message)


class Forbidden(EcoError):
    """Authenticated, but lacking moderator or ownership rights."""
    status_code = 403
    error_code = "forbidden"

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFound(EcoError):
    status_code = 404
    error_code = "not_found"


class Conflict(EcoError):
    """Duplicate display name, or a post that is no longer pending."""
    status_code = 409
    error_code = "conflict"


class StorageError(EcoError):
    status_code = 500
    error_code = "storage_error"

    def __init__(self, message: str = "Storage failure") -> None:
        super().__init__(message)
