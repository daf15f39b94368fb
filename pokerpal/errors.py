"""Error taxonomy shared by the ledger, stores and HTTP layer."""
from typing import Any, Optional


class PokerPalError(Exception):
    """Base class for expected, caller-recoverable failures."""

    kind = "Error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Convert to an error response body."""
        return {"error": self.kind, "message": self.message}


class ValidationError(PokerPalError):
    """Malformed or out-of-range input."""
    kind = "Validation failed"
    status_code = 400


class AuthorizationError(PokerPalError):
    """Missing or insufficient privilege."""
    kind = "Access denied"
    status_code = 403


class NotFoundError(PokerPalError):
    """Unknown player, session, or no active session."""
    kind = "Not found"
    status_code = 404


class ConflictError(PokerPalError):
    """Duplicate resource, e.g. a second open session for the same date."""
    kind = "Conflict"
    status_code = 409

    def __init__(self, message: str, existing: Optional[Any] = None):
        super().__init__(message)
        self.existing = existing

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.existing is not None:
            data["existing_session"] = self.existing.to_dict()
        return data


class StorageError(PokerPalError):
    """Underlying persistence failure. Never retried automatically."""
    kind = "Storage error"
    status_code = 500

    def to_dict(self) -> dict:
        # Driver messages are logged, not returned
        return {"error": self.kind, "message": "An unexpected error occurred"}
