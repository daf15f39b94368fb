"""Authentication module."""
from .jwt_handler import create_access_token, verify_token, TokenError, TokenPayload
from .roles import require_admin, ensure_self_or_admin

__all__ = [
    "create_access_token",
    "verify_token",
    "TokenError",
    "TokenPayload",
    "require_admin",
    "ensure_self_or_admin",
]
