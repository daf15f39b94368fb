"""Authorization helpers."""
from functools import wraps
from typing import Callable, Any

from pokerpal.errors import AuthorizationError


def require_admin(func: Callable) -> Callable:
    """Decorator for service methods that take a keyword-only ``actor``.

    The actor's admin flag comes from the auth layer; it is checked here,
    not re-derived.
    """
    @wraps(func)
    async def wrapper(self, *args: Any, actor: Any = None, **kwargs: Any) -> Any:
        if actor is None or not actor.is_admin:
            raise AuthorizationError("Admin privileges required")
        return await func(self, *args, actor=actor, **kwargs)
    return wrapper


def ensure_self_or_admin(actor: Any, player_id: str, what: str = "data") -> None:
    """Allow access to a player's own records, or to anything for admins.

    Raises:
        AuthorizationError: Otherwise.
    """
    if actor is None:
        raise AuthorizationError("Authentication required")
    if actor.is_admin or actor.player_id == player_id:
        return
    raise AuthorizationError(f"You can only access your own {what}")
