"""JWT token handling."""
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from dataclasses import dataclass

from pokerpal.config import config


@dataclass
class TokenPayload:
    """Decoded token payload."""
    player_id: str
    first_name: str
    last_name: str
    is_admin: bool
    token_type: str
    exp: datetime
    iat: datetime


class TokenError(Exception):
    """Token validation error."""
    pass


def create_access_token(
    player_id: str,
    first_name: str,
    last_name: str,
    is_admin: bool = False,
) -> str:
    """Create an access token bound to a player.

    Args:
        player_id: Player's identity key.
        first_name: Player's first name.
        last_name: Player's last name.
        is_admin: Whether the player holds admin privileges.

    Returns:
        Encoded JWT access token.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": player_id,
        "first_name": first_name,
        "last_name": last_name,
        "is_admin": is_admin,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(hours=config.jwt_expiry_hours),
    }
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def verify_token(token: str, expected_type: Optional[str] = "access") -> TokenPayload:
    """Verify and decode a JWT token.

    Args:
        token: The JWT token to verify.
        expected_type: If provided, verify token is of this type.

    Returns:
        Decoded token payload.

    Raises:
        TokenError: If token is invalid, expired, or wrong type.
    """
    try:
        payload = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[config.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    token_type = payload.get("type")
    if expected_type and token_type != expected_type:
        raise TokenError(f"Expected {expected_type} token, got {token_type}")

    try:
        return TokenPayload(
            player_id=payload["sub"],
            first_name=payload.get("first_name", ""),
            last_name=payload.get("last_name", ""),
            is_admin=bool(payload.get("is_admin", False)),
            token_type=token_type,
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        )
    except KeyError as e:
        raise TokenError(f"Invalid token: missing claim {e}")
