"""Bearer token authentication."""
from datetime import datetime, timezone
from typing import Optional
from dataclasses import dataclass

from pokerpal.auth.jwt_handler import verify_token, TokenError
from pokerpal.state.player_store import player_store, PlayerStore
from pokerpal.state.redis_client import redis_client, RedisClient
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AuthenticatedUser:
    """Authenticated player context."""
    player_id: str
    first_name: str
    last_name: str
    is_admin: bool
    token: str


def token_fingerprint(token: str) -> str:
    """Signature tail used as the revocation key."""
    return token[-32:]


class AuthMiddleware:
    """Resolves bearer tokens to players."""

    def __init__(
        self,
        players: Optional[PlayerStore] = None,
        redis: Optional[RedisClient] = None,
    ):
        self.players = players or player_store
        self.redis = redis or redis_client

    async def authenticate(self, token: str) -> AuthenticatedUser:
        """Authenticate a request using its JWT.

        The player row is re-read so deleted players are rejected and admin
        changes take effect without a new token.

        Raises:
            TokenError: If authentication fails.
        """
        payload = verify_token(token, expected_type="access")

        if await self.redis.is_revoked(token_fingerprint(token)):
            raise TokenError("Token has been revoked")

        player = await self.players.get(payload.player_id)
        if player is None:
            raise TokenError("User not found")

        return AuthenticatedUser(
            player_id=player.player_id,
            first_name=player.first_name,
            last_name=player.last_name,
            is_admin=player.is_admin,
            token=token,
        )

    async def revoke_token(self, token: str) -> None:
        """Revoke a token (logout)."""
        try:
            payload = verify_token(token)
        except TokenError:
            # Already unusable
            return
        ttl = int((payload.exp - datetime.now(timezone.utc)).total_seconds())
        await self.redis.revoke(token_fingerprint(token), ttl)
        logger.info(f"Token revoked for player {payload.player_id}")


auth_middleware = AuthMiddleware()
