"""Player profile management."""
from typing import Any, Optional

from pokerpal.auth.roles import ensure_self_or_admin
from pokerpal.db.connection import db
from pokerpal.errors import NotFoundError
from pokerpal.ledger.models import AuditAction, Player
from pokerpal.state.audit_store import audit_store, AuditStore
from pokerpal.state.player_store import player_store, PlayerStore, PROFILE_FIELDS
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)


class ProfileManager:
    """Profile reads and edits with ownership checks."""

    def __init__(
        self,
        players: Optional[PlayerStore] = None,
        audit: Optional[AuditStore] = None,
        database: Any = None,
    ):
        self.players = players or player_store
        self.audit = audit or audit_store
        self.db = database or db

    async def create_player(self, player_id: str, first_name: str, last_name: str, **profile: Any) -> Player:
        """Register a new player. New players are never admins.

        Raises:
            ConflictError: If the player ID is taken.
        """
        fields = {k: v for k, v in profile.items() if k in PROFILE_FIELDS}
        return await self.players.create(player_id, first_name, last_name, **fields)

    async def get_player(self, player_id: str, *, actor: Any) -> Player:
        """Raises:
            AuthorizationError: If the actor is neither the player nor an admin.
            NotFoundError: If the player does not exist.
        """
        ensure_self_or_admin(actor, player_id, "profile")
        player = await self.players.get(player_id)
        if player is None:
            raise NotFoundError("No player found with the specified ID")
        return player

    async def update_player(self, player_id: str, updates: dict, *, actor: Any) -> Player:
        """Edit names and experience metadata.

        An admin editing someone else's profile is audited.

        Raises:
            AuthorizationError: If the actor is neither the player nor an admin.
            NotFoundError: If the player does not exist.
            ValidationError: If no editable field is given.
        """
        ensure_self_or_admin(actor, player_id, "profile")

        async with self.db.transaction() as conn:
            existing = await self.players.get(player_id, conn=conn)
            if existing is None:
                raise NotFoundError("No player found with the specified ID")

            player = await self.players.update(player_id, updates, conn=conn)

            if actor.is_admin and actor.player_id != player_id:
                changed = [k for k in PROFILE_FIELDS if k in updates]
                await self.audit.record(
                    actor.player_id,
                    AuditAction.UPDATE_PLAYER_PROFILE,
                    "players",
                    player_id,
                    old_values={k: getattr(existing, k) for k in changed},
                    new_values={k: getattr(player, k) for k in changed},
                    conn=conn,
                )

        return player


profile_manager = ProfileManager()
