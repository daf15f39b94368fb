"""Session check-in / check-out lifecycle."""
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from pokerpal.auth.roles import require_admin, ensure_self_or_admin
from pokerpal.db.connection import db
from pokerpal.errors import ConflictError, NotFoundError, ValidationError
from pokerpal.ledger.chips import (
    Number,
    net_winnings,
    normalize_breakdown,
    resolve_total,
    to_money,
)
from pokerpal.ledger.models import (
    AuditAction,
    CompletedState,
    OverriddenState,
    Session,
)
from pokerpal.ledger.winnings import WinningsAggregator
from pokerpal.state.audit_store import audit_store, AuditStore
from pokerpal.state.chip_value_store import chip_value_store, ChipValueStore
from pokerpal.state.player_store import player_store, PlayerStore
from pokerpal.state.session_store import session_store, SessionStore
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset({
    "end_chips",
    "end_chip_breakdown",
    "admin_override",
    "start_photo_url",
    "end_photo_url",
})

NO_REASON = "No reason provided"


class SessionType(str, Enum):
    """Which half of the lifecycle a create request performs."""
    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"


@dataclass
class OverrideResult:
    """Outcome of an admin override."""
    session: Session
    old_winnings: Decimal
    new_winnings: Decimal
    reason: str

    @property
    def difference(self) -> Decimal:
        return self.new_winnings - self.old_winnings

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "session": self.session.to_dict(),
            "old_winnings": float(self.old_winnings),
            "new_winnings": float(self.new_winnings),
            "difference": float(self.difference),
            "reason": self.reason,
        }


def complete_session(session: Session, end_total: Decimal, breakdown: Optional[Mapping]) -> Session:
    """Return ``session`` checked out at ``end_total``.

    Net winnings are always end minus start, so a previous override is
    replaced by the computed value.
    """
    return replace(
        session,
        end_chips=end_total,
        end_chip_breakdown=normalize_breakdown(breakdown),
        state=CompletedState(net_winnings(end_total, session.start_chips)),
    )


class SessionManager:
    """Runs the OPEN -> COMPLETED state machine per (player, date).

    Every mutation is one database transaction; winnings are recalculated
    inside it whenever a session reaches (or changes within) the completed
    state.
    """

    def __init__(
        self,
        players: Optional[PlayerStore] = None,
        sessions: Optional[SessionStore] = None,
        chip_values: Optional[ChipValueStore] = None,
        audit: Optional[AuditStore] = None,
        aggregator: Optional[WinningsAggregator] = None,
        database: Any = None,
    ):
        self.players = players or player_store
        self.sessions = sessions or session_store
        self.chip_values = chip_values or chip_value_store
        self.audit = audit or audit_store
        self.aggregator = aggregator or WinningsAggregator(self.players, self.sessions)
        self.db = database or db

    async def check_in(
        self,
        player_id: str,
        session_date: date,
        start_chips: Optional[Number] = None,
        start_chip_breakdown: Optional[Mapping] = None,
        photo_url: Optional[str] = None,
    ) -> Session:
        """Open a session for a player on a date.

        Args:
            player_id: Player checking in.
            session_date: Calendar date of the session.
            start_chips: Declared starting total, used when no breakdown is given.
            start_chip_breakdown: Chip color to count; priced with the current table.
            photo_url: Opaque reference to the check-in photo.

        Returns:
            The new open session.

        Raises:
            NotFoundError: If the player does not exist.
            ConflictError: If an open session already exists for that date.
        """
        async with self.db.transaction() as conn:
            if await self.players.get(player_id, conn=conn) is None:
                raise NotFoundError("Player profile not found")

            existing = await self.sessions.get_open(player_id, session_date, conn=conn)
            if existing is not None:
                logger.warning(f"Duplicate check-in for {player_id} on {session_date}")
                raise ConflictError(
                    "You already have an incomplete session for this date",
                    existing=existing,
                )

            prices = await self.chip_values.get_all(conn=conn, lock="share")
            start_total = resolve_total(start_chips, start_chip_breakdown, prices)

            session = await self.sessions.create(
                player_id,
                session_date,
                start_total,
                normalize_breakdown(start_chip_breakdown),
                start_photo_url=photo_url,
                conn=conn,
            )

        logger.info(f"Check-in: {player_id} on {session_date} with {start_total} (session {session.id})")
        return session

    async def check_out(
        self,
        player_id: str,
        session_date: date,
        end_chips: Optional[Number] = None,
        end_chip_breakdown: Optional[Mapping] = None,
        photo_url: Optional[str] = None,
    ) -> Session:
        """Close the open session for a player on a date.

        Raises:
            NotFoundError: If there is no open session for that date.
        """
        async with self.db.transaction() as conn:
            session = await self.sessions.get_open(player_id, session_date, conn=conn, for_update=True)
            if session is None:
                logger.warning(f"Check-out without check-in: {player_id} on {session_date}")
                raise NotFoundError("No incomplete session found for this date. Please check in first.")

            prices = await self.chip_values.get_all(conn=conn, lock="share")
            end_total = resolve_total(end_chips, end_chip_breakdown, prices)

            session = complete_session(session, end_total, end_chip_breakdown)
            if photo_url:
                session.end_photo_url = photo_url
            session = await self.sessions.save(session, conn=conn)

            await self.aggregator.recalculate(player_id, conn=conn)

        logger.info(
            f"Check-out: {player_id} on {session_date} with {end_total}, net {session.net_winnings}"
        )
        return session

    async def create_session(
        self,
        player_id: str,
        session_date: date,
        session_type: SessionType = SessionType.CHECK_IN,
        total: Optional[Number] = None,
        breakdown: Optional[Mapping] = None,
        photo_url: Optional[str] = None,
    ) -> Session:
        """Single entry point for both halves of the lifecycle."""
        if SessionType(session_type) == SessionType.CHECK_IN:
            return await self.check_in(player_id, session_date, total, breakdown, photo_url)
        return await self.check_out(player_id, session_date, total, breakdown, photo_url)

    async def update_session(self, session_id: int, updates: dict, *, actor: Any) -> Session:
        """General-purpose correction of a session.

        Supplying an end breakdown or end total completes the session (or
        recomputes it) exactly like a check-out. ``admin_override`` may only
        be toggled on a completed session. An admin editing someone else's
        session is audited.

        Raises:
            NotFoundError: If the session does not exist.
            AuthorizationError: If the actor neither owns the session nor is an admin.
            ValidationError: If no updatable field is given or the override
                flag is set on an open session.
        """
        fields = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
        if not fields:
            raise ValidationError("No valid fields to update")

        async with self.db.transaction() as conn:
            existing = await self.sessions.get(session_id, conn=conn, for_update=True)
            if existing is None:
                raise NotFoundError("No session found with the specified ID")
            ensure_self_or_admin(actor, existing.player_id, "sessions")

            session = replace(existing)
            if fields.get("start_photo_url"):
                session.start_photo_url = fields["start_photo_url"]
            if fields.get("end_photo_url"):
                session.end_photo_url = fields["end_photo_url"]

            breakdown = fields.get("end_chip_breakdown")
            if breakdown or fields.get("end_chips") is not None:
                prices = await self.chip_values.get_all(conn=conn, lock="share")
                end_total = resolve_total(fields.get("end_chips"), breakdown, prices)
                session = complete_session(session, end_total, breakdown)

            if "admin_override" in fields:
                session = self._apply_override_flag(session, bool(fields["admin_override"]))

            session = await self.sessions.save(session, conn=conn)

            if session.is_completed:
                await self.aggregator.recalculate(session.player_id, conn=conn)

            if actor.is_admin and actor.player_id != existing.player_id:
                await self.audit.record(
                    actor.player_id,
                    AuditAction.UPDATE_SESSION,
                    "sessions",
                    str(session_id),
                    old_values=existing.to_dict(),
                    new_values=session.to_dict(),
                    conn=conn,
                )

        logger.info(f"Updated session {session_id} ({', '.join(sorted(fields))}) by {actor.player_id}")
        return session

    @staticmethod
    def _apply_override_flag(session: Session, flag: bool) -> Session:
        if not session.is_completed:
            raise ValidationError("Only completed sessions can be marked as overridden")
        if flag and not session.admin_override:
            return replace(session, state=OverriddenState(session.net_winnings))
        if not flag and session.admin_override:
            return replace(session, state=CompletedState(session.net_winnings))
        return session

    @require_admin
    async def override_session(
        self,
        session_id: int,
        new_net_winnings: Number,
        reason: Optional[str] = None,
        *,
        actor: Any,
    ) -> OverrideResult:
        """Force a session's net winnings (admin only).

        The session becomes completed and overridden regardless of its
        previous state. The player's winnings are recalculated and the change
        is written to the audit trail.

        Raises:
            AuthorizationError: If the actor is not an admin.
            NotFoundError: If the session does not exist.
        """
        reason = reason or NO_REASON
        new_winnings = to_money(new_net_winnings)

        async with self.db.transaction() as conn:
            existing = await self.sessions.get(session_id, conn=conn, for_update=True)
            if existing is None:
                raise NotFoundError("No session found with the specified ID")

            old_winnings = existing.net_winnings if existing.net_winnings is not None else to_money(0)
            session = await self.sessions.save(
                replace(existing, state=OverriddenState(new_winnings, reason)),
                conn=conn,
            )
            await self.aggregator.recalculate(existing.player_id, conn=conn)

            await self.audit.record(
                actor.player_id,
                AuditAction.ADMIN_OVERRIDE_SESSION,
                "sessions",
                str(session_id),
                old_values={
                    "net_winnings": float(old_winnings),
                    "admin_override": existing.admin_override,
                    "is_completed": existing.is_completed,
                },
                new_values={
                    "net_winnings": float(new_winnings),
                    "admin_override": True,
                    "reason": reason,
                },
                conn=conn,
            )

        logger.info(
            f"Override: session {session_id} net {old_winnings} -> {new_winnings} "
            f"by {actor.player_id} ({reason})"
        )
        return OverrideResult(session, old_winnings, new_winnings, reason)

    async def get_session(self, session_id: int) -> Session:
        """Look up a session by ID.

        Raises:
            NotFoundError: If it does not exist.
        """
        session = await self.sessions.get(session_id)
        if session is None:
            raise NotFoundError("No session found with the specified ID")
        return session

    async def get_active_session(self, player_id: str, session_date: date) -> Optional[Session]:
        """The open session for a player on a date, or None."""
        return await self.sessions.get_open(player_id, session_date)

    async def get_player_sessions(self, player_id: str) -> list[Session]:
        """All of a player's sessions, newest first.

        Raises:
            NotFoundError: If the player does not exist.
        """
        if await self.players.get(player_id) is None:
            raise NotFoundError("Player not found")
        return await self.sessions.list_for_player(player_id)

    async def recalculate_player_winnings(self, player_id: str) -> Decimal:
        """Recompute one player's lifetime winnings in its own transaction."""
        async with self.db.transaction() as conn:
            return await self.aggregator.recalculate(player_id, conn=conn)


session_manager = SessionManager()
