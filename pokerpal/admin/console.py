"""Admin console views: audit trail, player overview, statistics."""
from collections import Counter
from typing import Any, Optional

from pokerpal.auth.roles import require_admin
from pokerpal.config import config
from pokerpal.errors import ValidationError
from pokerpal.ledger.chips import to_money
from pokerpal.ledger.models import SessionStatus
from pokerpal.state.audit_store import audit_store, AuditStore
from pokerpal.state.chip_value_store import chip_value_store, ChipValueStore
from pokerpal.state.player_store import player_store, PlayerStore
from pokerpal.state.session_store import session_store, SessionStore


class AdminConsole:
    """Read-only admin views. Every method requires an admin ``actor``."""

    def __init__(
        self,
        players: Optional[PlayerStore] = None,
        sessions: Optional[SessionStore] = None,
        chip_values: Optional[ChipValueStore] = None,
        audit: Optional[AuditStore] = None,
        max_audit_limit: int = config.audit_log_max_limit,
    ):
        self.players = players or player_store
        self.sessions = sessions or session_store
        self.chip_values = chip_values or chip_value_store
        self.audit = audit or audit_store
        self.max_audit_limit = max_audit_limit

    @require_admin
    async def list_audit_logs(self, limit: int = 100, offset: int = 0, *, actor: Any) -> dict:
        """A page of the audit trail, newest first.

        Raises:
            ValidationError: If ``limit`` exceeds the maximum or paging is negative.
        """
        if limit > self.max_audit_limit:
            raise ValidationError(f"Limit cannot exceed {self.max_audit_limit}")
        if limit < 1 or offset < 0:
            raise ValidationError("Limit must be positive and offset non-negative")

        entries = await self.audit.list_entries(limit=limit, offset=offset)
        total = await self.audit.count()
        return {
            "audit_logs": [e.to_dict() for e in entries],
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "has_more": offset + limit < total,
            },
        }

    @require_admin
    async def list_players(self, *, actor: Any) -> dict:
        """Every player with session counts by state."""
        players = await self.players.list_players()
        counts: dict[str, Counter] = {}
        for s in await self.sessions.list_all():
            counts.setdefault(s.player_id, Counter())[s.status] += 1

        rows = []
        for p in players:
            c = counts.get(p.player_id, Counter())
            completed = c[SessionStatus.COMPLETED] + c[SessionStatus.OVERRIDDEN]
            rows.append({
                **p.to_dict(),
                "total_sessions": completed + c[SessionStatus.OPEN],
                "completed_sessions": completed,
                "incomplete_sessions": c[SessionStatus.OPEN],
                "overridden_sessions": c[SessionStatus.OVERRIDDEN],
            })

        return {
            "players": rows,
            "total": len(rows),
            "active_players": sum(1 for r in rows if r["total_sessions"] > 0),
            "admin_players": sum(1 for p in players if p.is_admin),
        }

    @require_admin
    async def stats(self, *, actor: Any) -> dict:
        """System-wide statistics for the admin dashboard."""
        players = await self.players.list_players()
        sessions = await self.sessions.list_all()
        chip_values = await self.chip_values.get_all()
        recent = await self.audit.list_entries(limit=50)

        by_status = Counter(s.status for s in sessions)
        completed = by_status[SessionStatus.COMPLETED] + by_status[SessionStatus.OVERRIDDEN]
        overridden = by_status[SessionStatus.OVERRIDDEN]
        total_winnings = to_money(sum((p.total_winnings for p in players), to_money(0)))

        return {
            "players": {
                "total": len(players),
                "active": sum(1 for p in players if p.total_winnings != 0),
                "admins": sum(1 for p in players if p.is_admin),
            },
            "sessions": {
                "total": len(sessions),
                "completed": completed,
                "incomplete": by_status[SessionStatus.OPEN],
                "overridden": overridden,
                "override_rate": round(overridden / len(sessions) * 100, 1) if sessions else 0.0,
            },
            "winnings": {
                "total": float(total_winnings),
                "average_per_player": float(to_money(total_winnings / len(players))) if players else 0.0,
                "average_per_session": float(to_money(total_winnings / completed)) if completed else 0.0,
            },
            "chip_values": {
                "total_colors": len(chip_values),
                "values": {color: float(v) for color, v in chip_values.items()},
            },
            "audit": {
                "recent_actions": len(recent),
                "last_action": recent[0].timestamp.isoformat() if recent else None,
            },
        }


admin_console = AdminConsole()
