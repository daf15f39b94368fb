"""Leaderboard ranking and player statistics."""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from pokerpal.config import config
from pokerpal.errors import NotFoundError, ValidationError
from pokerpal.ledger.chips import to_money
from pokerpal.ledger.models import Player, Session
from pokerpal.state.player_store import player_store, PlayerStore
from pokerpal.state.session_store import session_store, SessionStore
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0.00")


class Timeframe(str, Enum):
    """Window of session dates included in statistics."""
    ALL = "all"
    MONTH = "month"
    WEEK = "week"
    TODAY = "today"


class LeaderboardSort(str, Enum):
    """Leaderboard ordering."""
    WINNINGS = "winnings"
    SESSIONS = "sessions"
    RECENT = "recent"


@dataclass
class PlayerStats:
    """A player's results over completed sessions in a timeframe."""
    total_sessions: int = 0
    period_winnings: Decimal = ZERO
    winning_sessions: int = 0
    losing_sessions: int = 0
    win_rate: Decimal = ZERO
    avg_winnings: Decimal = ZERO
    biggest_win: Decimal = ZERO
    biggest_loss: Decimal = ZERO
    last_session_date: Optional[date] = None
    last_session_winnings: Decimal = ZERO

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "total_sessions": self.total_sessions,
            "period_winnings": float(self.period_winnings),
            "winning_sessions": self.winning_sessions,
            "losing_sessions": self.losing_sessions,
            "win_rate": float(self.win_rate),
            "avg_winnings": float(self.avg_winnings),
            "biggest_win": float(self.biggest_win),
            "biggest_loss": float(self.biggest_loss),
            "last_session_date": self.last_session_date.isoformat() if self.last_session_date else None,
            "last_session_winnings": float(self.last_session_winnings),
        }


@dataclass
class LeaderboardEntry:
    """A ranked player."""
    rank: int
    player: Player
    stats: PlayerStats

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "rank": self.rank,
            "player_id": self.player.player_id,
            "first_name": self.player.first_name,
            "last_name": self.player.last_name,
            "display_name": self.player.display_name,
            "total_winnings": float(self.player.total_winnings),
            **self.stats.to_dict(),
        }


def timeframe_start(timeframe: Timeframe, today: date) -> Optional[date]:
    """First session date inside the timeframe; None means unbounded.

    ``week`` is the last seven days including today, ``month`` the current
    calendar month.
    """
    timeframe = Timeframe(timeframe)
    if timeframe == Timeframe.TODAY:
        return today
    if timeframe == Timeframe.WEEK:
        return today - timedelta(days=6)
    if timeframe == Timeframe.MONTH:
        return today.replace(day=1)
    return None


def filter_by_timeframe(sessions: Iterable[Session], timeframe: Timeframe, today: date) -> list[Session]:
    start = timeframe_start(timeframe, today)
    return [s for s in sessions if start is None or s.session_date >= start]


def player_stats(
    sessions: Iterable[Session],
    timeframe: Timeframe = Timeframe.ALL,
    today: Optional[date] = None,
) -> PlayerStats:
    """Statistics over a player's completed sessions within ``timeframe``."""
    today = today or date.today()
    completed = [s for s in sessions if s.is_completed]
    in_window = filter_by_timeframe(completed, timeframe, today)
    if not in_window:
        return PlayerStats()

    results = [s.net_winnings for s in in_window]
    total = to_money(sum(results, ZERO))
    winning = sum(1 for r in results if r > 0)
    losing = sum(1 for r in results if r < 0)
    latest = max(in_window, key=lambda s: (s.session_date, s.id))

    return PlayerStats(
        total_sessions=len(in_window),
        period_winnings=total,
        winning_sessions=winning,
        losing_sessions=losing,
        win_rate=to_money(Decimal(winning) * 100 / len(in_window)),
        avg_winnings=to_money(total / len(in_window)),
        biggest_win=max(max(results), ZERO),
        biggest_loss=min(min(results), ZERO),
        last_session_date=latest.session_date,
        last_session_winnings=latest.net_winnings,
    )


def _sort_key(sort: LeaderboardSort):
    if sort == LeaderboardSort.SESSIONS:
        return lambda item: (-item[1].total_sessions, item[0].player_id)
    if sort == LeaderboardSort.RECENT:
        return lambda item: (
            -(item[1].last_session_date or date.min).toordinal(),
            item[0].player_id,
        )
    return lambda item: (-item[0].total_winnings, item[0].player_id)


def rank_players(
    players: Iterable[Player],
    stats: dict[str, PlayerStats],
    sort: LeaderboardSort = LeaderboardSort.WINNINGS,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[LeaderboardEntry], int]:
    """Order players and cut one page.

    Ranks are 1-based positions in the full ordering, so they continue
    across pages. Ties break on player ID.

    Returns:
        The page of entries and the total number of ranked players.
    """
    rows = [(p, stats.get(p.player_id, PlayerStats())) for p in players]
    rows.sort(key=_sort_key(LeaderboardSort(sort)))
    page = rows[offset:offset + limit]
    entries = [
        LeaderboardEntry(rank=offset + i + 1, player=p, stats=s)
        for i, (p, s) in enumerate(page)
    ]
    return entries, len(rows)


def summary_stats(players: list[Player], sessions: Iterable[Session]) -> dict:
    """Totals across the whole leaderboard."""
    total_winnings = to_money(sum((p.total_winnings for p in players), ZERO))
    completed = sum(1 for s in sessions if s.is_completed)
    top = max(players, key=lambda p: p.total_winnings, default=None)

    return {
        "total_players": len(players),
        "active_players": sum(1 for p in players if p.total_winnings != 0),
        "total_winnings": float(total_winnings),
        "total_sessions": completed,
        "avg_winnings_per_player": float(to_money(total_winnings / len(players))) if players else 0.0,
        "top_player": {
            "name": top.display_name,
            "winnings": float(top.total_winnings),
        } if top else None,
    }


def format_standings_table(entries: list[LeaderboardEntry]) -> str:
    """Format leaderboard entries as a text table.

    Args:
        entries: Ranked leaderboard entries.

    Returns:
        Formatted table string.
    """
    if not entries:
        return "No players recorded."

    lines = [
        "| #   | Player               | Sessions | Winnings   |",
        "|-----|----------------------|----------|------------|",
    ]

    for e in entries:
        winnings = e.player.total_winnings
        winnings_str = f"+{winnings}" if winnings >= 0 else str(winnings)
        lines.append(
            f"| {e.rank:<3} | {e.player.display_name:<20} | {e.stats.total_sessions:>8} | {winnings_str:>10} |"
        )

    return "\n".join(lines)


def _group_by_player(sessions: Iterable[Session]) -> dict[str, list[Session]]:
    grouped = defaultdict(list)
    for s in sessions:
        grouped[s.player_id].append(s)
    return grouped


class Leaderboard:
    """Builds leaderboard views from stored players and sessions."""

    def __init__(
        self,
        players: Optional[PlayerStore] = None,
        sessions: Optional[SessionStore] = None,
        max_limit: int = 100,
    ):
        self.players = players or player_store
        self.sessions = sessions or session_store
        self.max_limit = max_limit

    async def get_leaderboard(
        self,
        limit: int = 50,
        offset: int = 0,
        timeframe: Timeframe = Timeframe.ALL,
        sort: LeaderboardSort = LeaderboardSort.WINNINGS,
        today: Optional[date] = None,
    ) -> dict:
        """A ranked page of the leaderboard.

        Raises:
            ValidationError: If ``limit`` or ``offset`` is out of range.
        """
        if not 1 <= limit <= self.max_limit:
            raise ValidationError(f"Limit must be between 1 and {self.max_limit}")
        if offset < 0:
            raise ValidationError("Offset cannot be negative")

        players = await self.players.list_players()
        by_player = _group_by_player(await self.sessions.list_all())
        stats = {
            p.player_id: player_stats(by_player.get(p.player_id, []), timeframe, today)
            for p in players
        }
        entries, total = rank_players(players, stats, sort, limit, offset)

        return {
            "leaderboard": [e.to_dict() for e in entries],
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "has_more": offset + limit < total,
            },
            "metadata": {
                "timeframe": Timeframe(timeframe).value,
                "sort": LeaderboardSort(sort).value,
                "total_players": total,
            },
        }

    async def get_summary(self) -> dict:
        """Leaderboard-wide totals."""
        players = await self.players.list_players()
        return summary_stats(players, await self.sessions.list_all())

    async def get_player_position(self, player_id: str, today: Optional[date] = None) -> dict:
        """A player's rank plus all-time, month and week statistics.

        Raises:
            NotFoundError: If the player is not on the leaderboard.
        """
        players = await self.players.list_players()
        by_player = _group_by_player(await self.sessions.list_all())
        all_time = {p.player_id: player_stats(by_player.get(p.player_id, []), Timeframe.ALL, today) for p in players}
        entries, total = rank_players(players, all_time, LeaderboardSort.WINNINGS, limit=len(players))

        entry = next((e for e in entries if e.player.player_id == player_id), None)
        if entry is None:
            raise NotFoundError("Player not found in leaderboard")

        own = by_player.get(player_id, [])
        return {
            "player": entry.to_dict(),
            "stats": {
                "all_time": all_time[player_id].to_dict(),
                "this_month": player_stats(own, Timeframe.MONTH, today).to_dict(),
                "this_week": player_stats(own, Timeframe.WEEK, today).to_dict(),
            },
            "leaderboard_info": {
                "total_players": total,
                "percentile": round((1 - (entry.rank - 1) / total) * 100),
            },
        }


leaderboard = Leaderboard(max_limit=config.leaderboard_max_limit)
