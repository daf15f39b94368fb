"""Lifetime winnings aggregation."""
from decimal import Decimal
from typing import Any, Iterable, Optional

from pokerpal.errors import NotFoundError
from pokerpal.ledger.chips import to_money
from pokerpal.ledger.models import Session
from pokerpal.state.player_store import player_store, PlayerStore
from pokerpal.state.session_store import session_store, SessionStore
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)


def sum_net_winnings(sessions: Iterable[Session]) -> Decimal:
    """Sum of net winnings over completed sessions; open sessions are skipped."""
    return to_money(sum(
        (s.net_winnings for s in sessions if s.is_completed),
        Decimal("0"),
    ))


class WinningsAggregator:
    """Recomputes ``Player.total_winnings`` from scratch.

    There is no incremental path: every call re-sums the player's completed
    sessions, which makes it idempotent.
    """

    def __init__(
        self,
        players: Optional[PlayerStore] = None,
        sessions: Optional[SessionStore] = None,
    ):
        self.players = players or player_store
        self.sessions = sessions or session_store

    async def recalculate(self, player_id: str, conn: Any = None) -> Decimal:
        """Recompute and store one player's lifetime winnings.

        Args:
            player_id: Player to recompute.
            conn: Connection of the caller's transaction, if any.

        Returns:
            The new total.

        Raises:
            NotFoundError: If the player does not exist.
        """
        completed = await self.sessions.list_completed_for_player(player_id, conn=conn)
        total = sum_net_winnings(completed)

        if not await self.players.set_total_winnings(player_id, total, conn=conn):
            raise NotFoundError(f"Player '{player_id}' not found")

        logger.info(
            f"Recalculated winnings for {player_id}: {total} over {len(completed)} sessions"
        )
        return total

    async def recalculate_all(self, conn: Any = None) -> int:
        """Recompute every player's winnings.

        Returns:
            Number of players recalculated.
        """
        player_ids = await self.players.list_ids(conn=conn)
        for player_id in player_ids:
            await self.recalculate(player_id, conn=conn)
        logger.info(f"Recalculated winnings for {len(player_ids)} players")
        return len(player_ids)


winnings_aggregator = WinningsAggregator()
