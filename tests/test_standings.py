"""Tests for leaderboard ranking and statistics."""
from datetime import date
from decimal import Decimal

import pytest

from pokerpal.admin.standings import (
    Leaderboard,
    LeaderboardEntry,
    LeaderboardSort,
    PlayerStats,
    Timeframe,
    format_standings_table,
    player_stats,
    rank_players,
    summary_stats,
    timeframe_start,
)
from pokerpal.errors import NotFoundError, ValidationError
from pokerpal.ledger.models import CompletedState, OpenState, OverriddenState, Player, Session

TODAY = date(2024, 3, 15)


def _session(id, day, net=None, player_id="alice01"):
    state = OpenState() if net is None else CompletedState(Decimal(net))
    return Session(id=id, player_id=player_id, session_date=day, start_chips=Decimal("100.00"), state=state)


class TestTimeframe:
    """Test timeframe boundaries."""

    def test_boundaries(self):
        assert timeframe_start(Timeframe.ALL, TODAY) is None
        assert timeframe_start(Timeframe.TODAY, TODAY) == TODAY
        assert timeframe_start(Timeframe.WEEK, TODAY) == date(2024, 3, 9)
        assert timeframe_start(Timeframe.MONTH, TODAY) == date(2024, 3, 1)

    def test_accepts_strings(self):
        assert timeframe_start("month", TODAY) == date(2024, 3, 1)


class TestPlayerStats:
    """Test per-player statistics."""

    def test_all_time(self):
        sessions = [
            _session(1, date(2024, 1, 10), "50.00"),
            _session(2, date(2024, 3, 10), "-20.00"),
            _session(3, date(2024, 3, 14), "10.00"),
            _session(4, date(2024, 3, 15)),
        ]

        stats = player_stats(sessions, Timeframe.ALL, TODAY)

        assert stats.total_sessions == 3
        assert stats.period_winnings == Decimal("40.00")
        assert stats.winning_sessions == 2
        assert stats.losing_sessions == 1
        assert stats.win_rate == Decimal("66.67")
        assert stats.avg_winnings == Decimal("13.33")
        assert stats.biggest_win == Decimal("50.00")
        assert stats.biggest_loss == Decimal("-20.00")
        assert stats.last_session_date == date(2024, 3, 14)
        assert stats.last_session_winnings == Decimal("10.00")

    def test_week_window(self):
        """Test seven days back is outside the week and six days back inside."""
        sessions = [
            _session(1, date(2024, 3, 8), "50.00"),
            _session(2, date(2024, 3, 9), "5.00"),
        ]

        stats = player_stats(sessions, Timeframe.WEEK, TODAY)

        assert stats.total_sessions == 1
        assert stats.period_winnings == Decimal("5.00")

    def test_overridden_counts(self):
        sessions = [Session(id=1, player_id="alice01", session_date=TODAY, start_chips=Decimal("0"),
                            state=OverriddenState(Decimal("7.00"), "fix"))]

        assert player_stats(sessions, Timeframe.TODAY, TODAY).period_winnings == Decimal("7.00")

    def test_only_wins_has_no_loss(self):
        stats = player_stats([_session(1, TODAY, "5.00")], Timeframe.ALL, TODAY)

        assert stats.biggest_loss == Decimal("0.00")
        assert stats.biggest_win == Decimal("5.00")

    def test_empty(self):
        assert player_stats([], Timeframe.ALL, TODAY) == PlayerStats()


def _players():
    return [
        Player("alice01", "Alice", "Smith", total_winnings=Decimal("40.00")),
        Player("bob02", "Bob", "Jones", total_winnings=Decimal("100.00")),
        Player("carol03", "Carol", "White", total_winnings=Decimal("40.00")),
        Player("dave04", "Dave", "Brown", total_winnings=Decimal("-10.00")),
    ]


class TestRankPlayers:
    """Test leaderboard ordering."""

    def test_by_winnings_with_tiebreak(self):
        entries, total = rank_players(_players(), {}, LeaderboardSort.WINNINGS)

        assert total == 4
        assert [e.player.player_id for e in entries] == ["bob02", "alice01", "carol03", "dave04"]
        assert [e.rank for e in entries] == [1, 2, 3, 4]

    def test_ranks_continue_across_pages(self):
        entries, total = rank_players(_players(), {}, LeaderboardSort.WINNINGS, limit=2, offset=2)

        assert total == 4
        assert [(e.rank, e.player.player_id) for e in entries] == [(3, "carol03"), (4, "dave04")]

    def test_by_sessions(self):
        stats = {"dave04": PlayerStats(total_sessions=9), "alice01": PlayerStats(total_sessions=2)}

        entries, _ = rank_players(_players(), stats, LeaderboardSort.SESSIONS)

        assert [e.player.player_id for e in entries][:2] == ["dave04", "alice01"]

    def test_by_recent(self):
        stats = {
            "alice01": PlayerStats(total_sessions=1, last_session_date=date(2024, 3, 1)),
            "carol03": PlayerStats(total_sessions=1, last_session_date=date(2024, 3, 14)),
        }

        entries, _ = rank_players(_players(), stats, "recent")

        assert [e.player.player_id for e in entries] == ["carol03", "alice01", "bob02", "dave04"]


class TestSummaryStats:
    """Test leaderboard-wide totals."""

    def test_summary(self):
        sessions = [_session(1, TODAY, "5.00"), _session(2, TODAY)]

        summary = summary_stats(_players(), sessions)

        assert summary["total_players"] == 4
        assert summary["active_players"] == 4
        assert summary["total_winnings"] == 170.0
        assert summary["total_sessions"] == 1
        assert summary["avg_winnings_per_player"] == 42.5
        assert summary["top_player"] == {"name": "Bob Jones", "winnings": 100.0}

    def test_no_players(self):
        summary = summary_stats([], [])

        assert summary["top_player"] is None
        assert summary["avg_winnings_per_player"] == 0.0


class TestFormatStandingsTable:
    """Test text table output."""

    def test_empty(self):
        assert format_standings_table([]) == "No players recorded."

    def test_rows(self):
        entries = [
            LeaderboardEntry(1, Player("bob02", "Bob", "Jones", total_winnings=Decimal("100.00")),
                             PlayerStats(total_sessions=3)),
            LeaderboardEntry(2, Player("dave04", "Dave", "Brown", total_winnings=Decimal("-10.00")),
                             PlayerStats(total_sessions=1)),
        ]

        table = format_standings_table(entries)

        assert "Bob Jones" in table
        assert "+100.00" in table
        assert "-10.00" in table
        assert len(table.splitlines()) == 4


class TestLeaderboard:
    """Test leaderboard views over stores."""

    @pytest.fixture
    def board(self, players, sessions):
        players.players["alice01"].total_winnings = Decimal("15.00")
        players.players["bob02"].total_winnings = Decimal("-5.00")
        sessions.sessions[1] = _session(1, date(2024, 3, 14), "15.00")
        sessions.sessions[2] = _session(2, date(2024, 2, 1), "-5.00", player_id="bob02")
        return Leaderboard(players, sessions, max_limit=100)

    @pytest.mark.asyncio
    async def test_get_leaderboard(self, board):
        result = await board.get_leaderboard(limit=2, today=TODAY)

        assert [row["player_id"] for row in result["leaderboard"]] == ["alice01", "admin"]
        assert result["pagination"] == {"total": 3, "limit": 2, "offset": 0, "has_more": True}
        assert result["metadata"]["timeframe"] == "all"

    @pytest.mark.asyncio
    async def test_month_stats(self, board):
        result = await board.get_leaderboard(timeframe=Timeframe.MONTH, today=TODAY)

        rows = {row["player_id"]: row for row in result["leaderboard"]}
        assert rows["alice01"]["total_sessions"] == 1
        assert rows["bob02"]["total_sessions"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, 101])
    async def test_limit_out_of_range(self, board, limit):
        with pytest.raises(ValidationError):
            await board.get_leaderboard(limit=limit)

    @pytest.mark.asyncio
    async def test_negative_offset(self, board):
        with pytest.raises(ValidationError):
            await board.get_leaderboard(offset=-1)

    @pytest.mark.asyncio
    async def test_summary(self, board):
        summary = await board.get_summary()

        assert summary["total_winnings"] == 10.0
        assert summary["total_sessions"] == 2

    @pytest.mark.asyncio
    async def test_player_position(self, board):
        result = await board.get_player_position("bob02", today=TODAY)

        assert result["player"]["rank"] == 3
        assert result["stats"]["all_time"]["total_sessions"] == 1
        assert result["stats"]["this_month"]["total_sessions"] == 0
        assert result["leaderboard_info"] == {"total_players": 3, "percentile": 33}

    @pytest.mark.asyncio
    async def test_player_position_unknown(self, board):
        with pytest.raises(NotFoundError):
            await board.get_player_position("ghost99", today=TODAY)
