"""Shared fixtures: in-memory stores standing in for PostgreSQL."""
import copy
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import date, datetime, timezone

import pytest

from pokerpal.auth.middleware import AuthenticatedUser
from pokerpal.errors import ConflictError, NotFoundError, ValidationError
from pokerpal.ledger.chips import DEFAULT_CHIP_VALUES
from pokerpal.ledger.models import AuditLogEntry, OpenState, Player, Session
from pokerpal.ledger.session_manager import SessionManager
from pokerpal.ledger.winnings import WinningsAggregator
from pokerpal.state.player_store import PROFILE_FIELDS


class FakePlayerStore:
    def __init__(self):
        self.players: dict[str, Player] = {}

    def add(self, player_id, first_name="Test", last_name="Player", is_admin=False):
        self.players[player_id] = Player(player_id, first_name, last_name, is_admin=is_admin)
        return self.players[player_id]

    async def create(self, player_id, first_name, last_name, years_of_experience=None,
                     level=None, major=None, is_admin=False, conn=None):
        if player_id in self.players:
            raise ConflictError("A player with this ID already exists")
        self.players[player_id] = Player(
            player_id, first_name, last_name, years_of_experience, level, major, is_admin
        )
        return replace(self.players[player_id])

    async def get(self, player_id, conn=None):
        player = self.players.get(player_id)
        return replace(player) if player else None

    async def update(self, player_id, updates, conn=None):
        fields = {k: v for k, v in updates.items() if k in PROFILE_FIELDS}
        if not fields:
            raise ValidationError("No valid fields to update")
        if player_id not in self.players:
            raise NotFoundError("No player found with the specified ID")
        self.players[player_id] = replace(self.players[player_id], **fields)
        return replace(self.players[player_id])

    async def set_total_winnings(self, player_id, total, conn=None):
        if player_id not in self.players:
            return False
        self.players[player_id].total_winnings = total
        return True

    async def set_admin(self, player_id, is_admin, conn=None):
        if player_id not in self.players:
            raise NotFoundError(f"Player '{player_id}' not found")
        self.players[player_id].is_admin = is_admin

    async def list_players(self, conn=None):
        ordered = sorted(self.players.values(), key=lambda p: (-p.total_winnings, p.player_id))
        return [replace(p) for p in ordered]

    async def list_ids(self, conn=None):
        return sorted(self.players)


class FakeSessionStore:
    """Enforces one open session per (player, date) like the partial unique index."""

    def __init__(self):
        self.sessions: dict[int, Session] = {}
        self._next_id = 1

    async def create(self, player_id, session_date, start_chips, start_chip_breakdown,
                     start_photo_url=None, conn=None):
        existing = await self.get_open(player_id, session_date)
        if existing is not None:
            raise ConflictError("You already have an incomplete session for this date", existing=existing)
        session = Session(
            id=self._next_id,
            player_id=player_id,
            session_date=session_date,
            start_chips=start_chips,
            start_chip_breakdown=start_chip_breakdown,
            state=OpenState(),
            start_photo_url=start_photo_url,
        )
        self.sessions[session.id] = session
        self._next_id += 1
        return replace(session)

    async def get(self, session_id, conn=None, for_update=False):
        session = self.sessions.get(session_id)
        return replace(session) if session else None

    async def get_open(self, player_id, session_date, conn=None, for_update=False):
        for s in self.sessions.values():
            if s.player_id == player_id and s.session_date == session_date and not s.is_completed:
                return replace(s)
        return None

    async def save(self, session, conn=None):
        self.sessions[session.id] = replace(session)
        return replace(session)

    async def list_for_player(self, player_id, conn=None):
        own = [s for s in self.sessions.values() if s.player_id == player_id]
        return [replace(s) for s in sorted(own, key=lambda s: (s.session_date, s.id), reverse=True)]

    async def list_completed_for_player(self, player_id, conn=None):
        return [replace(s) for s in self.sessions.values() if s.player_id == player_id and s.is_completed]

    async def list_all(self, conn=None):
        return [replace(s) for s in self.sessions.values()]


class FakeChipValueStore:
    def __init__(self, values=None):
        self.values = {c.value: v for c, v in DEFAULT_CHIP_VALUES.items()} if values is None else dict(values)
        self.locks: list = []

    async def get_all(self, conn=None, lock=None):
        self.locks.append(lock)
        return dict(self.values)

    async def update(self, values, conn=None):
        self.values.update(values)
        return len(values)


class FakeAuditStore:
    def __init__(self):
        self.entries: list[AuditLogEntry] = []

    async def record(self, admin_id, action, target_table, target_id, old_values, new_values, conn=None):
        entry = AuditLogEntry(
            id=len(self.entries) + 1,
            admin_id=admin_id,
            action=action,
            target_table=target_table,
            target_id=target_id,
            old_values=old_values,
            new_values=new_values,
            timestamp=datetime.now(timezone.utc),
        )
        self.entries.append(entry)
        return entry

    async def list_entries(self, limit=100, offset=0, conn=None):
        return list(reversed(self.entries))[offset:offset + limit]

    async def count(self, conn=None):
        return len(self.entries)


class FakeDatabase:
    """Transactions yield no connection, so stores fall back to themselves.

    Store state is snapshotted on entry and restored if the block raises,
    mirroring a PostgreSQL rollback.
    """

    def __init__(self, *stores):
        self.stores = stores
        self.transactions = 0
        self.rollbacks = 0

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        snapshots = [copy.deepcopy(store.__dict__) for store in self.stores]
        try:
            yield None
        except Exception:
            self.rollbacks += 1
            for store, snapshot in zip(self.stores, snapshots):
                store.__dict__.clear()
                store.__dict__.update(snapshot)
            raise


@pytest.fixture
def players():
    store = FakePlayerStore()
    store.add("alice01", "Alice", "Smith")
    store.add("bob02", "Bob", "Jones")
    store.add("admin", "Admin", "User", is_admin=True)
    return store


@pytest.fixture
def sessions():
    return FakeSessionStore()


@pytest.fixture
def chip_values():
    return FakeChipValueStore()


@pytest.fixture
def audit():
    return FakeAuditStore()


@pytest.fixture
def database(players, sessions, chip_values, audit):
    return FakeDatabase(players, sessions, chip_values, audit)


@pytest.fixture
def aggregator(players, sessions):
    return WinningsAggregator(players, sessions)


@pytest.fixture
def manager(players, sessions, chip_values, audit, aggregator, database):
    return SessionManager(players, sessions, chip_values, audit, aggregator, database)


@pytest.fixture
def admin_user():
    return AuthenticatedUser("admin", "Admin", "User", is_admin=True, token="admin-token")


@pytest.fixture
def alice_user():
    return AuthenticatedUser("alice01", "Alice", "Smith", is_admin=False, token="alice-token")


@pytest.fixture
def bob_user():
    return AuthenticatedUser("bob02", "Bob", "Jones", is_admin=False, token="bob-token")


@pytest.fixture
def today():
    return date(2024, 3, 15)