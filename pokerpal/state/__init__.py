"""Persistence stores."""
from .player_store import PlayerStore, player_store
from .session_store import SessionStore, session_store
from .chip_value_store import ChipValueStore, chip_value_store
from .audit_store import AuditStore, audit_store

__all__ = [
    "PlayerStore",
    "player_store",
    "SessionStore",
    "session_store",
    "ChipValueStore",
    "chip_value_store",
    "AuditStore",
    "audit_store",
]
