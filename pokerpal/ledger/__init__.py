"""Chip ledger, session records and winnings."""
from .chips import ChipColor, DEFAULT_CHIP_VALUES, total_value, net_winnings, to_money
from .models import (
    Player,
    Session,
    SessionStatus,
    OpenState,
    CompletedState,
    OverriddenState,
    AuditAction,
    AuditLogEntry,
)

__all__ = [
    "ChipColor",
    "DEFAULT_CHIP_VALUES",
    "total_value",
    "net_winnings",
    "to_money",
    "Player",
    "Session",
    "SessionStatus",
    "OpenState",
    "CompletedState",
    "OverriddenState",
    "AuditAction",
    "AuditLogEntry",
]
