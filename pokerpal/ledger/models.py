"""Player, session and audit records."""
import json
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from pokerpal.ledger.chips import to_money


def _money_out(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def _json_column(value: Any) -> Any:
    """JSONB arrives from asyncpg as text unless a codec is registered."""
    if isinstance(value, str):
        return json.loads(value)
    return value


def _timestamp_out(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class SessionStatus(str, Enum):
    """Lifecycle position of a session."""
    OPEN = "open"
    COMPLETED = "completed"
    OVERRIDDEN = "overridden"


@dataclass(frozen=True)
class OpenState:
    """Checked in, awaiting check-out. No net winnings yet."""
    status: ClassVar[SessionStatus] = SessionStatus.OPEN


@dataclass(frozen=True)
class CompletedState:
    """Checked out; net winnings derived from end total minus start total."""
    net_winnings: Decimal
    status: ClassVar[SessionStatus] = SessionStatus.COMPLETED


@dataclass(frozen=True)
class OverriddenState:
    """Completed with net winnings forced by an admin."""
    net_winnings: Decimal
    reason: Optional[str] = None
    status: ClassVar[SessionStatus] = SessionStatus.OVERRIDDEN


SessionState = Union[OpenState, CompletedState, OverriddenState]


def state_from_columns(
    is_completed: bool,
    admin_override: bool,
    net_winnings: Optional[Decimal],
    reason: Optional[str] = None,
) -> SessionState:
    """Rebuild the state variant from its stored columns.

    Raises:
        ValueError: If the columns describe an impossible state.
    """
    if not is_completed:
        if net_winnings is not None or admin_override:
            raise ValueError("Open session cannot carry net winnings or an override")
        return OpenState()
    if net_winnings is None:
        raise ValueError("Completed session is missing net winnings")
    if admin_override:
        return OverriddenState(to_money(net_winnings), reason)
    return CompletedState(to_money(net_winnings))


@dataclass
class Player:
    """A player profile."""
    player_id: str
    first_name: str
    last_name: str
    years_of_experience: Optional[int] = None
    level: Optional[str] = None
    major: Optional[str] = None
    is_admin: bool = False
    total_winnings: Decimal = Decimal("0.00")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "player_id": self.player_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "display_name": self.display_name,
            "years_of_experience": self.years_of_experience,
            "level": self.level,
            "major": self.major,
            "is_admin": self.is_admin,
            "total_winnings": float(self.total_winnings),
            "created_at": _timestamp_out(self.created_at),
            "updated_at": _timestamp_out(self.updated_at),
        }

    @classmethod
    def from_record(cls, record) -> "Player":
        """Create from database record."""
        return cls(
            player_id=record["player_id"],
            first_name=record["first_name"],
            last_name=record["last_name"],
            years_of_experience=record["years_of_experience"],
            level=record["level"],
            major=record["major"],
            is_admin=bool(record["is_admin"]),
            total_winnings=to_money(record["total_winnings"] or 0),
            created_at=record["created_at"],
            updated_at=record["updated_at"],
        )


@dataclass
class Session:
    """One check-in / check-out cycle for a player on a date."""
    id: int
    player_id: str
    session_date: date
    start_chips: Decimal
    start_chip_breakdown: dict = field(default_factory=dict)
    state: SessionState = field(default_factory=OpenState)
    end_chips: Optional[Decimal] = None
    end_chip_breakdown: Optional[dict] = None
    start_photo_url: Optional[str] = None
    end_photo_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def status(self) -> SessionStatus:
        return self.state.status

    @property
    def is_completed(self) -> bool:
        return not isinstance(self.state, OpenState)

    @property
    def admin_override(self) -> bool:
        return isinstance(self.state, OverriddenState)

    @property
    def net_winnings(self) -> Optional[Decimal]:
        return getattr(self.state, "net_winnings", None)

    @property
    def override_reason(self) -> Optional[str]:
        return getattr(self.state, "reason", None)

    def state_columns(self) -> dict:
        """Column values that persist ``state``."""
        return {
            "net_winnings": self.net_winnings,
            "is_completed": self.is_completed,
            "admin_override": self.admin_override,
            "override_reason": self.override_reason,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "session_id": self.id,
            "player_id": self.player_id,
            "session_date": self.session_date.isoformat(),
            "status": self.status.value,
            "start_photo_url": self.start_photo_url,
            "start_chips": float(self.start_chips),
            "start_chip_breakdown": self.start_chip_breakdown,
            "end_photo_url": self.end_photo_url,
            "end_chips": _money_out(self.end_chips),
            "end_chip_breakdown": self.end_chip_breakdown,
            "net_winnings": _money_out(self.net_winnings),
            "is_completed": self.is_completed,
            "admin_override": self.admin_override,
            "override_reason": self.override_reason,
            "created_at": _timestamp_out(self.created_at),
            "updated_at": _timestamp_out(self.updated_at),
        }

    @classmethod
    def from_record(cls, record) -> "Session":
        """Create from database record."""
        end_chips = record["end_chips"]
        return cls(
            id=record["session_id"],
            player_id=record["player_id"],
            session_date=record["session_date"],
            start_chips=to_money(record["start_chips"] or 0),
            start_chip_breakdown=_json_column(record["start_chip_breakdown"]) or {},
            state=state_from_columns(
                record["is_completed"],
                record["admin_override"],
                record["net_winnings"],
                record["override_reason"],
            ),
            end_chips=to_money(end_chips) if end_chips is not None else None,
            end_chip_breakdown=_json_column(record["end_chip_breakdown"]),
            start_photo_url=record["start_photo_url"],
            end_photo_url=record["end_photo_url"],
            created_at=record["created_at"],
            updated_at=record["updated_at"],
        )


class AuditAction(str, Enum):
    """Kinds of admin actions written to the audit trail."""
    UPDATE_SESSION = "UPDATE_SESSION"
    ADMIN_OVERRIDE_SESSION = "ADMIN_OVERRIDE_SESSION"
    UPDATE_CHIP_VALUES = "UPDATE_CHIP_VALUES"
    UPDATE_PLAYER_PROFILE = "UPDATE_PLAYER_PROFILE"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable record of an admin action."""
    id: int
    admin_id: str
    action: AuditAction
    target_table: str
    target_id: str
    old_values: Optional[dict]
    new_values: Optional[dict]
    timestamp: datetime

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "log_id": self.id,
            "admin_id": self.admin_id,
            "action": self.action.value,
            "target_table": self.target_table,
            "target_id": self.target_id,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_record(cls, record) -> "AuditLogEntry":
        """Create from database record."""
        return cls(
            id=record["log_id"],
            admin_id=record["admin_id"],
            action=AuditAction(record["action"]),
            target_table=record["target_table"],
            target_id=record["target_id"],
            old_values=_json_column(record["old_values"]),
            new_values=_json_column(record["new_values"]),
            timestamp=record["timestamp"],
        )
