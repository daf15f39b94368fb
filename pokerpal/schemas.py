"""Pydantic request models for the HTTP API."""
from datetime import date
from decimal import Decimal
from typing import Optional, Literal

from pydantic import BaseModel, Field, NonNegativeInt, field_validator, model_validator

from pokerpal.ledger.chips import ChipColor
from pokerpal.ledger.session_manager import SessionType

PLAYER_ID_PATTERN = r"^[A-Za-z0-9]+$"

PlayerLevel = Literal["Beginner", "Intermediate", "Advanced", "Expert"]
ChipBreakdown = dict[ChipColor, NonNegativeInt]


class LoginRequest(BaseModel):
    player_id: str = Field(min_length=3, max_length=50, pattern=PLAYER_ID_PATTERN)


class CreatePlayerRequest(BaseModel):
    player_id: str = Field(min_length=3, max_length=50, pattern=PLAYER_ID_PATTERN)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    years_of_experience: Optional[int] = Field(default=None, ge=0, le=50)
    level: Optional[PlayerLevel] = None
    major: Optional[str] = Field(default=None, max_length=100)


class UpdatePlayerRequest(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    years_of_experience: Optional[int] = Field(default=None, ge=0, le=50)
    level: Optional[PlayerLevel] = None
    major: Optional[str] = Field(default=None, max_length=100)


class CreateSessionRequest(BaseModel):
    """Check-in or check-out.

    ``player_id`` defaults to the authenticated player; only admins may act
    for someone else. A check-in reads the ``start_*`` fields and a check-out
    the ``end_*`` ones; either needs a total or a non-empty breakdown.
    """
    session_date: date
    session_type: SessionType = SessionType.CHECK_IN
    player_id: Optional[str] = Field(default=None, min_length=3, max_length=50, pattern=PLAYER_ID_PATTERN)
    start_chips: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    start_chip_breakdown: Optional[ChipBreakdown] = None
    end_chips: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    end_chip_breakdown: Optional[ChipBreakdown] = None
    photo_url: Optional[str] = Field(default=None, max_length=500)

    @field_validator("session_date")
    @classmethod
    def check_not_in_future(cls, value: date) -> date:
        if value > date.today():
            raise ValueError("Session date cannot be in the future")
        return value

    @model_validator(mode="after")
    def check_chips_supplied(self) -> "CreateSessionRequest":
        if self.chip_total() is None and not self.chip_breakdown():
            prefix = "end" if self.session_type == SessionType.CHECK_OUT else "start"
            raise ValueError(f"Either {prefix}_chips or {prefix}_chip_breakdown is required")
        return self

    def chip_total(self) -> Optional[Decimal]:
        if self.session_type == SessionType.CHECK_OUT:
            return self.end_chips
        return self.start_chips

    def chip_breakdown(self) -> Optional[ChipBreakdown]:
        if self.session_type == SessionType.CHECK_OUT:
            return self.end_chip_breakdown
        return self.start_chip_breakdown


class UpdateSessionRequest(BaseModel):
    end_chips: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    end_chip_breakdown: Optional[ChipBreakdown] = None
    admin_override: Optional[bool] = None
    start_photo_url: Optional[str] = Field(default=None, max_length=500)
    end_photo_url: Optional[str] = Field(default=None, max_length=500)


class OverrideRequest(BaseModel):
    net_winnings: Decimal = Field(decimal_places=2)
    reason: Optional[str] = Field(default=None, max_length=500)


class ChipValuesRequest(BaseModel):
    chip_values: dict[ChipColor, Decimal] = Field(min_length=1)

    @field_validator("chip_values")
    @classmethod
    def check_positive_prices(cls, value: dict[ChipColor, Decimal]) -> dict[ChipColor, Decimal]:
        for color, price in value.items():
            if price <= 0:
                raise ValueError(f"Chip value for {color.value} must be positive")
        return value
