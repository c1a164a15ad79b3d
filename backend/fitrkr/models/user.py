"""
User aggregate and its profile value types.

The aggregate owns identity, settings, stats (streak, lifetime totals, body
metrics) and the subscription. The temporal rules live in the engines under
fitrkr.services; these models only hold state and validate shape.
"""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from fitrkr.constants import (
    BODY_FAT_MAX,
    BODY_FAT_MIN,
    CM_PER_INCH,
    EMAIL_PATTERN,
    INCHES_PER_FOOT,
    KG_TO_LB,
    LB_TO_KG,
    NAME_PART_MIN_LENGTH,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
    USERNAME_PATTERN,
)
from fitrkr.errors import InvalidEmail, InvalidName, InvalidRole, InvalidUsername, InvalidValue
from fitrkr.models.streak import StreakState
from fitrkr.models.subscription import SubscriptionState

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


class WeightUnit(str, Enum):
    KG = "kg"
    LB = "lb"


class HeightUnit(str, Enum):
    CM = "cm"
    FT_IN = "ft_in"


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"
    SYSTEM = "system"

    @classmethod
    def parse(cls, value: str) -> "Theme":
        value = value.strip().lower()
        if value == "":
            return cls.SYSTEM
        try:
            return cls(value)
        except ValueError:
            raise InvalidValue(f"invalid theme: {value!r}") from None


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"

    @classmethod
    def parse(cls, value: str) -> "Visibility":
        value = value.strip().lower()
        if value == "":
            return cls.PUBLIC
        try:
            return cls(value)
        except ValueError:
            raise InvalidValue(f"invalid visibility: {value!r}") from None


# ---------------------------------------------------------------------------
# Identity parsing
# ---------------------------------------------------------------------------


def parse_username(raw: str) -> str:
    """Trim, lower-case and validate a username."""
    username = raw.strip().lower()
    if not username:
        raise InvalidUsername("empty username supplied")
    if len(username) < USERNAME_MIN_LENGTH:
        raise InvalidUsername("username too short")
    if len(username) > USERNAME_MAX_LENGTH:
        raise InvalidUsername("username too long")
    if not USERNAME_PATTERN.match(username):
        raise InvalidUsername("username contains invalid characters")
    return username


def parse_email(raw: str) -> str:
    email = raw.strip()
    if not email:
        raise InvalidEmail("empty email supplied")
    if not EMAIL_PATTERN.match(email):
        raise InvalidEmail()
    return email


def parse_full_name(first_name: str, last_name: str) -> str:
    first_name = first_name.strip()
    last_name = last_name.strip()
    if not first_name or not last_name:
        raise InvalidName("empty name supplied")
    if len(first_name) < NAME_PART_MIN_LENGTH or len(last_name) < NAME_PART_MIN_LENGTH:
        raise InvalidName("name too short")
    return f"{first_name} {last_name}"


def parse_roles(raw: list[str] | None) -> list[Role]:
    """Parse role names. None or an empty list grants the plain user role."""
    if not raw:
        return [Role.USER]
    roles = []
    for name in raw:
        try:
            roles.append(Role(name))
        except ValueError:
            raise InvalidRole(f"invalid role: {name!r}") from None
    return roles


# ---------------------------------------------------------------------------
# Body metrics
# ---------------------------------------------------------------------------


class Weight(BaseModel):
    """A non-negative weight in the unit it was entered in."""

    model_config = ConfigDict(frozen=True)

    value: float = Field(ge=0)
    unit: WeightUnit = WeightUnit.KG

    def to_kg(self) -> float:
        if self.unit == WeightUnit.KG:
            return self.value
        return self.value * LB_TO_KG

    def to_lb(self) -> float:
        if self.unit == WeightUnit.LB:
            return self.value
        return self.value * KG_TO_LB


class Height(BaseModel):
    """A non-negative height. FT_IN values are stored as total inches."""

    model_config = ConfigDict(frozen=True)

    value: float = Field(ge=0)
    unit: HeightUnit = HeightUnit.CM

    @classmethod
    def from_ft_in(cls, feet: int, inches: float) -> "Height":
        return cls(value=feet * INCHES_PER_FOOT + inches, unit=HeightUnit.FT_IN)

    def to_cm(self) -> float:
        if self.unit == HeightUnit.CM:
            return self.value
        return self.value * CM_PER_INCH

    def to_ft_in(self) -> tuple[int, float]:
        total_inches = self.value
        if self.unit == HeightUnit.CM:
            total_inches = self.value / CM_PER_INCH
        feet = int(total_inches // INCHES_PER_FOOT)
        return feet, total_inches - feet * INCHES_PER_FOOT


class Totals(BaseModel):
    """Lifetime workout totals. Volume is always kept in kg."""

    model_config = ConfigDict(frozen=True)

    workouts: int = Field(default=0, ge=0)
    volume_kg: float = Field(default=0.0, ge=0)
    minutes: int = Field(default=0, ge=0)

    def record_workout(self, volume: Weight | None = None, minutes: int = 0) -> "Totals":
        return Totals(
            workouts=self.workouts + 1,
            volume_kg=self.volume_kg + (volume.to_kg() if volume else 0.0),
            minutes=self.minutes + minutes,
        )


# ---------------------------------------------------------------------------
# Aggregate parts
# ---------------------------------------------------------------------------


class Settings(BaseModel):
    """Per-user display and notification preferences."""

    model_config = ConfigDict(frozen=True)

    weight_unit: WeightUnit = WeightUnit.KG
    height_unit: HeightUnit = HeightUnit.CM
    theme: Theme = Theme.SYSTEM
    visibility: Visibility = Visibility.PUBLIC
    email_notifications: bool = True
    push_notifications: bool = True
    workout_reminders: bool = True
    streak_reminders: bool = True
    updated_at: datetime | None = None


class Stats(BaseModel):
    model_config = ConfigDict(frozen=True)

    streak: StreakState = Field(default_factory=StreakState)
    totals: Totals = Field(default_factory=Totals)
    weight: Weight | None = None
    height: Height | None = None
    body_fat_percent: float | None = Field(default=None, ge=BODY_FAT_MIN, le=BODY_FAT_MAX)
    updated_at: datetime | None = None


class User(BaseModel):
    """The owning aggregate. Persisted as a whole snapshot by the repository."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    username: str
    full_name: str
    email: str
    roles: list[Role] = Field(default_factory=lambda: [Role.USER])
    stats: Stats = Field(default_factory=Stats)
    subscription: SubscriptionState
    settings: Settings = Field(default_factory=Settings)
    created_at: AwareDatetime
    updated_at: AwareDatetime
