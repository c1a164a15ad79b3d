"""Workout streak models."""

from datetime import datetime

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator


class StreakState(BaseModel):
    """Consecutive-workout counter tolerant of gaps up to ``rest_days_allowed``."""

    model_config = ConfigDict(frozen=True)

    rest_days_allowed: int = Field(default=2, ge=1)
    current: int = Field(default=0, ge=0)
    longest: int = Field(default=0, ge=0)
    last_activity_at: AwareDatetime | None = None

    @model_validator(mode="after")
    def _longest_covers_current(self) -> "StreakState":
        if self.longest < self.current:
            raise ValueError("longest must be >= current")
        return self


class StreakStatus(BaseModel):
    """Derived streak view for presentation layers. Never stored."""

    rest_days_allowed: int
    current: int
    longest: int
    last_activity_at: datetime | None = None
    is_active: bool
    days_until_expiry: int
    progress: float = Field(ge=0.0, le=1.0)
