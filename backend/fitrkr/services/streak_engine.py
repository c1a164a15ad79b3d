"""
Workout streak tracker.

A streak continues while consecutive workouts are at most ``rest_days_allowed``
days apart. Gaps are measured as real-valued days (hours included) so a
workout landing exactly on the boundary continues the streak.

Like SubscriptionEngine, every operation is a pure function of the state and
a caller-supplied timestamp. Naive timestamps are read as UTC.
"""

import math
from datetime import UTC, datetime

import structlog

from fitrkr.config import StreakConfig
from fitrkr.constants import SECONDS_PER_DAY
from fitrkr.errors import InvalidRestDays, OutOfOrderActivity
from fitrkr.models.streak import StreakState, StreakStatus

logger = structlog.get_logger(__name__)


def _as_utc(at: datetime) -> datetime:
    if at.utcoffset() is None:
        return at.replace(tzinfo=UTC)
    return at


class StreakEngine:
    """Consecutive-engagement counting with a rest-day tolerance window."""

    def __init__(self, config: StreakConfig | None = None) -> None:
        self.config = config or StreakConfig()

    def _normalize_rest_days(self, rest_days: int) -> int:
        """0 means "use the default"; anything else must be within bounds."""
        if rest_days == 0:
            rest_days = self.config.default_rest_days
        if not self.config.min_rest_days <= rest_days <= self.config.max_rest_days:
            raise InvalidRestDays(
                f"rest days must be between {self.config.min_rest_days}-{self.config.max_rest_days}"
            )
        return rest_days

    def new_streak(self, rest_days: int = 0) -> StreakState:
        return StreakState(rest_days_allowed=self._normalize_rest_days(rest_days))

    def update_rest_days(self, state: StreakState, rest_days: int) -> StreakState:
        """Reconfigure the tolerance window.

        Raises:
            InvalidRestDays: ``rest_days`` is outside the configured bounds.
        """
        return state.model_copy(update={"rest_days_allowed": self._normalize_rest_days(rest_days)})

    def check_state(self, state: StreakState) -> StreakState:
        """Validate a loaded snapshot against the configured rest-day bounds.

        Raises:
            InvalidRestDays: the stored tolerance is outside the bounds.
        """
        if not self.config.min_rest_days <= state.rest_days_allowed <= self.config.max_rest_days:
            raise InvalidRestDays(
                f"stored rest days {state.rest_days_allowed} outside "
                f"{self.config.min_rest_days}-{self.config.max_rest_days}"
            )
        return state

    @staticmethod
    def gap_days(state: StreakState, at: datetime) -> float:
        """Days elapsed since the last activity, as a real number."""
        if state.last_activity_at is None:
            return 0.0
        return (_as_utc(at) - state.last_activity_at).total_seconds() / SECONDS_PER_DAY

    def record_activity(self, state: StreakState, at: datetime) -> StreakState:
        """Count a workout at ``at``.

        A gap within the tolerance extends the streak; a longer gap starts a
        new streak of length 1. Timestamps older than the last activity are
        handled per ``StreakConfig.out_of_order_policy``.

        Raises:
            OutOfOrderActivity: ``at`` predates the last activity and the
                policy is ``"reject"``.
        """
        at = _as_utc(at)
        if state.last_activity_at is None:
            return state.model_copy(
                update={"current": 1, "longest": max(state.longest, 1), "last_activity_at": at}
            )

        if at < state.last_activity_at:
            policy = self.config.out_of_order_policy
            if policy == "reject":
                raise OutOfOrderActivity()
            if policy == "ignore":
                logger.debug(
                    "streak_activity_out_of_order_ignored",
                    at=at,
                    last_activity_at=state.last_activity_at,
                )
                return state

        if self.gap_days(state, at) > state.rest_days_allowed:
            current = 1
        else:
            current = state.current + 1

        return state.model_copy(
            update={
                "current": current,
                "longest": max(state.longest, current),
                "last_activity_at": at,
            }
        )

    def break_streak(self, state: StreakState) -> StreakState:
        """Manual reset. The best streak survives."""
        return state.model_copy(update={"current": 0, "last_activity_at": None})

    # -- Derived queries -------------------------------------------------------

    def is_active(self, state: StreakState, now: datetime) -> bool:
        if state.last_activity_at is None:
            return False
        return self.gap_days(state, now) <= state.rest_days_allowed

    def days_until_expiry(self, state: StreakState, now: datetime) -> int:
        """Whole days of runway left, clamped at 0."""
        if state.last_activity_at is None:
            return 0
        return max(0, state.rest_days_allowed - math.floor(self.gap_days(state, now)))

    def progress(self, state: StreakState, now: datetime) -> float:
        """Decay ratio in [0, 1]: how much of the rest window has been used."""
        if state.last_activity_at is None:
            return 0.0
        gap = self.gap_days(state, now)
        if gap > state.rest_days_allowed:
            return 1.0
        return max(0.0, gap / state.rest_days_allowed)

    def status(self, state: StreakState, now: datetime) -> StreakStatus:
        return StreakStatus(
            rest_days_allowed=state.rest_days_allowed,
            current=state.current,
            longest=state.longest,
            last_activity_at=state.last_activity_at,
            is_active=self.is_active(state, now),
            days_until_expiry=self.days_until_expiry(state, now),
            progress=self.progress(state, now),
        )
