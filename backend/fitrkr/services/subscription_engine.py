"""
Subscription lifecycle state machine.

Pure transitions: every method takes the current SubscriptionState plus an
explicit ``now`` and returns a new state (or a derived value). No I/O, no
clock sampling. Period lengths come from SubscriptionConfig.

    Basic   --upgrade(PREMIUM, period)-->  Premium (auto_renew, expires_at set)
    Premium --process_expiry, due, auto_renew-->      Premium (expiry extended)
    Premium --process_expiry, due, not auto_renew-->  Basic
    Premium --cancel-->  Premium (auto_renew off, cancelled_at set)

Callers must serialise mutations of one subscription; two transitions computed
from the same loaded snapshot race as last-write-wins.
"""

import math
from datetime import datetime, timedelta

import structlog

from fitrkr.config import SubscriptionConfig
from fitrkr.constants import SECONDS_PER_DAY
from fitrkr.errors import AlreadyOnBasic, InvalidUpgradeTarget, UpgradeNotAvailable
from fitrkr.models.subscription import (
    BasicPlan,
    BillingPeriod,
    Currency,
    Payment,
    Plan,
    PremiumPlan,
    SubscriptionState,
    SubscriptionStatus,
)

logger = structlog.get_logger(__name__)


class SubscriptionEngine:
    """Enforces plan transitions and billing-period arithmetic."""

    def __init__(self, config: SubscriptionConfig | None = None) -> None:
        self.config = config or SubscriptionConfig()

    def new_subscription(self, now: datetime) -> SubscriptionState:
        """Basic subscription for a freshly created account."""
        return SubscriptionState(started_at=now, created_at=now, updated_at=now)

    def duration(self, period: BillingPeriod) -> timedelta:
        if period == BillingPeriod.MONTHLY:
            return timedelta(days=self.config.monthly_days)
        return timedelta(days=self.config.yearly_days)

    # -- Transitions ---------------------------------------------------------

    def upgrade(
        self,
        state: SubscriptionState,
        target: Plan,
        period: BillingPeriod,
        now: datetime,
    ) -> SubscriptionState:
        """Move a Basic subscription to Premium.

        Raises:
            UpgradeNotAvailable: the subscription is not on Basic.
            InvalidUpgradeTarget: ``target`` is not Premium.
        """
        if state.is_premium:
            raise UpgradeNotAvailable()
        if target != Plan.PREMIUM:
            raise InvalidUpgradeTarget()

        return state.model_copy(
            update={
                "plan_state": PremiumPlan(
                    billing_period=period,
                    expires_at=now + self.duration(period),
                ),
                "auto_renew": True,
                "updated_at": now,
            }
        )

    def extend_expiry(
        self, state: SubscriptionState, delta: timedelta, now: datetime
    ) -> SubscriptionState:
        """Push the expiry forward from its current value. No-op on Basic."""
        if not isinstance(state.plan_state, PremiumPlan):
            return state
        plan_state = state.plan_state.model_copy(
            update={"expires_at": state.plan_state.expires_at + delta}
        )
        return state.model_copy(update={"plan_state": plan_state, "updated_at": now})

    def renew(self, state: SubscriptionState, now: datetime) -> SubscriptionState:
        """Extend by one billing period. Does not capture payment."""
        if state.billing_period is None:
            return state
        return self.extend_expiry(state, self.duration(state.billing_period), now)

    def process_payment(
        self,
        state: SubscriptionState,
        amount: float,
        currency: Currency,
        now: datetime,
    ) -> SubscriptionState:
        """Record a payment and, on Premium, stack one more billing period.

        The extension is applied to the current expiry rather than ``now`` so
        early payments accumulate. ``amount`` is stored unvalidated.
        """
        paid = state.model_copy(
            update={
                "last_payment": Payment(at=now, amount=amount, currency=currency),
                "updated_at": now,
            }
        )
        return self.renew(paid, now)

    def process_expiry(self, state: SubscriptionState, now: datetime) -> SubscriptionState:
        """Resolve a due expiry: renew when auto-renewing, otherwise lapse to Basic."""
        expires_at = state.expires_at
        if expires_at is None or now < expires_at:
            return state

        if state.auto_renew:
            logger.debug("subscription_renewed", expired_at=expires_at)
            return self.renew(state, now)

        logger.debug("subscription_lapsed", expired_at=expires_at)
        # cancelled_at, last_payment and trial_ends_at are history; keep them
        return state.model_copy(update={"plan_state": BasicPlan(), "updated_at": now})

    def cancel(self, state: SubscriptionState, now: datetime) -> SubscriptionState:
        """Decline renewal. The plan stays Premium until the expiry lapses it.

        Raises:
            AlreadyOnBasic: there is nothing to cancel.
        """
        if state.plan == Plan.BASIC:
            raise AlreadyOnBasic()
        return state.model_copy(
            update={"auto_renew": False, "cancelled_at": now, "updated_at": now}
        )

    def start_trial(
        self, state: SubscriptionState, now: datetime, days: int | None = None
    ) -> SubscriptionState:
        """Open a trial window. Independent of the plan; grants nothing by itself."""
        if days is None:
            days = self.config.trial_days
        return state.model_copy(
            update={"trial_ends_at": now + timedelta(hours=days * 24), "updated_at": now}
        )

    # -- Derived queries -------------------------------------------------------

    def time_remaining(self, state: SubscriptionState, now: datetime) -> timedelta:
        """Time until expiry; negative once expired, zero without an expiry."""
        if state.expires_at is None:
            return timedelta(0)
        return state.expires_at - now

    def days_until_expiry(self, state: SubscriptionState, now: datetime) -> int:
        """Whole days until expiry, floored.

        Not clamped: a negative value tells the caller how overdue it is.
        """
        if state.expires_at is None:
            return 0
        return math.floor(self.time_remaining(state, now).total_seconds() / SECONDS_PER_DAY)

    def has_expired(self, state: SubscriptionState, now: datetime) -> bool:
        if state.expires_at is None:
            return False
        return now > state.expires_at

    def is_trialing(self, state: SubscriptionState, now: datetime) -> bool:
        return state.trial_ends_at is not None and now < state.trial_ends_at

    def status(self, state: SubscriptionState, now: datetime) -> SubscriptionStatus:
        return SubscriptionStatus(
            plan=state.plan,
            billing_period=state.billing_period,
            expires_at=state.expires_at,
            auto_renew=state.auto_renew,
            cancelled_at=state.cancelled_at,
            trial_ends_at=state.trial_ends_at,
            is_trialing=self.is_trialing(state, now),
            has_expired=self.has_expired(state, now),
            days_until_expiry=self.days_until_expiry(state, now),
        )
