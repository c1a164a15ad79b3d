"""Subscription state models.

The plan tier and its billing fields form a tagged union: a ``BasicPlan``
carries nothing, a ``PremiumPlan`` always carries its billing period and
expiry. ``SubscriptionState`` derives ``plan``/``billing_period``/``expires_at``
from that union, so a Basic subscription with an expiry cannot be built.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from fitrkr.constants import CURRENCY_CODE_LENGTH
from fitrkr.errors import InvalidBillingPeriod, InvalidCurrency, InvalidPlan


class Plan(str, Enum):
    """Subscription tiers. Basic is the free tier."""

    BASIC = "basic"
    PREMIUM = "premium"

    @classmethod
    def parse(cls, value: str) -> "Plan":
        """Parse a plan name; an empty string means Basic."""
        if value == "":
            return cls.BASIC
        try:
            return cls(value)
        except ValueError:
            raise InvalidPlan(f"invalid plan: {value!r}") from None


class BillingPeriod(str, Enum):
    """Renewal cadence of a Premium plan."""

    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: str) -> "BillingPeriod":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidBillingPeriod(f"invalid billing period: {value!r}") from None


class Currency(str, Enum):
    """Currencies accepted for payments."""

    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"
    BRL = "BRL"
    RMB = "RMB"

    @classmethod
    def parse(cls, code: str) -> "Currency":
        """Parse a 3-letter code, case-insensitive. Empty defaults to USD."""
        code = code.strip()
        if code == "":
            return cls.USD
        if len(code) != CURRENCY_CODE_LENGTH:
            raise InvalidCurrency(f"invalid currency: {code!r}")
        try:
            return cls(code.upper())
        except ValueError:
            raise InvalidCurrency(f"invalid currency: {code!r}") from None


class Payment(BaseModel):
    """Last payment applied to a subscription. Amount is stored as given."""

    model_config = ConfigDict(frozen=True)

    at: AwareDatetime
    amount: float
    currency: Currency


class BasicPlan(BaseModel):
    """Free tier: no billing period, no expiry."""

    model_config = ConfigDict(frozen=True)

    tier: Literal["basic"] = "basic"


class PremiumPlan(BaseModel):
    """Paid tier with its renewal cadence and current expiry."""

    model_config = ConfigDict(frozen=True)

    tier: Literal["premium"] = "premium"
    billing_period: BillingPeriod
    expires_at: AwareDatetime


PlanState = Annotated[Union[BasicPlan, PremiumPlan], Field(discriminator="tier")]


class SubscriptionState(BaseModel):
    """Snapshot of a user's subscription. Transitions return new instances."""

    model_config = ConfigDict(frozen=True)

    plan_state: PlanState = Field(default_factory=BasicPlan)
    started_at: AwareDatetime
    auto_renew: bool = False
    cancelled_at: AwareDatetime | None = None
    last_payment: Payment | None = None
    trial_ends_at: AwareDatetime | None = None
    created_at: AwareDatetime
    updated_at: AwareDatetime

    @property
    def plan(self) -> Plan:
        return Plan(self.plan_state.tier)

    @property
    def billing_period(self) -> BillingPeriod | None:
        if isinstance(self.plan_state, PremiumPlan):
            return self.plan_state.billing_period
        return None

    @property
    def expires_at(self) -> datetime | None:
        if isinstance(self.plan_state, PremiumPlan):
            return self.plan_state.expires_at
        return None

    @property
    def is_premium(self) -> bool:
        return isinstance(self.plan_state, PremiumPlan)


class SubscriptionStatus(BaseModel):
    """Read model returned to presentation/reporting callers."""

    plan: Plan
    billing_period: BillingPeriod | None = None
    expires_at: datetime | None = None
    auto_renew: bool
    cancelled_at: datetime | None = None
    trial_ends_at: datetime | None = None
    is_trialing: bool = False
    has_expired: bool = False
    days_until_expiry: int = 0
