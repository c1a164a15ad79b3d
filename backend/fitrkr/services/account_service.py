"""Account service and user repositories.

Each mutating call follows the same shape: load the user snapshot, run one
engine transition, persist the result. Mutations for one user id are
serialised with an in-process lock; writers in other processes must be
serialised by the storage layer (row lock or version check), otherwise the
last write wins.
"""

import asyncio
from collections import defaultdict
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol

import structlog
from pydantic import ValidationError

from fitrkr.errors import (
    DuplicateEmail,
    DuplicateUsername,
    FitrkrError,
    InvalidMetric,
    InvalidValue,
    UserNotFound,
)
from fitrkr.models.streak import StreakStatus
from fitrkr.models.subscription import (
    BillingPeriod,
    Currency,
    Plan,
    SubscriptionState,
    SubscriptionStatus,
)
from fitrkr.models.user import (
    Height,
    Settings,
    Stats,
    User,
    Weight,
    parse_email,
    parse_full_name,
    parse_roles,
    parse_username,
)
from fitrkr.services.streak_engine import StreakEngine
from fitrkr.services.subscription_engine import SubscriptionEngine

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class UserRepository(Protocol):
    """Storage contract for user snapshots."""

    async def get(self, user_id: str) -> User | None:
        """Fetch a user snapshot."""

    async def get_by_username(self, username: str) -> User | None:
        """Fetch by normalised username."""

    async def get_by_email(self, email: str) -> User | None:
        """Fetch by email, case-insensitive."""

    async def put(self, user_id: str, user: User) -> User:
        """Persist the whole snapshot."""

    async def delete(self, user_id: str) -> bool:
        """Remove a user. Returns False when nothing was stored."""


class InMemoryUserRepository:
    """In-memory repository used for tests and local fallback."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}

    async def get(self, user_id: str) -> User | None:
        user = self.users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def get_by_username(self, username: str) -> User | None:
        for user in self.users.values():
            if user.username == username:
                return user.model_copy(deep=True)
        return None

    async def get_by_email(self, email: str) -> User | None:
        email = email.lower()
        for user in self.users.values():
            if user.email.lower() == email:
                return user.model_copy(deep=True)
        return None

    async def put(self, user_id: str, user: User) -> User:
        stored = user.model_copy(deep=True)
        self.users[user_id] = stored
        return stored.model_copy(deep=True)

    async def delete(self, user_id: str) -> bool:
        return self.users.pop(user_id, None) is not None


class AccountService:
    """Runs subscription and streak transitions against persisted users."""

    def __init__(
        self,
        repository: UserRepository,
        subscription_engine: SubscriptionEngine | None = None,
        streak_engine: StreakEngine | None = None,
        now_provider: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repository = repository
        self.subscriptions = subscription_engine or SubscriptionEngine()
        self.streaks = streak_engine or StreakEngine()
        self.now_provider = now_provider
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._create_lock = asyncio.Lock()

    async def _load(self, user_id: str) -> User:
        user = await self.repository.get(user_id)
        if user is None:
            raise UserNotFound(f"user {user_id} does not exist")
        # Rest-day bounds come from config, not the schema
        self.streaks.check_state(user.stats.streak)
        return user

    async def _mutate(
        self,
        user_id: str,
        event: str,
        transition: Callable[[User, datetime], User],
        now: datetime | None = None,
    ) -> User:
        """Load, transition, persist, all under the user's lock.

        The transition either returns a new snapshot or raises before anything
        is written. ``now`` defaults to the service clock.
        """
        with structlog.contextvars.bound_contextvars(user_id=user_id):
            try:
                async with self._locks[user_id]:
                    try:
                        user = await self._load(user_id)
                        if now is None:
                            now = self.now_provider()
                        updated = transition(user, now)
                    except FitrkrError as exc:
                        logger.warning(
                            "account_transition_failed",
                            transition=event,
                            error=exc.code,
                            detail=exc.message,
                        )
                        raise

                    if updated == user:
                        return user
                    stored = await self.repository.put(
                        user_id, updated.model_copy(update={"updated_at": now})
                    )
                    logger.info(event)
                    return stored
            except UserNotFound:
                self._locks.pop(user_id, None)
                raise

    # -- Accounts --------------------------------------------------------------

    async def create_account(
        self,
        *,
        username: str,
        email: str,
        first_name: str,
        last_name: str,
        roles: list[str] | None = None,
        rest_days: int = 0,
    ) -> User:
        """Create a user on the Basic plan with an empty streak.

        Raises:
            InvalidUsername / InvalidEmail / InvalidName / InvalidRole: bad input.
            InvalidRestDays: ``rest_days`` outside the configured bounds.
            DuplicateUsername / DuplicateEmail: identity already taken.
        """
        try:
            clean_username = parse_username(username)
            clean_email = parse_email(email)
            full_name = parse_full_name(first_name, last_name)
            parsed_roles = parse_roles(roles)
            streak = self.streaks.new_streak(rest_days)
        except FitrkrError as exc:
            logger.warning("account_create_failed", error=exc.code, detail=exc.message)
            raise

        async with self._create_lock:
            if await self.repository.get_by_username(clean_username) is not None:
                logger.warning("account_create_failed", error=DuplicateUsername.code)
                raise DuplicateUsername()
            if await self.repository.get_by_email(clean_email) is not None:
                logger.warning("account_create_failed", error=DuplicateEmail.code)
                raise DuplicateEmail()

            now = self.now_provider()
            user = User(
                username=clean_username,
                full_name=full_name,
                email=clean_email,
                roles=parsed_roles,
                stats=Stats(streak=streak, updated_at=now),
                subscription=self.subscriptions.new_subscription(now),
                settings=Settings(updated_at=now),
                created_at=now,
                updated_at=now,
            )
            stored = await self.repository.put(user.id, user)

        logger.info("account_created", user_id=stored.id, username=stored.username)
        return stored

    async def get_user(self, user_id: str) -> User:
        return await self._load(user_id)

    async def delete_user(self, user_id: str) -> None:
        async with self._locks[user_id]:
            if not await self.repository.delete(user_id):
                logger.warning("account_delete_failed", user_id=user_id, error=UserNotFound.code)
                raise UserNotFound(f"user {user_id} does not exist")
        self._locks.pop(user_id, None)
        logger.info("account_deleted", user_id=user_id)

    # -- Subscription ----------------------------------------------------------

    def _with_subscription(
        self, transition: Callable[[SubscriptionState, datetime], SubscriptionState]
    ) -> Callable[[User, datetime], User]:
        def apply(user: User, now: datetime) -> User:
            return user.model_copy(update={"subscription": transition(user.subscription, now)})

        return apply

    async def get_subscription(
        self, user_id: str, now: datetime | None = None
    ) -> SubscriptionState:
        """Current subscription, with any due expiry resolved first."""
        user = await self._mutate(
            user_id,
            "subscription_expiry_processed",
            self._with_subscription(self.subscriptions.process_expiry),
            now=now,
        )
        return user.subscription

    async def subscription_status(self, user_id: str) -> SubscriptionStatus:
        now = self.now_provider()
        subscription = await self.get_subscription(user_id, now)
        return self.subscriptions.status(subscription, now)

    async def upgrade_plan(
        self, user_id: str, plan: str, billing_period: str
    ) -> SubscriptionState:
        def transition(state: SubscriptionState, now: datetime) -> SubscriptionState:
            return self.subscriptions.upgrade(
                state, Plan.parse(plan), BillingPeriod.parse(billing_period), now
            )

        user = await self._mutate(
            user_id, "subscription_upgraded", self._with_subscription(transition)
        )
        return user.subscription

    async def record_payment(
        self, user_id: str, amount: float, currency: str = ""
    ) -> SubscriptionState:
        def transition(state: SubscriptionState, now: datetime) -> SubscriptionState:
            return self.subscriptions.process_payment(
                state, amount, Currency.parse(currency), now
            )

        user = await self._mutate(
            user_id, "subscription_payment_recorded", self._with_subscription(transition)
        )
        return user.subscription

    async def cancel_subscription(self, user_id: str) -> SubscriptionState:
        user = await self._mutate(
            user_id,
            "subscription_cancelled",
            self._with_subscription(self.subscriptions.cancel),
        )
        return user.subscription

    async def start_trial(self, user_id: str, days: int | None = None) -> SubscriptionState:
        def transition(state: SubscriptionState, now: datetime) -> SubscriptionState:
            return self.subscriptions.start_trial(state, now, days)

        user = await self._mutate(
            user_id, "subscription_trial_started", self._with_subscription(transition)
        )
        return user.subscription

    # -- Stats -----------------------------------------------------------------

    async def record_workout(
        self,
        user_id: str,
        *,
        at: datetime | None = None,
        volume: Weight | None = None,
        minutes: int = 0,
    ) -> Stats:
        """Count a workout toward the streak and lifetime totals.

        Raises:
            InvalidValue: ``at`` has no timezone.
        """

        def transition(user: User, now: datetime) -> User:
            if at is not None and at.utcoffset() is None:
                raise InvalidValue("workout time must be timezone-aware")
            stats = user.stats.model_copy(
                update={
                    "streak": self.streaks.record_activity(user.stats.streak, at or now),
                    "totals": user.stats.totals.record_workout(volume, minutes),
                    "updated_at": now,
                }
            )
            return user.model_copy(update={"stats": stats})

        user = await self._mutate(user_id, "workout_recorded", transition)
        return user.stats

    async def update_rest_days(self, user_id: str, rest_days: int) -> Stats:
        def transition(user: User, now: datetime) -> User:
            streak = self.streaks.update_rest_days(user.stats.streak, rest_days)
            stats = user.stats.model_copy(update={"streak": streak, "updated_at": now})
            return user.model_copy(update={"stats": stats})

        user = await self._mutate(user_id, "streak_rest_days_updated", transition)
        return user.stats

    async def break_streak(self, user_id: str) -> Stats:
        def transition(user: User, now: datetime) -> User:
            streak = self.streaks.break_streak(user.stats.streak)
            stats = user.stats.model_copy(update={"streak": streak, "updated_at": now})
            return user.model_copy(update={"stats": stats})

        user = await self._mutate(user_id, "streak_broken", transition)
        return user.stats

    async def get_streak_status(self, user_id: str) -> StreakStatus:
        user = await self._load(user_id)
        return self.streaks.status(user.stats.streak, self.now_provider())

    async def update_body_metrics(
        self,
        user_id: str,
        *,
        weight: float | None = None,
        height: float | None = None,
        body_fat_percent: float | None = None,
    ) -> Stats:
        """Store body metrics in the units the user has selected in settings."""

        def transition(user: User, now: datetime) -> User:
            changes: dict[str, Any] = {"updated_at": now}
            try:
                if weight is not None:
                    changes["weight"] = Weight(value=weight, unit=user.settings.weight_unit)
                if height is not None:
                    changes["height"] = Height(value=height, unit=user.settings.height_unit)
                if body_fat_percent is not None:
                    changes["body_fat_percent"] = body_fat_percent
                stats = Stats.model_validate({**user.stats.model_dump(), **changes})
            except ValidationError as exc:
                raise InvalidMetric(str(exc.errors()[0]["msg"])) from exc
            return user.model_copy(update={"stats": stats})

        user = await self._mutate(user_id, "body_metrics_updated", transition)
        return user.stats

    # -- Settings --------------------------------------------------------------

    async def update_settings(self, user_id: str, **changes: Any) -> Settings:
        """Apply partial settings changes. Unknown keys are rejected."""
        unknown = set(changes) - set(Settings.model_fields)
        if unknown:
            raise InvalidValue(f"unknown settings: {', '.join(sorted(unknown))}")

        def transition(user: User, now: datetime) -> User:
            try:
                settings = Settings.model_validate(
                    {**user.settings.model_dump(), **changes, "updated_at": now}
                )
            except ValidationError as exc:
                raise InvalidValue(str(exc.errors()[0]["msg"])) from exc
            return user.model_copy(update={"settings": settings})

        user = await self._mutate(user_id, "settings_updated", transition)
        return user.settings
