"""
Shared test fixtures for the fitrkr backend test suite.
"""

from datetime import UTC, datetime, timedelta

import pytest
import structlog

from fitrkr.config import StreakConfig, SubscriptionConfig
from fitrkr.services.account_service import AccountService, InMemoryUserRepository
from fitrkr.services.streak_engine import StreakEngine
from fitrkr.services.subscription_engine import SubscriptionEngine

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class MutableClock:
    """Deterministic clock helper for tests."""

    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now += delta


@pytest.fixture(autouse=True)
def _configure_structlog_for_tests():
    """Configure structlog for tests using a simple, deterministic setup."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(0),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Keep get_settings() from leaking env overrides between tests."""
    from fitrkr.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(T0)


@pytest.fixture
def subscription_engine() -> SubscriptionEngine:
    return SubscriptionEngine(SubscriptionConfig())


@pytest.fixture
def streak_engine() -> StreakEngine:
    return StreakEngine(StreakConfig())


@pytest.fixture
def repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def account_service(
    repository: InMemoryUserRepository,
    subscription_engine: SubscriptionEngine,
    streak_engine: StreakEngine,
    clock: MutableClock,
) -> AccountService:
    return AccountService(
        repository,
        subscription_engine=subscription_engine,
        streak_engine=streak_engine,
        now_provider=clock.now,
    )
