"""
Service wiring for fitrkr.

Builds the engines from Settings and hands back a ready AccountService.
Transport adapters (HTTP handlers, jobs) call this once at startup.
"""

import structlog

from fitrkr.config import Settings, get_settings
from fitrkr.logging_config import setup_logging
from fitrkr.services.account_service import (
    AccountService,
    InMemoryUserRepository,
    UserRepository,
)
from fitrkr.services.streak_engine import StreakEngine
from fitrkr.services.subscription_engine import SubscriptionEngine

logger = structlog.get_logger(__name__)


def create_account_service(
    repository: UserRepository | None = None,
    settings: Settings | None = None,
) -> AccountService:
    """Configure logging and build an AccountService from settings.

    Falls back to the in-memory repository when no repository is supplied.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    if repository is None:
        logger.warning("user_repository_not_configured", detail="Using in-memory storage")
        repository = InMemoryUserRepository()

    service = AccountService(
        repository,
        subscription_engine=SubscriptionEngine(settings.subscription),
        streak_engine=StreakEngine(settings.streak),
    )
    logger.info(
        "services_initialized",
        monthly_days=settings.subscription.monthly_days,
        yearly_days=settings.subscription.yearly_days,
        default_rest_days=settings.streak.default_rest_days,
    )
    return service
