"""Unit tests for service wiring."""

import pytest

import fitrkr.main as main
from fitrkr.config import Settings, StreakConfig, SubscriptionConfig
from fitrkr.services.account_service import AccountService, InMemoryUserRepository


@pytest.fixture(autouse=True)
def _skip_logging_setup(monkeypatch: pytest.MonkeyPatch):
    calls: list[bool] = []
    monkeypatch.setattr(main, "setup_logging", lambda settings: calls.append(settings.debug))
    return calls


def test_falls_back_to_in_memory_repository():
    service = main.create_account_service(settings=Settings())

    assert isinstance(service, AccountService)
    assert isinstance(service.repository, InMemoryUserRepository)


def test_uses_supplied_repository():
    repository = InMemoryUserRepository()

    service = main.create_account_service(repository, settings=Settings())

    assert service.repository is repository


def test_engines_follow_settings(_skip_logging_setup):
    settings = Settings(
        debug=True,
        subscription=SubscriptionConfig(monthly_days=28),
        streak=StreakConfig(default_rest_days=3, out_of_order_policy="reject"),
    )

    service = main.create_account_service(settings=settings)

    assert service.subscriptions.config.monthly_days == 28
    assert service.streaks.config.default_rest_days == 3
    assert service.streaks.config.out_of_order_policy == "reject"
    assert _skip_logging_setup == [True]
