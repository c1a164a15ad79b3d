"""
Tests for the value types in fitrkr.models.

Validates parsing rules, model defaults, field constraints and unit conversion.
"""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from fitrkr.errors import (
    InvalidBillingPeriod,
    InvalidCurrency,
    InvalidEmail,
    InvalidName,
    InvalidPlan,
    InvalidRole,
    InvalidUsername,
    InvalidValue,
)
from fitrkr.models.subscription import BillingPeriod, Currency, Plan, SubscriptionState
from fitrkr.models.user import (
    Height,
    HeightUnit,
    Role,
    Settings,
    Stats,
    Theme,
    Totals,
    User,
    Visibility,
    Weight,
    WeightUnit,
    parse_email,
    parse_full_name,
    parse_roles,
    parse_username,
)

NOW = datetime(2026, 1, 1, tzinfo=UTC)


class TestPlan:
    def test_empty_defaults_to_basic(self):
        assert Plan.parse("") == Plan.BASIC

    def test_known_plans(self):
        assert Plan.parse("basic") == Plan.BASIC
        assert Plan.parse("premium") == Plan.PREMIUM

    def test_unknown_plan(self):
        with pytest.raises(InvalidPlan):
            Plan.parse("gold")

    def test_invalid_plan_is_a_value_error(self):
        with pytest.raises(ValueError):
            Plan.parse("gold")


class TestBillingPeriod:
    def test_trims_and_lowercases(self):
        assert BillingPeriod.parse("  Monthly ") == BillingPeriod.MONTHLY
        assert BillingPeriod.parse("YEARLY") == BillingPeriod.YEARLY

    @pytest.mark.parametrize("raw", ["", "weekly", "month"])
    def test_invalid(self, raw):
        with pytest.raises(InvalidBillingPeriod):
            BillingPeriod.parse(raw)


class TestCurrency:
    def test_empty_defaults_to_usd(self):
        assert Currency.parse("") == Currency.USD
        assert Currency.parse("   ") == Currency.USD

    def test_case_insensitive(self):
        assert Currency.parse("eur") == Currency.EUR
        assert Currency.parse(" gbp ") == Currency.GBP

    @pytest.mark.parametrize("raw", ["US", "USDT", "JPY"])
    def test_invalid(self, raw):
        with pytest.raises(InvalidCurrency):
            Currency.parse(raw)


class TestIdentityParsing:
    def test_username_is_normalised(self):
        assert parse_username("  John_Doe1 ") == "john_doe1"

    @pytest.mark.parametrize("raw", ["", "   ", "ab", "a" * 21, "john-doe", "john doe"])
    def test_invalid_usernames(self, raw):
        with pytest.raises(InvalidUsername):
            parse_username(raw)

    def test_username_length_bounds(self):
        assert parse_username("abc") == "abc"
        assert parse_username("a" * 20) == "a" * 20

    def test_email(self):
        assert parse_email(" runner@example.com ") == "runner@example.com"

    @pytest.mark.parametrize("raw", ["", "runner", "runner@example", "@example.com"])
    def test_invalid_email(self, raw):
        with pytest.raises(InvalidEmail):
            parse_email(raw)

    def test_full_name(self):
        assert parse_full_name(" Ada ", "Lovelace") == "Ada Lovelace"

    @pytest.mark.parametrize("first, last", [("", "Lovelace"), ("Ada", " "), ("A", "Lovelace")])
    def test_invalid_full_name(self, first, last):
        with pytest.raises(InvalidName):
            parse_full_name(first, last)

    def test_roles_default_to_user(self):
        assert parse_roles(None) == [Role.USER]
        assert parse_roles([]) == [Role.USER]

    def test_roles(self):
        assert parse_roles(["admin", "moderator"]) == [Role.ADMIN, Role.MODERATOR]

    def test_unknown_role(self):
        with pytest.raises(InvalidRole):
            parse_roles(["user", "owner"])


class TestBodyMetrics:
    def test_weight_conversion(self):
        assert Weight(value=100, unit=WeightUnit.LB).to_kg() == pytest.approx(45.3592)
        assert Weight(value=100).to_lb() == pytest.approx(220.462)
        assert Weight(value=80).to_kg() == 80

    def test_negative_weight_is_invalid(self):
        with pytest.raises(ValidationError):
            Weight(value=-1)

    def test_height_from_feet_and_inches(self):
        height = Height.from_ft_in(5, 10)

        assert height.unit == HeightUnit.FT_IN
        assert height.value == 70
        assert height.to_cm() == pytest.approx(177.8)

    def test_height_cm_to_feet_and_inches(self):
        feet, inches = Height(value=177.8).to_ft_in()

        assert feet == 5
        assert inches == pytest.approx(10.0)

    def test_body_fat_bounds(self):
        assert Stats(body_fat_percent=0).body_fat_percent == 0
        assert Stats(body_fat_percent=100).body_fat_percent == 100
        with pytest.raises(ValidationError):
            Stats(body_fat_percent=100.5)


class TestTotals:
    def test_record_workout_returns_new_totals(self):
        totals = Totals()

        updated = totals.record_workout(Weight(value=220.462, unit=WeightUnit.LB), 45)

        assert totals.workouts == 0
        assert updated.workouts == 1
        assert updated.volume_kg == pytest.approx(100.0, rel=1e-4)
        assert updated.minutes == 45

    def test_record_workout_without_volume(self):
        assert Totals().record_workout().volume_kg == 0.0


class TestSettings:
    def test_defaults(self):
        settings = Settings()

        assert settings.theme == Theme.SYSTEM
        assert settings.visibility == Visibility.PUBLIC
        assert settings.weight_unit == WeightUnit.KG
        assert settings.height_unit == HeightUnit.CM
        assert all(
            [
                settings.email_notifications,
                settings.push_notifications,
                settings.workout_reminders,
                settings.streak_reminders,
            ]
        )

    def test_theme_and_visibility_parsing(self):
        assert Theme.parse("") == Theme.SYSTEM
        assert Theme.parse(" Dark ") == Theme.DARK
        assert Visibility.parse("") == Visibility.PUBLIC
        assert Visibility.parse("PRIVATE") == Visibility.PRIVATE
        with pytest.raises(InvalidValue):
            Theme.parse("sepia")


class TestUser:
    def test_user_gets_an_id_and_defaults(self):
        user = User(
            username="runner",
            full_name="Ada Lovelace",
            email="ada@example.com",
            subscription=SubscriptionState(started_at=NOW, created_at=NOW, updated_at=NOW),
            created_at=NOW,
            updated_at=NOW,
        )

        assert len(user.id) == 36
        assert user.roles == [Role.USER]
        assert user.stats.streak.current == 0
        assert user.subscription.plan == Plan.BASIC
