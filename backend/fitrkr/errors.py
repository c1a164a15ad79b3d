"""Exception hierarchy for the fitrkr core.

Every error carries a stable ``code`` string so callers (HTTP adapters, jobs)
can map failures without matching on message text.
"""


class FitrkrError(Exception):
    code = "fitrkr_error"
    default_message = "fitrkr error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class DomainError(FitrkrError):
    code = "domain_error"
    default_message = "domain rule violated"


# --- Subscription ---------------------------------------------------------


class SubscriptionError(DomainError):
    code = "subscription_error"
    default_message = "subscription transition rejected"


class UpgradeNotAvailable(SubscriptionError):
    code = "upgrade_not_available"
    default_message = "upgrade not available: must be on Basic plan"


class InvalidUpgradeTarget(SubscriptionError):
    code = "invalid_upgrade_target"
    default_message = "can only upgrade to Premium plan"


class AlreadyOnBasic(SubscriptionError):
    code = "already_on_basic"
    default_message = "already on Basic plan"


# --- Streak ---------------------------------------------------------------


class StreakError(DomainError):
    code = "streak_error"
    default_message = "streak update rejected"


class InvalidRestDays(StreakError):
    code = "invalid_rest_days"
    default_message = "rest days must be between 1-6"


class OutOfOrderActivity(StreakError):
    code = "out_of_order_activity"
    default_message = "activity is older than the last recorded activity"


# --- Value parsing --------------------------------------------------------


class InvalidValue(DomainError, ValueError):
    code = "invalid_value"
    default_message = "invalid value"


class InvalidPlan(InvalidValue):
    code = "invalid_plan"
    default_message = "invalid plan"


class InvalidBillingPeriod(InvalidValue):
    code = "invalid_billing_period"
    default_message = "invalid billing period"


class InvalidCurrency(InvalidValue):
    code = "invalid_currency"
    default_message = "invalid currency"


class InvalidUsername(InvalidValue):
    code = "invalid_username"
    default_message = "invalid username"


class InvalidEmail(InvalidValue):
    code = "invalid_email"
    default_message = "invalid email"


class InvalidName(InvalidValue):
    code = "invalid_name"
    default_message = "invalid name"


class InvalidRole(InvalidValue):
    code = "invalid_role"
    default_message = "invalid role"


class InvalidMetric(InvalidValue):
    code = "invalid_metric"
    default_message = "invalid body metric"


# --- Accounts -------------------------------------------------------------


class AccountError(FitrkrError):
    code = "account_error"
    default_message = "account operation failed"


class UserNotFound(AccountError):
    code = "user_not_found"
    default_message = "user does not exist"


class DuplicateUsername(AccountError):
    code = "duplicate_username"
    default_message = "username already exists"


class DuplicateEmail(AccountError):
    code = "duplicate_email"
    default_message = "email already exists"
