"""Scanman exceptions.

Every failure a scan can hit maps to one of six categories. The first five
are terminal for the attempt; TransientStoreError is retried by
scanman.retry.RetryPolicy and surfaces as a generic retry-later failure.

Usage:
    try:
        validation = validator.validate_or_raise("CUSTOMER_CARD", raw)
    except ScanmanError as e:
        if e.code == "CODE_NOT_FOUND":
            handle_not_found()
        return {"error": e.code, "message": e.user_message}
"""


class ScanmanError(Exception):
    """
    Structured exception for code and scan operations.

    Carries a machine-readable ``code``, a message and free-form context.
    ``user_message`` is safe to show to the scanning operator; ``message``
    may carry more detail and is meant for logs.
    """

    category = "unknown"
    default_code = "SCAN_ERROR"
    user_message = "An unexpected error occurred while processing the code."

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str | None = None, message: str | None = None, **context):
        self.code = code or self.default_code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.context = context
        super().__init__(self.message)

    def as_dict(self) -> dict:
        return {
            "category": self.category,
            "code": self.code,
            "message": self.message,
        }


class ValidationError(ScanmanError):
    """Malformed payload, unknown code or non-active code."""

    category = "validation"
    default_code = "INVALID_PAYLOAD"
    user_message = "The code information provided is invalid or incomplete."

    _default_messages = {
        "INVALID_PAYLOAD": "Invalid code payload",
        "UNSUPPORTED_CODE_TYPE": "Unsupported code type",
        "CODE_NOT_FOUND": "code not found",
        "CODE_NOT_ACTIVE": "code is not active",
        "REFERENCE_MISMATCH": "code does not match the selected reference",
        "INVALID_OWNER": "Invalid owner ID",
        "INVALID_BUSINESS": "Invalid business ID",
        "INVALID_CODE_TYPE": "Code type is required",
    }


class IssuanceError(ValidationError):
    """Code could not be issued because its inputs were rejected."""

    default_code = "ISSUANCE_FAILED"


class SecurityError(ScanmanError):
    """Signature mismatch or tampered content."""

    category = "security"
    default_code = "SIGNATURE_INVALID"
    user_message = "This code could not be accepted due to security concerns."

    _default_messages = {
        "SIGNATURE_INVALID": "code signature is invalid",
    }


class ExpirationError(ScanmanError):
    """Code expired, needs refresh, or references an inactive entity."""

    category = "expiration"
    default_code = "CODE_EXPIRED"
    user_message = "This code has expired and is no longer valid."

    _default_messages = {
        "CODE_EXPIRED": "code is expired",
        "CODE_REFRESH_REQUIRED": "code needs refresh",
        "ENTITY_INACTIVE": "referenced entity is no longer active",
    }


class BusinessLogicError(ScanmanError):
    """Business rule rejected the scan (usage cap, inactive program or promo)."""

    category = "business_logic"
    default_code = "BUSINESS_RULE"
    user_message = "This code could not be used due to business rules."

    _default_messages = {
        "BUSINESS_INACTIVE": "scanning business is not active",
        "BUSINESS_MISMATCH": "this code belongs to a different business",
        "CARD_NOT_FOUND": "loyalty card not found",
        "PROGRAM_INACTIVE": "loyalty program is not active",
        "PROMO_NOT_FOUND": "promotion not found",
        "PROMO_INACTIVE": "promotion is not active",
        "PROMO_NOT_STARTED": "promotion has not started yet",
        "PROMO_ENDED": "promotion has ended",
        "PROMO_USAGE_EXCEEDED": "promotion usage limit reached",
        "SCAN_NOT_SUCCESSFUL": "points can only be awarded after a successful scan",
        "INVALID_POINTS": "points must be positive",
    }


class RateLimitError(ScanmanError):
    """Too many attempts in the current window."""

    category = "rate_limit"
    default_code = "RATE_LIMITED"
    user_message = "Too many scans requested. Please try again later."

    _default_messages = {
        "RATE_LIMITED": "rate limit exceeded",
    }

    def __init__(self, code: str | None = None, message: str | None = None, reset_at=None, **context):
        self.reset_at = reset_at
        super().__init__(code, message, reset_at=reset_at, **context)


class TransientStoreError(ScanmanError):
    """Retryable infrastructure failure (deadlock, lost connection, lock timeout)."""

    category = "transient"
    default_code = "STORE_UNAVAILABLE"
    user_message = "Temporarily unavailable, please retry."

    _default_messages = {
        "STORE_UNAVAILABLE": "Temporarily unavailable, please retry",
    }
