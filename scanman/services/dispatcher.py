"""Scan dispatcher - the scan pipeline.

    PENDING -> RATE_LIMITED
            -> INVALID                (bad scanner id, validation or reference mismatch)
            -> PROCESSING -> SUCCESS
                          -> FAILED   (handler raised; its writes rolled back)

Every attempt ends with exactly one Scan row, whatever happened. Writing the
Scan row, the daily stats and the scan_completed signal can fail without
changing the outcome returned to the caller.

Only Exception is caught: KeyboardInterrupt, SystemExit and cancellation
propagate after transaction.atomic() has rolled back.
"""

import logging
from dataclasses import dataclass, field

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from scanman.backends import get_directory, get_ledger, get_notifier, get_rate_limiter
from scanman.exceptions import (
    BusinessLogicError,
    RateLimitError,
    ScanmanError,
    SecurityError,
    TransientStoreError,
    ValidationError,
)
from scanman.models import CodeStatus, QRCode, Scan, ScanDailyStat, ScanState, ScanVerdict
from scanman.payloads import from_record
from scanman.ratelimit import scan_key
from scanman.retry import RetryPolicy
from scanman.services import handlers, validator
from scanman.signals import scan_completed

logger = logging.getLogger(__name__)

MESSAGE_MAX_LENGTH = 255


@dataclass
class ScanOutcome:
    """Result of one dispatched scan."""

    state: str
    verdict: str
    message: str = ""
    user_message: str = ""
    error_code: str | None = None
    action: str | None = None
    detail: dict = field(default_factory=dict)
    points_awarded: int | None = None
    code: QRCode | None = None
    scan: Scan | None = None
    error: Exception | None = None
    reset_at: float | None = None

    @property
    def success(self) -> bool:
        return self.state == ScanState.SUCCESS

    def as_dict(self) -> dict:
        data = {
            "state": str(self.state),
            "outcome": str(self.verdict),
            "message": self.message,
            "user_message": self.user_message,
            "error_code": self.error_code,
            "action": self.action,
            "detail": self.detail,
        }
        if self.scan is not None:
            data["scan_id"] = self.scan.pk
        if self.reset_at is not None:
            data["reset_at"] = int(self.reset_at)
        return data


@dataclass
class PointsAward:
    """Result of an explicit points award."""

    card_id: int
    amount: int
    balance: int


# =============================================================================
# Pipeline
# =============================================================================


def _scanner_id(value) -> int:
    if isinstance(value, bool):
        raise ValidationError("INVALID_BUSINESS")
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError("INVALID_BUSINESS")
    if value <= 0:
        raise ValidationError("INVALID_BUSINESS")
    return value


def _failure(state: str, exc: ScanmanError, code: QRCode | None = None) -> ScanOutcome:
    if state == ScanState.RATE_LIMITED or isinstance(exc, SecurityError):
        verdict = ScanVerdict.SUSPICIOUS
    else:
        verdict = ScanVerdict.INVALID
    return ScanOutcome(
        state=state,
        verdict=verdict,
        message=exc.message,
        user_message=exc.user_message,
        error_code=exc.code,
        detail={"error": exc.as_dict()},
        code=code,
        error=exc,
        reset_at=getattr(exc, "reset_at", None),
    )


def _internal_failure(exc: Exception, code: QRCode | None = None) -> ScanOutcome:
    """FAILED outcome for an unexpected error. Its text stays in the logs."""
    return ScanOutcome(
        state=ScanState.FAILED,
        verdict=ScanVerdict.INVALID,
        message=ScanmanError.user_message,
        user_message=ScanmanError.user_message,
        error_code="INTERNAL_ERROR",
        detail={"error": {"category": "internal", "code": "INTERNAL_ERROR", "exception": exc.__class__.__name__}},
        code=code,
        error=exc,
    )


def _check_refs(validation, customer_ref, program_ref, promo_ref) -> None:
    """Operator-selected references must match what the code really is."""
    verified = validation.verified_payload
    expected = (
        ("customer_id", customer_ref, validation.code.owner_id),
        ("program_id", program_ref, verified.get("program_id")),
        ("promo_id", promo_ref, verified.get("promo_id")),
    )
    for name, ref, actual in expected:
        if ref is not None and str(ref) != str(actual):
            raise ValidationError("REFERENCE_MISMATCH", field=name, qrcode=validation.code)


def _run_handler(code_id: int, scanner_business_id: int) -> handlers.HandlerResult:
    now = timezone.now()
    directory = get_directory()
    with transaction.atomic():
        code = QRCode.objects.select_for_update().get(pk=code_id)
        if code.status != CodeStatus.ACTIVE:
            raise ValidationError("CODE_NOT_ACTIVE", message=f"code is {code.status.lower()}")

        scanner = directory.lookup_business(scanner_business_id)
        if scanner is None or not scanner.is_active:
            raise BusinessLogicError("BUSINESS_INACTIVE")

        result = handlers.handle(from_record(code.code_type, code.payload), code, scanner, directory, now)

        QRCode.objects.filter(pk=code.pk).update(
            uses_count=F("uses_count") + 1,
            last_used_at=now,
        )
    return result


def _process(
    code_type: str,
    scanner_business_id: int,
    raw_payload,
    source_address: str,
    customer_ref,
    program_ref,
    promo_ref,
) -> ScanOutcome:
    # 1. Rate limit
    limit = get_rate_limiter().hit(scan_key(scanner_business_id, source_address))
    if not limit.allowed:
        logger.warning(
            "Scan rate limited: business %s from %s (%d/%d)",
            scanner_business_id,
            source_address or "-",
            limit.count,
            limit.limit,
        )
        return _failure(ScanState.RATE_LIMITED, RateLimitError(reset_at=limit.reset_at))

    policy = RetryPolicy.from_settings()

    # 2. Validate
    try:
        validation = policy.run(
            lambda: validator.validate_or_raise(code_type, raw_payload),
            operation="validate scan",
        )
        _check_refs(validation, customer_ref, program_ref, promo_ref)
    except TransientStoreError as exc:
        return _failure(ScanState.FAILED, exc)
    except ScanmanError as exc:
        logger.warning(
            "Scan rejected for business %s: %s (%s)",
            scanner_business_id,
            exc.message,
            exc.code,
        )
        return _failure(ScanState.INVALID, exc, exc.context.get("qrcode"))

    code = validation.code

    # 3. Handle
    try:
        result = policy.run(
            lambda: _run_handler(code.pk, scanner_business_id),
            operation="scan handler",
        )
    except TransientStoreError as exc:
        return _failure(ScanState.FAILED, exc, code)
    except ScanmanError as exc:
        logger.warning("Scan of code %s failed: %s (%s)", code.unique_id, exc.message, exc.code)
        return _failure(ScanState.FAILED, exc, code)
    except Exception as exc:
        logger.exception("Unexpected error handling code %s", code.unique_id)
        return _internal_failure(exc, code)

    return ScanOutcome(
        state=ScanState.SUCCESS,
        verdict=ScanVerdict.VALID,
        message="scan processed",
        action=result.action,
        detail={"action": result.action, **result.detail},
        points_awarded=result.points_awarded,
        code=code,
    )


def dispatch(
    code_type: str,
    scanner_business_id: int,
    raw_payload,
    *,
    source_address: str = "",
    customer_ref=None,
    program_ref=None,
    promo_ref=None,
) -> ScanOutcome:
    """
    Process one scan attempt end to end.

    Args:
        code_type: Type the scanner expects (CUSTOMER_CARD, LOYALTY_CARD, ...)
        scanner_business_id: Business doing the scan
        raw_payload: Scanned content (dict or JSON string)
        source_address: Client address, part of the rate limit key
        customer_ref / program_ref / promo_ref: Optional operator selections
            that must match the code

    Returns:
        ScanOutcome in a terminal state, with the recorded Scan attached.
        A scanner_business_id that is not a positive integer ends INVALID
        with INVALID_BUSINESS, recorded without a business.
    """
    try:
        scanner_business_id = _scanner_id(scanner_business_id)
    except ValidationError as exc:
        logger.warning("Scan rejected: invalid scanner business %r", scanner_business_id)
        scanner_business_id = None
        outcome = _failure(ScanState.INVALID, exc)
    else:
        try:
            outcome = _process(
                code_type,
                scanner_business_id,
                raw_payload,
                source_address,
                customer_ref,
                program_ref,
                promo_ref,
            )
        except Exception as exc:
            logger.exception("Unexpected error processing scan for business %s", scanner_business_id)
            outcome = _internal_failure(exc)

    outcome.scan = _record_scan(outcome, code_type, scanner_business_id, source_address)
    if outcome.scan is not None and outcome.scan.scanned_by_business_id is not None:
        _record_stats(outcome.scan)

    scan_completed.send_robust(sender=Scan, scan=outcome.scan, outcome=outcome)
    return outcome


# =============================================================================
# Audit
# =============================================================================


def _record_scan(outcome: ScanOutcome, code_type, scanner_business_id: int | None, source_address: str) -> Scan | None:
    try:
        with transaction.atomic():
            return Scan.objects.create(
                code=outcome.code,
                code_type=str(code_type or "")[:20],
                scanned_by_business_id=scanner_business_id,
                source_address=(source_address or "")[:64],
                state=outcome.state,
                outcome=outcome.verdict,
                error_code=outcome.error_code or "",
                message=(outcome.message or "")[:MESSAGE_MAX_LENGTH],
                points_awarded=outcome.points_awarded,
                result_detail=outcome.detail,
            )
    except Exception:
        logger.exception("Failed to record scan (state=%s)", outcome.state)
        return None


def _record_stats(scan: Scan) -> None:
    """Best-effort daily counters."""
    column = {
        ScanVerdict.VALID: "valid",
        ScanVerdict.INVALID: "invalid",
        ScanVerdict.SUSPICIOUS: "suspicious",
    }[scan.outcome]
    try:
        with transaction.atomic():
            stat, _ = ScanDailyStat.objects.get_or_create(
                business_id=scan.scanned_by_business_id,
                day=timezone.localdate(),
                code_type=scan.code_type,
            )
            ScanDailyStat.objects.filter(pk=stat.pk).update(
                total=F("total") + 1,
                **{column: F(column) + 1},
            )
    except Exception:
        logger.warning("Failed to update daily scan stats for scan %s", scan.pk, exc_info=True)


# =============================================================================
# Operator actions
# =============================================================================


def award_points(scan: Scan, card_id: int, amount: int, operator: str = "") -> PointsAward:
    """
    Award points after a successful scan (explicit operator action).

    Raises:
        BusinessLogicError: scan not successful, bad amount, unknown card,
            or card of another business
    """
    if scan.state != ScanState.SUCCESS:
        raise BusinessLogicError("SCAN_NOT_SUCCESSFUL")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise BusinessLogicError("INVALID_POINTS")

    card = get_directory().lookup_card(card_id)
    if card is None or not card.is_active:
        raise BusinessLogicError("CARD_NOT_FOUND")
    if scan.scanned_by_business_id is None or card.business_id != scan.scanned_by_business_id:
        raise BusinessLogicError("BUSINESS_MISMATCH")
    if scan.code_id is not None and card.customer_id != scan.code.owner_id:
        raise BusinessLogicError("CARD_NOT_FOUND", message="card does not belong to the scanned customer")

    balance = get_ledger().award_points(card.id, amount, source="QR_SCAN")
    logger.info(
        "Awarded %d points to card %s after scan %s (operator=%s)",
        amount,
        card.id,
        scan.pk,
        operator or "-",
    )

    notifier = get_notifier()
    if notifier is not None:
        try:
            notifier.notify(
                card.customer_id,
                "POINTS_AWARDED",
                {"card_id": card.id, "amount": amount, "balance": balance},
            )
        except Exception:
            logger.warning("Points notification failed for card %s", card.id, exc_info=True)

    return PointsAward(card_id=card.id, amount=amount, balance=balance)
