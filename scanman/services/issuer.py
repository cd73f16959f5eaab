"""Code issuer - create, look up and retire codes.

All write operations run inside transaction.atomic(): a failed issue leaves
no record, no event and no demoted primary behind.
"""

import logging
import time
from datetime import datetime, timedelta

from django.db import transaction
from django.utils import timezone

from scanman.conf import scanman_settings
from scanman.exceptions import IssuanceError, ValidationError
from scanman.models import CodeEvent, CodeEventType, CodeStatus, CodeType, QRCode
from scanman.models.code import generate_unique_id
from scanman.payloads import parse_payload
from scanman.signals import code_issued, code_revoked
from scanman.signing import get_signer

logger = logging.getLogger(__name__)

# Keys the issuer owns inside a stored payload
RESERVED_KEYS = ("type", "unique_id", "issued_at", "signature")

# Types whose customer_id defaults to the owner
OWNED_TYPES = (CodeType.CUSTOMER_CARD, CodeType.LOYALTY_CARD)


def _positive_id(value, code: str, name: str) -> int:
    if isinstance(value, bool):
        raise IssuanceError(code, field=name)
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise IssuanceError(code, field=name)
    if value <= 0:
        raise IssuanceError(code, field=name)
    return value


def build_payload(code_type: str, unique_id: str, issued_at: int, data: dict | None = None) -> dict:
    """Stored payload: caller data plus type tag, unique_id and issued_at."""
    payload = {k: v for k, v in (data or {}).items() if k not in RESERVED_KEYS}
    payload["type"] = str(code_type)
    payload["unique_id"] = unique_id
    payload["issued_at"] = int(issued_at)
    return payload


def issue(
    owner_id: int,
    business_id: int | None,
    code_type: str,
    payload: dict | None = None,
    *,
    image_url: str | None = None,
    is_primary: bool = False,
    expires_at: datetime | None = None,
) -> QRCode:
    """
    Issue a new signed ACTIVE code.

    With is_primary=True, any other ACTIVE primary of the same
    (owner_id, code_type) is demoted in the same transaction.

    CUSTOMER_CARD and LOYALTY_CARD payloads default customer_id to the
    owner; the stored payload must carry every field its type requires.

    Raises:
        IssuanceError: invalid owner, business, code type or payload
    """
    owner_id = _positive_id(owner_id, "INVALID_OWNER", "owner_id")
    if business_id is not None:
        business_id = _positive_id(business_id, "INVALID_BUSINESS", "business_id")
    if not code_type:
        raise IssuanceError("INVALID_CODE_TYPE")
    if code_type not in CodeType.values:
        raise IssuanceError(
            "INVALID_CODE_TYPE",
            message=f"Unknown code type: {code_type}",
        )
    if payload is not None and not isinstance(payload, dict):
        raise IssuanceError("INVALID_PAYLOAD", message="Payload must be a mapping")

    unique_id = generate_unique_id()
    issued_at = int(time.time())
    stored = build_payload(code_type, unique_id, issued_at, payload)
    if code_type in OWNED_TYPES:
        stored.setdefault("customer_id", owner_id)
    try:
        parse_payload(code_type, stored)
    except ValidationError as exc:
        raise IssuanceError("INVALID_PAYLOAD", message=exc.message, **exc.context)
    signature = get_signer().sign(stored, issued_at)

    with transaction.atomic():
        if is_primary:
            QRCode.objects.filter(
                owner_id=owner_id,
                code_type=code_type,
                status=CodeStatus.ACTIVE,
                is_primary=True,
            ).update(is_primary=False, updated_at=timezone.now())

        code = QRCode.objects.create(
            unique_id=unique_id,
            owner_id=owner_id,
            business_id=business_id,
            code_type=code_type,
            payload=stored,
            image_url=image_url or "",
            is_primary=is_primary,
            expires_at=expires_at,
            signature=signature,
        )
        CodeEvent.objects.create(
            code=code,
            event_type=CodeEventType.ISSUED,
            data={"owner_id": owner_id, "business_id": business_id, "is_primary": is_primary},
        )
        transaction.on_commit(
            lambda: code_issued.send(sender=QRCode, code=code),
            robust=True,
        )

    logger.info(
        "Issued %s code %s for owner %s (primary=%s)",
        code_type,
        code.unique_id,
        owner_id,
        is_primary,
    )
    return code


def get_by_unique_id(unique_id: str) -> QRCode | None:
    """Get code by unique ID (any status)."""
    try:
        return QRCode.objects.get(unique_id=unique_id)
    except QRCode.DoesNotExist:
        return None


def codes_for_owner(owner_id: int, code_type: str | None = None, active_only: bool = True) -> list[QRCode]:
    """Owner's codes, newest first."""
    qs = QRCode.objects.filter(owner_id=owner_id)
    if code_type:
        qs = qs.filter(code_type=code_type)
    if active_only:
        qs = qs.filter(status=CodeStatus.ACTIVE)
    return list(qs.order_by("-created_at", "-id"))


def get_primary(owner_id: int, code_type: str) -> QRCode | None:
    """Primary ACTIVE code, falling back to the newest ACTIVE one."""
    qs = QRCode.objects.filter(
        owner_id=owner_id,
        code_type=code_type,
        status=CodeStatus.ACTIVE,
    )
    return qs.filter(is_primary=True).first() or qs.order_by("-created_at", "-id").first()


def ensure_customer_code(owner_id: int) -> QRCode:
    """Current CUSTOMER_CARD code of a customer, issuing one if none is active."""
    code = get_primary(owner_id, CodeType.CUSTOMER_CARD)
    if code is not None:
        return code

    ttl_days = scanman_settings.DEFAULT_CODE_TTL_DAYS
    expires_at = timezone.now() + timedelta(days=ttl_days) if ttl_days else None
    return issue(
        owner_id,
        None,
        CodeType.CUSTOMER_CARD,
        {"customer_id": owner_id},
        is_primary=True,
        expires_at=expires_at,
    )


def revoke(code_id: int, reason: str = "") -> bool:
    """
    Revoke an ACTIVE code.

    Returns:
        True if revoked, False if the code is missing or not ACTIVE
    """
    with transaction.atomic():
        try:
            code = QRCode.objects.select_for_update().get(pk=code_id)
        except QRCode.DoesNotExist:
            return False
        if code.status != CodeStatus.ACTIVE:
            return False

        code.status = CodeStatus.REVOKED
        code.is_primary = False
        code.revoked_reason = reason[:255]
        code.revoked_at = timezone.now()
        code.save(update_fields=["status", "is_primary", "revoked_reason", "revoked_at", "updated_at"])
        CodeEvent.objects.create(
            code=code,
            event_type=CodeEventType.REVOKED,
            data={"reason": reason},
        )
        transaction.on_commit(
            lambda: code_revoked.send(sender=QRCode, code=code, reason=reason),
            robust=True,
        )

    logger.info("Revoked code %s: %s", code.unique_id, reason or "(no reason)")
    return True


def mark_expired(code_id: int) -> bool:
    """
    Flip one code ACTIVE -> EXPIRED.

    Conditional on the current status, so concurrent callers expire a code
    (and write its event) at most once.
    """
    with transaction.atomic():
        updated = QRCode.objects.filter(pk=code_id, status=CodeStatus.ACTIVE).update(
            status=CodeStatus.EXPIRED,
            is_primary=False,
            updated_at=timezone.now(),
        )
        if updated:
            CodeEvent.objects.create(
                code_id=code_id,
                event_type=CodeEventType.EXPIRED,
                data={},
            )
    return bool(updated)


def expire_overdue(now: datetime | None = None) -> int:
    """Expire every ACTIVE code past its expires_at. Returns the count."""
    now = now or timezone.now()
    overdue = QRCode.objects.filter(
        status=CodeStatus.ACTIVE,
        expires_at__isnull=False,
        expires_at__lte=now,
    ).values_list("pk", flat=True)

    expired = sum(1 for pk in list(overdue) if mark_expired(pk))
    if expired:
        logger.info("Expired %d overdue codes", expired)
    return expired
