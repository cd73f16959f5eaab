"""Rotation manager - replace ACTIVE codes with fresh successors.

A rotation is one transaction: the current row is locked, marked REPLACED
and pointed at a newly inserted ACTIVE successor. Transient store errors
retry the whole transaction (scanman.retry.RetryPolicy).
"""

import logging
import time
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from scanman.conf import scanman_settings
from scanman.models import CodeEvent, CodeEventType, CodeStatus, QRCode
from scanman.models.code import generate_unique_id
from scanman.retry import RetryPolicy
from scanman.services.issuer import build_payload, mark_expired
from scanman.signals import code_rotated
from scanman.signing import get_signer

logger = logging.getLogger(__name__)


def _rotate_once(code_id: int) -> QRCode | None:
    with transaction.atomic():
        try:
            current = QRCode.objects.select_for_update().get(pk=code_id)
        except QRCode.DoesNotExist:
            return None
        if current.status != CodeStatus.ACTIVE:
            return None

        # A successor would inherit an expiry already in the past
        if current.expires_at is not None and current.expires_at <= timezone.now():
            mark_expired(current.pk)
            logger.info("Code %s expired instead of rotating", current.unique_id)
            return None

        unique_id = generate_unique_id()
        issued_at = int(time.time())
        payload = build_payload(current.code_type, unique_id, issued_at, current.payload)
        payload["previous_unique_id"] = current.unique_id
        signature = get_signer().sign(payload, issued_at)

        # Demote first: the successor inherits the primary slot
        was_primary = current.is_primary
        current.status = CodeStatus.REPLACED
        current.is_primary = False
        current.save(update_fields=["status", "is_primary", "updated_at"])

        successor = QRCode.objects.create(
            unique_id=unique_id,
            owner_id=current.owner_id,
            business_id=current.business_id,
            code_type=current.code_type,
            payload=payload,
            image_url=current.image_url,
            is_primary=was_primary,
            expires_at=current.expires_at,
            previous_unique_id=current.unique_id,
            signature=signature,
        )

        current.replaced_by = successor
        current.save(update_fields=["replaced_by", "updated_at"])

        CodeEvent.objects.create(
            code=current,
            event_type=CodeEventType.REPLACED,
            data={"replaced_by": successor.unique_id},
        )
        transaction.on_commit(
            lambda: code_rotated.send(sender=QRCode, previous=current, code=successor),
            robust=True,
        )

    logger.info("Rotated code %s -> %s", current.unique_id, successor.unique_id)
    return successor


def rotate(code_id: int, policy: RetryPolicy | None = None) -> QRCode | None:
    """
    Replace an ACTIVE code with a freshly signed successor.

    Returns:
        The successor, or None if the code is missing or not ACTIVE, or was
        past its expires_at (it is expired instead)

    Raises:
        TransientStoreError: store kept failing after every retry
    """
    policy = policy or RetryPolicy.from_settings()
    return policy.run(lambda: _rotate_once(code_id), operation=f"rotate code {code_id}")


def due_for_rotation(now=None):
    """ACTIVE codes older than ROTATION_INTERVAL_DAYS (empty when disabled)."""
    interval_days = scanman_settings.ROTATION_INTERVAL_DAYS
    if not interval_days:
        return QRCode.objects.none()
    cutoff = (now or timezone.now()) - timedelta(days=interval_days)
    return QRCode.objects.filter(status=CodeStatus.ACTIVE, created_at__lt=cutoff).order_by("created_at")


def rotate_due_codes(limit: int | None = None) -> list[QRCode]:
    """Rotate every code due for rotation. Returns the successors."""
    qs = due_for_rotation().values_list("pk", flat=True)
    if limit:
        qs = qs[:limit]

    successors = []
    for code_id in list(qs):
        successor = rotate(code_id)
        if successor is not None:
            successors.append(successor)
    return successors


def lineage(code: QRCode) -> list[QRCode]:
    """
    Walk previous_unique_id back to the first code of the lineage.

    Returns:
        [code, predecessor, ..., root], newest first
    """
    chain = [code]
    seen = {code.unique_id}
    previous = code.previous_unique_id
    while previous:
        if previous in seen:
            logger.error("Cycle in code lineage at %s", previous)
            break
        try:
            parent = QRCode.objects.get(unique_id=previous)
        except QRCode.DoesNotExist:
            break
        chain.append(parent)
        seen.add(parent.unique_id)
        previous = parent.previous_unique_id
    return chain
