"""
Rotation manager tests.

Tests for:
- rotate(): single ACTIVE per lineage, forward/back pointers
- Primary slot inherited by the successor
- Non-ACTIVE and missing codes
- Transient failure retried; exhaustion leaves the original untouched
- rotate_due_codes() and lineage()
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import OperationalError
from django.utils import timezone

from scanman.exceptions import TransientStoreError
from scanman.models import CodeEvent, CodeEventType, CodeStatus, QRCode
from scanman.retry import RetryPolicy
from scanman.services import issuer, rotation, validator
from scanman.signals import code_rotated
from scanman.signing import get_signer

pytestmark = pytest.mark.django_db


def active_in_lineage(code: QRCode) -> list[QRCode]:
    """Every ACTIVE code reachable from code through replaced_by."""
    found = []
    current = code
    while current is not None:
        current.refresh_from_db()
        if current.status == CodeStatus.ACTIVE:
            found.append(current)
        current = current.replaced_by
    return found


class TestRotate:
    """rotate() replaces an ACTIVE code atomically."""

    def test_successor_fields(self, customer_code):
        successor = rotation.rotate(customer_code.pk)
        customer_code.refresh_from_db()

        assert successor.status == CodeStatus.ACTIVE
        assert successor.unique_id != customer_code.unique_id
        assert successor.owner_id == customer_code.owner_id
        assert successor.code_type == customer_code.code_type
        assert successor.previous_unique_id == customer_code.unique_id
        assert successor.payload["unique_id"] == successor.unique_id
        assert successor.payload["previous_unique_id"] == customer_code.unique_id
        assert successor.payload["customer_id"] == customer_code.payload["customer_id"]
        assert get_signer().verify(successor.payload, successor.signature)

    def test_old_record_replaced(self, customer_code):
        successor = rotation.rotate(customer_code.pk)
        customer_code.refresh_from_db()

        assert customer_code.status == CodeStatus.REPLACED
        assert customer_code.replaced_by == successor
        assert not customer_code.is_primary
        assert CodeEvent.objects.filter(
            code=customer_code, event_type=CodeEventType.REPLACED
        ).exists()

    def test_exactly_one_active_per_lineage(self, customer_code):
        first = rotation.rotate(customer_code.pk)
        rotation.rotate(first.pk)
        assert len(active_in_lineage(customer_code)) == 1

    def test_primary_slot_inherited(self, customer_code):
        successor = rotation.rotate(customer_code.pk)
        assert successor.is_primary
        assert issuer.get_primary(customer_code.owner_id, customer_code.code_type) == successor

    def test_old_code_no_longer_scans(self, customer_code):
        old_content = customer_code.qr_content()
        successor = rotation.rotate(customer_code.pk)

        old = validator.validate("CUSTOMER_CARD", old_content)
        new = validator.validate("CUSTOMER_CARD", successor.qr_content())

        assert not old.valid
        assert "replaced" in old.message
        assert new.valid

    def test_not_active_returns_none(self, customer_code):
        issuer.revoke(customer_code.pk)
        assert rotation.rotate(customer_code.pk) is None

    def test_missing_returns_none(self, db):
        assert rotation.rotate(999_999) is None

    def test_overdue_code_expired_not_rotated(self, customer_code):
        """No successor is issued with an expiry already in the past."""
        QRCode.objects.filter(pk=customer_code.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

        assert rotation.rotate(customer_code.pk) is None

        customer_code.refresh_from_db()
        assert customer_code.status == CodeStatus.EXPIRED
        assert customer_code.replaced_by is None
        assert QRCode.objects.count() == 1
        assert CodeEvent.objects.filter(code=customer_code, event_type=CodeEventType.EXPIRED).count() == 1

    def test_future_expiry_carried_over(self, customer_code):
        expires_at = timezone.now() + timedelta(days=5)
        QRCode.objects.filter(pk=customer_code.pk).update(expires_at=expires_at)

        successor = rotation.rotate(customer_code.pk)

        assert successor.expires_at == expires_at

    def test_signal_sent(self, customer_code, django_capture_on_commit_callbacks):
        received = []

        def receiver(sender, previous, code, **kwargs):
            received.append((previous.unique_id, code.unique_id))

        code_rotated.connect(receiver)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                successor = rotation.rotate(customer_code.pk)
        finally:
            code_rotated.disconnect(receiver)

        assert received == [(customer_code.unique_id, successor.unique_id)]


class TestRotateTransientFailures:
    """Store failures are retried; exhaustion leaves the original ACTIVE."""

    def test_retried_then_succeeds(self, customer_code):
        real_create = QRCode.objects.create
        calls = {"n": 0}

        def flaky_create(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                raise OperationalError("deadlock detected")
            return real_create(*args, **kwargs)

        with patch.object(QRCode.objects, "create", side_effect=flaky_create):
            successor = rotation.rotate(customer_code.pk, RetryPolicy(max_attempts=3, delay_seconds=0))

        assert successor is not None
        assert calls["n"] == 2
        assert len(active_in_lineage(customer_code)) == 1

    def test_exhaustion_leaves_original(self, customer_code):
        with patch.object(QRCode.objects, "create", side_effect=OperationalError("database is locked")):
            with pytest.raises(TransientStoreError):
                rotation.rotate(customer_code.pk, RetryPolicy(max_attempts=3, delay_seconds=0))

        customer_code.refresh_from_db()
        assert customer_code.status == CodeStatus.ACTIVE
        assert customer_code.is_primary
        assert customer_code.replaced_by is None
        assert QRCode.objects.count() == 1


class TestRotateDueCodes:
    def test_rotates_only_old_codes(self, customer_code, loyalty_code):
        QRCode.objects.filter(pk=customer_code.pk).update(
            created_at=timezone.now() - timedelta(days=40)
        )

        successors = rotation.rotate_due_codes()

        assert [s.previous_unique_id for s in successors] == [customer_code.unique_id]
        loyalty_code.refresh_from_db()
        assert loyalty_code.status == CodeStatus.ACTIVE

    def test_limit(self, directory):
        codes = [issuer.issue(42, None, "CUSTOMER_CARD") for _ in range(3)]
        QRCode.objects.filter(pk__in=[c.pk for c in codes]).update(
            created_at=timezone.now() - timedelta(days=40)
        )
        assert len(rotation.rotate_due_codes(limit=2)) == 2

    def test_disabled(self, customer_code, scanman_config):
        scanman_config(ROTATION_INTERVAL_DAYS=0)
        QRCode.objects.filter(pk=customer_code.pk).update(
            created_at=timezone.now() - timedelta(days=400)
        )
        assert rotation.rotate_due_codes() == []


class TestLineage:
    def test_walks_back_to_root(self, customer_code):
        second = rotation.rotate(customer_code.pk)
        third = rotation.rotate(second.pk)

        chain = rotation.lineage(third)

        assert [c.unique_id for c in chain] == [
            third.unique_id,
            second.unique_id,
            customer_code.unique_id,
        ]

    def test_cycle_guard(self, customer_code):
        """A corrupted chain pointing at itself terminates."""
        QRCode.objects.filter(pk=customer_code.pk).update(previous_unique_id=customer_code.unique_id)
        customer_code.refresh_from_db()
        assert rotation.lineage(customer_code) == [customer_code]
