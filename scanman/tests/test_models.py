"""Tests for Scanman models."""

import pytest
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError
from django.utils import timezone

from scanman.models import (
    TERMINAL_STATES,
    CodeStatus,
    CodeType,
    CustomerBusinessLink,
    PromoUsage,
    QRCode,
    ScanDailyStat,
    ScanState,
)
from scanman.models.code import VERIFICATION_ALPHABET, generate_verification_code
from scanman.services import rotation


pytestmark = pytest.mark.django_db


class TestQRCode:
    """Tests for QRCode model."""

    def test_defaults(self):
        """Test a bare code is ACTIVE, unused and non-primary."""
        code = QRCode.objects.create(owner_id=1, code_type=CodeType.CUSTOMER_CARD, signature="x.1")

        assert code.status == CodeStatus.ACTIVE
        assert code.is_active
        assert code.uses_count == 0
        assert code.is_primary is False
        assert len(code.unique_id) == 36

    def test_str(self):
        """Test string representation."""
        code = QRCode.objects.create(
            owner_id=1,
            code_type=CodeType.CUSTOMER_CARD,
            is_primary=True,
            signature="x.1",
        )
        assert str(code) == f"CUSTOMER_CARD {code.unique_id[:8]} (ACTIVE) [primary]"

    def test_verification_code_alphabet(self):
        """Test verification codes avoid ambiguous characters."""
        for _ in range(50):
            value = generate_verification_code()
            assert len(value) == 6
            assert set(value) <= set(VERIFICATION_ALPHABET)

    def test_primary_allowed_again_after_revoke(self):
        """Test the primary constraint only covers ACTIVE codes."""
        QRCode.objects.create(
            owner_id=1,
            code_type=CodeType.CUSTOMER_CARD,
            is_primary=True,
            status=CodeStatus.REVOKED,
            signature="x.1",
        )
        QRCode.objects.create(
            owner_id=1,
            code_type=CodeType.CUSTOMER_CARD,
            is_primary=True,
            signature="x.2",
        )
        assert QRCode.objects.filter(is_primary=True).count() == 2

    def test_replaced_code_cannot_delete_successor(self, customer_code):
        """Test the lineage is protected from deletion."""
        successor = rotation.rotate(customer_code.pk)
        with pytest.raises(ProtectedError):
            successor.delete()


class TestCustomerBusinessLink:
    """Tests for CustomerBusinessLink model."""

    def test_unique_pair(self):
        """Test one link per (customer, business)."""
        CustomerBusinessLink.objects.create(customer_id=1, business_id=2, last_interaction_at=timezone.now())
        with pytest.raises(IntegrityError), transaction.atomic():
            CustomerBusinessLink.objects.create(customer_id=1, business_id=2, last_interaction_at=timezone.now())


class TestScanDailyStat:
    def test_unique_per_day_and_type(self):
        day = timezone.localdate()
        ScanDailyStat.objects.create(business_id=7, day=day, code_type="CUSTOMER_CARD")
        with pytest.raises(IntegrityError), transaction.atomic():
            ScanDailyStat.objects.create(business_id=7, day=day, code_type="CUSTOMER_CARD")


class TestPromoUsage:
    def test_one_counter_per_promo(self):
        PromoUsage.objects.create(promo_id=11)
        with pytest.raises(IntegrityError), transaction.atomic():
            PromoUsage.objects.create(promo_id=11)

    def test_str(self):
        assert str(PromoUsage(promo_id=11, uses=3)) == "promo 11: 3 uses"


class TestScanState:
    def test_terminal_states(self):
        assert ScanState.PENDING not in TERMINAL_STATES
        assert ScanState.PROCESSING not in TERMINAL_STATES
        assert {ScanState.SUCCESS, ScanState.FAILED, ScanState.INVALID, ScanState.RATE_LIMITED} == TERMINAL_STATES
