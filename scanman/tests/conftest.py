"""Pytest fixtures for Scanman tests."""

from datetime import timedelta

import pytest
from django.utils import timezone

from scanman import backends
from scanman.models import CodeType
from scanman.protocols import (
    BusinessInfo,
    CardInfo,
    CustomerInfo,
    ProgramInfo,
    PromoInfo,
)
from scanman.services import issuer
from scanman.tests.fakes import InMemoryDirectory, RecordingLedger, RecordingNotifier

CUSTOMER_ID = 42
BUSINESS_ID = 7
OTHER_BUSINESS_ID = 8
PROGRAM_ID = 3
CARD_ID = 100
PROMO_ID = 11


@pytest.fixture(autouse=True)
def _reset_backends():
    """Fresh directory, ledger, notifier, limiter and signer per test."""
    backends.reset()
    for fake in (InMemoryDirectory, RecordingLedger, RecordingNotifier):
        fake.clear()
    yield
    backends.reset()


@pytest.fixture
def scanman_config(settings):
    """Override individual SCANMAN keys: scanman_config(RATE_LIMIT_MAX_ATTEMPTS=1)."""

    def configure(**overrides):
        settings.SCANMAN = {**settings.SCANMAN, **overrides}

    return configure


@pytest.fixture
def directory():
    """The configured in-memory directory with one customer, business and program."""
    d = backends.get_directory()
    d.add(
        CustomerInfo(id=CUSTOMER_ID, name="Ana Souza"),
        BusinessInfo(id=BUSINESS_ID, name="Padaria Central"),
        BusinessInfo(id=OTHER_BUSINESS_ID, name="Cafe do Porto"),
        ProgramInfo(id=PROGRAM_ID, business_id=BUSINESS_ID, name="Coffee Club"),
    )
    return d


@pytest.fixture
def card(directory):
    """Customer 42 enrolled in program 3 of business 7."""
    info = CardInfo(
        id=CARD_ID,
        customer_id=CUSTOMER_ID,
        program_id=PROGRAM_ID,
        business_id=BUSINESS_ID,
        points=50,
    )
    directory.add(info)
    return info


@pytest.fixture
def promo(directory):
    """Active promo of business 7, capped at 2 uses."""
    info = PromoInfo(
        id=PROMO_ID,
        business_id=BUSINESS_ID,
        code="WELCOME10",
        starts_at=timezone.now() - timedelta(days=1),
        ends_at=timezone.now() + timedelta(days=30),
        max_uses=2,
        discount="10%",
    )
    directory.add(info)
    return info


@pytest.fixture
def ledger():
    return backends.get_ledger()


@pytest.fixture
def notifier():
    return backends.get_notifier()


@pytest.fixture
def customer_code(db, directory):
    """Primary CUSTOMER_CARD code of customer 42."""
    return issuer.issue(
        CUSTOMER_ID,
        None,
        CodeType.CUSTOMER_CARD,
        {"customer_id": CUSTOMER_ID},
        is_primary=True,
    )


@pytest.fixture
def loyalty_code(db, card):
    """LOYALTY_CARD code for customer 42's card in program 3."""
    return issuer.issue(
        CUSTOMER_ID,
        BUSINESS_ID,
        CodeType.LOYALTY_CARD,
        {"customer_id": CUSTOMER_ID, "program_id": PROGRAM_ID, "card_id": CARD_ID},
    )


@pytest.fixture
def promo_code(db, promo):
    """PROMO_CODE code for promo WELCOME10."""
    return issuer.issue(
        CUSTOMER_ID,
        BUSINESS_ID,
        CodeType.PROMO_CODE,
        {"promo_id": PROMO_ID, "code": "WELCOME10"},
    )
