"""Scan handlers - what a validated scan does, per code type.

handle() dispatches over every ScanPayload variant. Handlers run inside the
dispatcher's transaction with the code row locked; raising rolls back every
write they made.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from django.db import transaction
from django.db.models import F

from scanman.backends import get_notifier
from scanman.exceptions import BusinessLogicError, ValidationError
from scanman.models import CustomerBusinessLink, PromoRedemption, PromoUsage, QRCode
from scanman.payloads import (
    CustomerCardPayload,
    LoyaltyCardPayload,
    PromoPayload,
    ScanPayload,
    UnknownPayload,
)
from scanman.protocols import BusinessInfo

logger = logging.getLogger(__name__)

# Actions reported back to the scanner
CUSTOMER_IDENTIFIED = "CUSTOMER_IDENTIFIED"
ENROLLMENT_REQUIRED = "ENROLLMENT_REQUIRED"
CARD_IDENTIFIED = "CARD_IDENTIFIED"
PROMO_REDEEMED = "PROMO_REDEEMED"


@dataclass
class HandlerResult:
    """What a handler did."""

    action: str
    detail: dict = field(default_factory=dict)
    points_awarded: int = 0


def handle(
    payload: ScanPayload,
    code: QRCode,
    scanner: BusinessInfo,
    directory,
    now: datetime,
) -> HandlerResult:
    """Run the handler for payload's variant."""
    if isinstance(payload, CustomerCardPayload):
        return handle_customer_card(payload, code, scanner, directory, now)
    if isinstance(payload, LoyaltyCardPayload):
        return handle_loyalty_card(payload, code, scanner, directory, now)
    if isinstance(payload, PromoPayload):
        return handle_promo(payload, code, scanner, directory, now)
    if isinstance(payload, UnknownPayload):
        raise ValidationError(
            "UNSUPPORTED_CODE_TYPE",
            message=f"unsupported code type: {payload.code_type}",
        )
    raise TypeError(f"Unhandled payload variant: {type(payload).__name__}")


# =============================================================================
# CUSTOMER_CARD
# =============================================================================


def _touch_link(customer_id: int, business_id: int, now: datetime) -> CustomerBusinessLink:
    link, created = CustomerBusinessLink.objects.select_for_update().get_or_create(
        customer_id=customer_id,
        business_id=business_id,
        defaults={"interaction_count": 1, "last_interaction_at": now},
    )
    if not created:
        CustomerBusinessLink.objects.filter(pk=link.pk).update(
            interaction_count=F("interaction_count") + 1,
            last_interaction_at=now,
        )
        link.refresh_from_db()
    return link


def handle_customer_card(
    payload: CustomerCardPayload,
    code: QRCode,
    scanner: BusinessInfo,
    directory,
    now: datetime,
) -> HandlerResult:
    """
    Identify the customer at the scanning business.

    Records the customer-business relationship and reports either the
    customer's cards at this business or the programs they could join.
    Never awards points.
    """
    customer_id = code.owner_id
    customer = directory.lookup_customer(customer_id)
    link = _touch_link(customer_id, scanner.id, now)

    detail = {
        "customer_id": customer_id,
        "customer_name": customer.name if customer else "",
        "business_id": scanner.id,
        "interaction_count": link.interaction_count,
    }

    cards = [c for c in directory.customer_cards(customer_id, scanner.id) if c.is_active]
    if cards:
        action = CUSTOMER_IDENTIFIED
        detail["cards"] = [
            {"card_id": c.id, "program_id": c.program_id, "points": c.points} for c in cards
        ]
    else:
        action = ENROLLMENT_REQUIRED
        detail["programs"] = [
            {"program_id": p.id, "name": p.name}
            for p in directory.business_programs(scanner.id)
            if p.is_active
        ]

    notifier = get_notifier()
    if notifier is not None:
        message = {"business_id": scanner.id, "business_name": scanner.name, "action": action}
        transaction.on_commit(
            lambda: notifier.notify(customer_id, "QR_SCANNED", message),
            robust=True,
        )

    return HandlerResult(action=action, detail=detail)


# =============================================================================
# LOYALTY_CARD
# =============================================================================


def handle_loyalty_card(
    payload: LoyaltyCardPayload,
    code: QRCode,
    scanner: BusinessInfo,
    directory,
    now: datetime,
) -> HandlerResult:
    """Resolve the card and its program at the scanning business. Never awards points."""
    if payload.card_id:
        card = directory.lookup_card(payload.card_id)
    else:
        card = directory.find_card(code.owner_id, payload.program_id)
    if card is None or not card.is_active:
        raise BusinessLogicError("CARD_NOT_FOUND")

    program = directory.lookup_program(card.program_id)
    if program is None or not program.is_active:
        raise BusinessLogicError("PROGRAM_INACTIVE")
    if program.business_id != scanner.id:
        raise BusinessLogicError(
            "BUSINESS_MISMATCH",
            program_business_id=program.business_id,
            scanner_business_id=scanner.id,
        )

    return HandlerResult(
        action=CARD_IDENTIFIED,
        detail={
            "card_id": card.id,
            "customer_id": card.customer_id,
            "program_id": program.id,
            "program_name": program.name,
            "points": card.points,
        },
    )


# =============================================================================
# PROMO_CODE
# =============================================================================


def handle_promo(
    payload: PromoPayload,
    code: QRCode,
    scanner: BusinessInfo,
    directory,
    now: datetime,
) -> HandlerResult:
    """
    Redeem a promotion.

    The usage count lives on the promotion's PromoUsage row, locked for the
    rest of the transaction, so codes of one promotion redeemed concurrently
    cannot exceed max_uses between them.
    """
    promo = directory.lookup_promo(payload.promo_id)
    if promo is None:
        raise BusinessLogicError("PROMO_NOT_FOUND")
    if not promo.is_active:
        raise BusinessLogicError("PROMO_INACTIVE")
    if promo.business_id != scanner.id:
        raise BusinessLogicError("BUSINESS_MISMATCH")
    if promo.starts_at is not None and now < promo.starts_at:
        raise BusinessLogicError("PROMO_NOT_STARTED")
    if promo.ends_at is not None and now >= promo.ends_at:
        raise BusinessLogicError("PROMO_ENDED")

    usage, _ = PromoUsage.objects.get_or_create(
        promo_id=promo.id,
        defaults={"uses": PromoRedemption.objects.filter(promo_id=promo.id).count()},
    )
    usage = PromoUsage.objects.select_for_update().get(pk=usage.pk)
    used = usage.uses
    if promo.max_uses is not None and used >= promo.max_uses:
        raise BusinessLogicError("PROMO_USAGE_EXCEEDED", used=used, max_uses=promo.max_uses)

    PromoRedemption.objects.create(
        code=code,
        promo_id=promo.id,
        promo_code=promo.code,
        business_id=scanner.id,
        customer_id=code.owner_id,
    )
    PromoUsage.objects.filter(pk=usage.pk).update(uses=F("uses") + 1)
    logger.info("Promo %s redeemed by customer %s", promo.code, code.owner_id)

    return HandlerResult(
        action=PROMO_REDEEMED,
        detail={
            "promo_id": promo.id,
            "code": promo.code,
            "discount": promo.discount,
            "uses": used + 1,
            "max_uses": promo.max_uses,
        },
    )
