"""Entity directory protocol.

Customers, businesses, loyalty programs, cards and promotions are owned by
other apps. Scanman only reads them, through this protocol.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class CustomerInfo:
    """Customer as seen by the scanner."""

    id: int
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class BusinessInfo:
    """Business that owns programs, promotions and scanners."""

    id: int
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class ProgramInfo:
    """Loyalty program run by a business."""

    id: int
    business_id: int
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class CardInfo:
    """A customer's enrollment card in a program."""

    id: int
    customer_id: int
    program_id: int
    business_id: int
    points: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class PromoInfo:
    """Promotion redeemable by scanning a PROMO_CODE."""

    id: int
    business_id: int
    code: str
    is_active: bool = True
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    max_uses: int | None = None  # None = unlimited
    discount: str | None = None


@runtime_checkable
class EntityDirectory(Protocol):
    """
    Protocol for looking up the entities a code refers to.

    Configuration in settings.py:
        SCANMAN = {
            "DIRECTORY_BACKEND": "myproject.loyalty.adapters.LoyaltyDirectory",
        }

    Every lookup returns None when the entity does not exist. Inactive
    entities are returned with is_active=False.
    """

    def lookup_customer(self, customer_id: int) -> CustomerInfo | None:
        ...

    def lookup_business(self, business_id: int) -> BusinessInfo | None:
        ...

    def lookup_program(self, program_id: int) -> ProgramInfo | None:
        ...

    def lookup_card(self, card_id: int) -> CardInfo | None:
        ...

    def find_card(self, customer_id: int, program_id: int) -> CardInfo | None:
        """Card linking customer to program, if enrolled."""
        ...

    def customer_cards(self, customer_id: int, business_id: int) -> list[CardInfo]:
        """All of the customer's cards in the business's programs."""
        ...

    def business_programs(self, business_id: int) -> list[ProgramInfo]:
        """Active programs the customer could enroll in."""
        ...

    def lookup_promo(self, promo_id: int) -> PromoInfo | None:
        ...
