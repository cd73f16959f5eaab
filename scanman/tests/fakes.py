"""In-memory collaborators for tests.

State lives on the class, so it survives backends.reset() (which happens on
every SCANMAN override) and is wiped explicitly with clear().
"""

from scanman.protocols import (
    BusinessInfo,
    CardInfo,
    CustomerInfo,
    ProgramInfo,
    PromoInfo,
)


class InMemoryDirectory:
    """EntityDirectory over plain dicts. Populate via add()."""

    customers: dict[int, CustomerInfo] = {}
    businesses: dict[int, BusinessInfo] = {}
    programs: dict[int, ProgramInfo] = {}
    cards: dict[int, CardInfo] = {}
    promos: dict[int, PromoInfo] = {}

    @classmethod
    def clear(cls):
        for store in (cls.customers, cls.businesses, cls.programs, cls.cards, cls.promos):
            store.clear()

    def add(self, *entities):
        stores = {
            CustomerInfo: self.customers,
            BusinessInfo: self.businesses,
            ProgramInfo: self.programs,
            CardInfo: self.cards,
            PromoInfo: self.promos,
        }
        for entity in entities:
            stores[type(entity)][entity.id] = entity

    def lookup_customer(self, customer_id):
        return self.customers.get(customer_id)

    def lookup_business(self, business_id):
        return self.businesses.get(business_id)

    def lookup_program(self, program_id):
        return self.programs.get(program_id)

    def lookup_card(self, card_id):
        return self.cards.get(card_id)

    def find_card(self, customer_id, program_id):
        for card in self.cards.values():
            if card.customer_id == customer_id and card.program_id == program_id:
                return card
        return None

    def customer_cards(self, customer_id, business_id):
        return [
            c for c in self.cards.values()
            if c.customer_id == customer_id and c.business_id == business_id
        ]

    def business_programs(self, business_id):
        return [p for p in self.programs.values() if p.business_id == business_id]

    def lookup_promo(self, promo_id):
        return self.promos.get(promo_id)


class RecordingLedger:
    """PointsLedger that keeps balances and a call log."""

    balances: dict[int, int] = {}
    calls: list[tuple[int, int, str]] = []

    @classmethod
    def clear(cls):
        cls.balances.clear()
        cls.calls.clear()

    def award_points(self, card_id, amount, source):
        self.calls.append((card_id, amount, source))
        self.balances[card_id] = self.balances.get(card_id, 0) + amount
        return self.balances[card_id]


class RecordingNotifier:
    """Notifier that records what would have been sent."""

    sent: list[tuple[int, str, dict]] = []

    @classmethod
    def clear(cls):
        cls.sent.clear()

    def notify(self, customer_id, kind, payload):
        self.sent.append((customer_id, kind, payload))
