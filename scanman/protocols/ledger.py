"""Points ledger and notifier protocols (outbound side effects)."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class PointsLedger(Protocol):
    """
    Protocol for awarding loyalty points.

    Scans never call this on their own: awarding is an explicit operator
    action (scanman.services.dispatcher.award_points).
    """

    def award_points(self, card_id: int, amount: int, source: str) -> int:
        """Credit amount points to card_id. Returns the new balance."""
        ...


@runtime_checkable
class Notifier(Protocol):
    """Protocol for customer notifications (rendering and delivery live elsewhere)."""

    def notify(self, customer_id: int, kind: str, payload: dict) -> None:
        ...
