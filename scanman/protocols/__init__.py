"""Scanman protocols."""

from scanman.protocols.directory import (
    BusinessInfo,
    CardInfo,
    CustomerInfo,
    EntityDirectory,
    ProgramInfo,
    PromoInfo,
)
from scanman.protocols.ledger import (
    Notifier,
    PointsLedger,
)

__all__ = [
    # Directory
    "EntityDirectory",
    "CustomerInfo",
    "BusinessInfo",
    "ProgramInfo",
    "CardInfo",
    "PromoInfo",
    # Side effects
    "PointsLedger",
    "Notifier",
]
