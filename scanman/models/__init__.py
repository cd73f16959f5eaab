"""Scanman models.

- QRCode: issued, signed code (CodeType, CodeStatus)
- CodeEvent: lifecycle audit trail per code
- Scan: one record per scan attempt (ScanState, ScanVerdict)
- CustomerBusinessLink: customer <-> business relationship from scans
- PromoRedemption: recorded promo code uses
- PromoUsage: locked per-promo usage counter
- ScanDailyStat: daily analytics counters
"""

from scanman.models.code import CodeStatus, CodeType, QRCode
from scanman.models.event import CodeEvent, CodeEventType
from scanman.models.scan import TERMINAL_STATES, Scan, ScanState, ScanVerdict
from scanman.models.relationship import CustomerBusinessLink
from scanman.models.redemption import PromoRedemption, PromoUsage
from scanman.models.stats import ScanDailyStat

__all__ = [
    # Codes
    "QRCode",
    "CodeType",
    "CodeStatus",
    "CodeEvent",
    "CodeEventType",
    # Scans
    "Scan",
    "ScanState",
    "ScanVerdict",
    "TERMINAL_STATES",
    # Scan side effects
    "CustomerBusinessLink",
    "PromoRedemption",
    "PromoUsage",
    "ScanDailyStat",
]
