"""
Scanman public API.

CORE (essential):
    CodeService.issue(...)     - Issue a signed code
    CodeService.validate(...)  - Validate scanned content
    CodeService.scan(...)      - Run the full scan pipeline
    CodeService.rotate(id)     - Replace a code with a fresh one

CONVENIENCE (helpers):
    CodeService.get(unique_id)            - Get code by unique ID
    CodeService.primary(owner_id, type)   - Owner's current code
    CodeService.customer_code(owner_id)   - Get or issue the customer card
    CodeService.revoke(id, reason)        - Revoke a code
    CodeService.award_points(scan, ...)   - Operator points award
"""

from datetime import datetime

from scanman.models import QRCode, Scan
from scanman.services import dispatcher, issuer, rotation, validator
from scanman.services.dispatcher import PointsAward, ScanOutcome
from scanman.services.validator import CodeValidation


class CodeService:
    """
    Scanman public API.

    Uses @classmethod so projects can subclass and override single steps.
    """

    # ======================================================================
    # CORE API
    # ======================================================================

    @classmethod
    def issue(
        cls,
        owner_id: int,
        code_type: str,
        payload: dict | None = None,
        *,
        business_id: int | None = None,
        image_url: str | None = None,
        is_primary: bool = False,
        expires_at: datetime | None = None,
    ) -> QRCode:
        """
        Issue a new signed code.

        Raises:
            IssuanceError: invalid owner, business, type or payload
        """
        return issuer.issue(
            owner_id,
            business_id,
            code_type,
            payload,
            image_url=image_url,
            is_primary=is_primary,
            expires_at=expires_at,
        )

    @classmethod
    def validate(cls, code_type: str, raw) -> CodeValidation:
        """Validate scanned content without side effects on the scan log."""
        return validator.validate(code_type, raw)

    @classmethod
    def scan(
        cls,
        code_type: str,
        scanner_business_id: int,
        raw,
        *,
        source_address: str = "",
        customer_ref=None,
        program_ref=None,
        promo_ref=None,
    ) -> ScanOutcome:
        """Process a scan (rate limit, validation, handler, audit)."""
        return dispatcher.dispatch(
            code_type,
            scanner_business_id,
            raw,
            source_address=source_address,
            customer_ref=customer_ref,
            program_ref=program_ref,
            promo_ref=promo_ref,
        )

    @classmethod
    def rotate(cls, code_id: int) -> QRCode | None:
        """Replace an ACTIVE code. Returns the successor or None."""
        return rotation.rotate(code_id)

    # ======================================================================
    # CONVENIENCE API
    # ======================================================================

    @classmethod
    def get(cls, unique_id: str) -> QRCode | None:
        """Get code by unique ID."""
        return issuer.get_by_unique_id(unique_id)

    @classmethod
    def primary(cls, owner_id: int, code_type: str) -> QRCode | None:
        """Owner's primary ACTIVE code of a type (newest ACTIVE as fallback)."""
        return issuer.get_primary(owner_id, code_type)

    @classmethod
    def customer_code(cls, owner_id: int) -> QRCode:
        """Current customer card code, issued on first request."""
        return issuer.ensure_customer_code(owner_id)

    @classmethod
    def revoke(cls, code_id: int, reason: str = "") -> bool:
        """Revoke an ACTIVE code."""
        return issuer.revoke(code_id, reason)

    @classmethod
    def award_points(cls, scan: Scan, card_id: int, amount: int, operator: str = "") -> PointsAward:
        """Award points after a successful scan."""
        return dispatcher.award_points(scan, card_id, amount, operator)
