"""
Scanman Gates - Scan validation rules, applied in order.

V1: PayloadShape - Scanned data is an object of the expected type
V2: CodeLookup - A persisted code exists for (unique_id, code_type)
V3: CodeStatus - The code is ACTIVE
V4: CodeSignature - Stored signature verifies; scanned signature matches it
V5: CodeExpiry - expires_at has not passed (flips the code to EXPIRED if so)
V6: RotationDue - The code is younger than ROTATION_INTERVAL_DAYS
V7: EntityLiveness - Customer, program, card and business are still active

Each gate raises a ScanmanError subclass on failure and returns a GateResult
otherwise. check_* variants return bool instead of raising.
"""

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from django.utils import timezone

from scanman.conf import scanman_settings
from scanman.exceptions import (
    ExpirationError,
    ScanmanError,
    SecurityError,
    ValidationError,
)
from scanman.models import CodeStatus, CodeType, QRCode
from scanman.payloads import UnknownPayload, parse_payload
from scanman.signing import get_signer

logger = logging.getLogger(__name__)


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""
    value: Any = None


# =============================================================================
# Gates
# =============================================================================


class Gates:
    """Scanman validation gates."""

    # =========================================================================
    # V1: Payload Shape
    # =========================================================================

    @classmethod
    def payload_shape(cls, code_type: str, raw) -> GateResult:
        """
        V1: Scanned data parses into the variant for code_type.

        Args:
            code_type: Type the scanner expects
            raw: Scanned content (dict, JSON string or bytes)

        Returns:
            GateResult with value=the parsed payload variant

        Raises:
            ValidationError: INVALID_PAYLOAD or UNSUPPORTED_CODE_TYPE
        """
        payload = parse_payload(code_type, raw)
        if isinstance(payload, UnknownPayload):
            raise ValidationError(
                "UNSUPPORTED_CODE_TYPE",
                message=f"unsupported code type: {code_type}",
            )
        return GateResult(True, "V1_PayloadShape", value=payload)

    @classmethod
    def check_payload_shape(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.payload_shape(*args, **kwargs)
            return True
        except ScanmanError:
            return False

    # =========================================================================
    # V2: Code Lookup
    # =========================================================================

    @classmethod
    def code_lookup(cls, unique_id: str, code_type: str) -> GateResult:
        """
        V2: Persisted code exists for (unique_id, code_type).

        A missing code and a code of another type are indistinguishable to
        the caller.

        Returns:
            GateResult with value=the QRCode

        Raises:
            ValidationError: CODE_NOT_FOUND
        """
        code = QRCode.objects.filter(unique_id=unique_id, code_type=code_type).first()
        if code is None:
            raise ValidationError("CODE_NOT_FOUND")
        return GateResult(True, "V2_CodeLookup", value=code)

    @classmethod
    def check_code_lookup(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.code_lookup(*args, **kwargs)
            return True
        except ScanmanError:
            return False

    # =========================================================================
    # V3: Code Status
    # =========================================================================

    @classmethod
    def code_status(cls, code: QRCode) -> GateResult:
        """
        V3: Code must be ACTIVE.

        Raises:
            ExpirationError: CODE_EXPIRED for EXPIRED codes
            ValidationError: CODE_NOT_ACTIVE for REVOKED / REPLACED codes
        """
        if code.status == CodeStatus.ACTIVE:
            return GateResult(True, "V3_CodeStatus")

        message = f"code is {code.status.lower()}"
        if code.status == CodeStatus.EXPIRED:
            raise ExpirationError("CODE_EXPIRED", message=message, qrcode=code)
        raise ValidationError("CODE_NOT_ACTIVE", message=message, qrcode=code)

    @classmethod
    def check_code_status(cls, code: QRCode) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.code_status(code)
            return True
        except ScanmanError:
            return False

    # =========================================================================
    # V4: Code Signature
    # =========================================================================

    @classmethod
    def code_signature(
        cls,
        code: QRCode,
        scanned_signature: str | None = None,
        now: float | None = None,
    ) -> GateResult:
        """
        V4: Stored signature verifies against the stored payload, and the
        scanned signature (when present) is the stored one.

        Nothing is written on failure.

        Raises:
            SecurityError: SIGNATURE_INVALID
        """
        signer = get_signer()
        intact = signer.verify(code.payload, code.signature, now=now)
        if intact and scanned_signature is not None:
            intact = hmac.compare_digest(
                scanned_signature.encode(),
                code.signature.encode(),
            )

        if not intact:
            logger.error(
                "Signature check failed for code %s (%s, owner %s)",
                code.unique_id,
                code.code_type,
                code.owner_id,
            )
            raise SecurityError("SIGNATURE_INVALID", qrcode=code)

        return GateResult(True, "V4_CodeSignature")

    @classmethod
    def check_code_signature(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.code_signature(*args, **kwargs)
            return True
        except ScanmanError:
            return False

    # =========================================================================
    # V5: Code Expiry
    # =========================================================================

    @classmethod
    def code_expiry(cls, code: QRCode, now: datetime | None = None) -> GateResult:
        """
        V5: expires_at has not passed.

        An overdue code is flipped ACTIVE -> EXPIRED (in its own transaction,
        so the flip survives whatever the caller does next) before raising.

        Raises:
            ExpirationError: CODE_EXPIRED
        """
        from scanman.services import issuer

        now = now or timezone.now()
        if code.expires_at is None or code.expires_at > now:
            return GateResult(True, "V5_CodeExpiry")

        if issuer.mark_expired(code.pk):
            logger.info("Code %s expired on scan", code.unique_id)
        code.status = CodeStatus.EXPIRED
        raise ExpirationError("CODE_EXPIRED", qrcode=code)

    @classmethod
    def check_code_expiry(cls, code: QRCode, now: datetime | None = None) -> bool:
        """Check without raising (returns bool). Still expires overdue codes."""
        try:
            cls.code_expiry(code, now)
            return True
        except ScanmanError:
            return False

    # =========================================================================
    # V6: Rotation Due
    # =========================================================================

    @classmethod
    def rotation_due(cls, code: QRCode, now: datetime | None = None) -> GateResult:
        """
        V6: Code is not older than ROTATION_INTERVAL_DAYS (0 disables).

        Raises:
            ExpirationError: CODE_REFRESH_REQUIRED
        """
        interval_days = scanman_settings.ROTATION_INTERVAL_DAYS
        if not interval_days:
            return GateResult(True, "V6_RotationDue", "Rotation disabled")

        now = now or timezone.now()
        if now - code.created_at > timedelta(days=interval_days):
            raise ExpirationError("CODE_REFRESH_REQUIRED", qrcode=code)

        return GateResult(True, "V6_RotationDue")

    @classmethod
    def check_rotation_due(cls, code: QRCode, now: datetime | None = None) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.rotation_due(code, now)
            return True
        except ScanmanError:
            return False

    # =========================================================================
    # V7: Entity Liveness
    # =========================================================================

    @classmethod
    def entity_liveness(cls, code: QRCode, directory) -> GateResult:
        """
        V7: Entities the code refers to still exist and are active.

        - owning customer (every type)
        - program and the customer's card in it (LOYALTY_CARD)
        - related business, when the code has one

        Raises:
            ExpirationError: ENTITY_INACTIVE
        """
        customer = directory.lookup_customer(code.owner_id)
        if customer is None or not customer.is_active:
            raise cls._inactive(code, "customer", code.owner_id)

        if code.code_type == CodeType.LOYALTY_CARD:
            program_id = code.payload.get("program_id")
            program = directory.lookup_program(program_id)
            if program is None or not program.is_active:
                raise cls._inactive(code, "program", program_id)

            card_id = code.payload.get("card_id")
            if card_id:
                card = directory.lookup_card(card_id)
            else:
                card = directory.find_card(code.owner_id, program_id)
            if (
                card is None
                or not card.is_active
                or card.customer_id != code.owner_id
                or card.program_id != program.id
            ):
                raise cls._inactive(code, "card", card_id)

        if code.business_id is not None:
            business = directory.lookup_business(code.business_id)
            if business is None or not business.is_active:
                raise cls._inactive(code, "business", code.business_id)

        return GateResult(True, "V7_EntityLiveness")

    @classmethod
    def check_entity_liveness(cls, code: QRCode, directory) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.entity_liveness(code, directory)
            return True
        except ScanmanError:
            return False

    @staticmethod
    def _inactive(code: QRCode, entity: str, entity_id) -> ExpirationError:
        return ExpirationError(
            "ENTITY_INACTIVE",
            message=f"{entity} is no longer active",
            qrcode=code,
            entity=entity,
            entity_id=entity_id,
        )
