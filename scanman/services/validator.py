"""Code validator - runs the scan gates in order.

    validate(code_type, raw)          -> CodeValidation (never raises for bad codes)
    validate_or_raise(code_type, raw) -> CodeValidation (raises ScanmanError)

Only the persisted payload leaves this module as trusted data. The scanned
fields are used for the shape check and the unique_id lookup, nothing else.
"""

import copy
import logging
from dataclasses import dataclass

from scanman.backends import get_directory
from scanman.exceptions import ScanmanError
from scanman.gates import Gates
from scanman.models import QRCode
from scanman.payloads import ScanPayload, from_record

logger = logging.getLogger(__name__)


@dataclass
class CodeValidation:
    """Code validation result."""

    valid: bool
    message: str = ""
    verified_payload: dict | None = None
    code: QRCode | None = None
    payload: ScanPayload | None = None
    error_code: str | None = None
    error: ScanmanError | None = None


def validate_or_raise(code_type: str, raw, directory=None) -> CodeValidation:
    """
    Validate scanned content.

    Raises:
        ValidationError: bad shape, unknown or non-active code
        SecurityError: signature failure
        ExpirationError: expired, due for rotation, or inactive entity
    """
    scanned = Gates.payload_shape(code_type, raw).value
    code = Gates.code_lookup(scanned.unique_id, code_type).value
    Gates.code_status(code)
    Gates.code_signature(code, scanned.signature)
    Gates.code_expiry(code)
    Gates.rotation_due(code)
    Gates.entity_liveness(code, directory or get_directory())

    return CodeValidation(
        valid=True,
        message="code is valid",
        verified_payload=copy.deepcopy(code.payload),
        code=code,
        payload=from_record(code.code_type, code.payload),
    )


def validate(code_type: str, raw, directory=None) -> CodeValidation:
    """Validate scanned content, reporting failures in the result."""
    try:
        return validate_or_raise(code_type, raw, directory)
    except ScanmanError as exc:
        logger.warning("Code validation failed (%s): %s", exc.code, exc.message)
        return CodeValidation(
            valid=False,
            message=exc.message,
            code=exc.context.get("qrcode"),
            error_code=exc.code,
            error=exc,
        )
