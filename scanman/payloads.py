"""
Scanned payloads as a tagged union.

A physical code carries JSON such as:

    {"type": "CUSTOMER_CARD", "unique_id": "...", "customer_id": 42,
     "issued_at": 1760000000, "signature": "ab12...e9.1760000000"}

parse_payload() turns that (dict or JSON string) into exactly one of
CustomerCardPayload, LoyaltyCardPayload, PromoPayload or UnknownPayload.
Code that branches on the variant must handle all four; see
scanman.services.handlers.handle().

Only unique_id is used to find the persisted record. The other fields are
checked for shape and never trusted afterwards.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Union

from scanman.exceptions import ValidationError
from scanman.models.code import CodeType


@dataclass(frozen=True)
class CustomerCardPayload:
    unique_id: str
    customer_id: int
    signature: str | None = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class LoyaltyCardPayload:
    unique_id: str
    customer_id: int
    program_id: int
    card_id: int | None = None
    business_id: int | None = None
    signature: str | None = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class PromoPayload:
    unique_id: str
    promo_id: int
    code: str
    business_id: int | None = None
    signature: str | None = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class UnknownPayload:
    code_type: str
    raw: dict = field(default_factory=dict, compare=False, repr=False)


ScanPayload = Union[CustomerCardPayload, LoyaltyCardPayload, PromoPayload, UnknownPayload]

# Required fields per type (besides the "type" tag)
REQUIRED_FIELDS = {
    CodeType.CUSTOMER_CARD: ("unique_id", "customer_id"),
    CodeType.LOYALTY_CARD: ("unique_id", "program_id", "customer_id"),
    CodeType.PROMO_CODE: ("unique_id", "promo_id", "code"),
}


def _as_dict(raw: Any) -> dict:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise ValidationError("INVALID_PAYLOAD", message="code contains invalid JSON")
    if not isinstance(raw, dict):
        raise ValidationError("INVALID_PAYLOAD", message="code data must be an object")
    return raw


def _as_id(data: dict, name: str) -> int:
    value = data.get(name)
    if isinstance(value, bool):
        value = None
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(
            "INVALID_PAYLOAD",
            message=f"{name} must be a positive identifier",
            field=name,
        )
    if value <= 0:
        raise ValidationError(
            "INVALID_PAYLOAD",
            message=f"{name} must be a positive identifier",
            field=name,
        )
    return value


def _optional_id(data: dict, name: str) -> int | None:
    if data.get(name) in (None, ""):
        return None
    return _as_id(data, name)


def _as_text(data: dict, name: str) -> str:
    value = data.get(name)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            "INVALID_PAYLOAD",
            message=f"{name} must be a non-empty string",
            field=name,
        )
    return value


def _signature(data: dict) -> str | None:
    sig = data.get("signature")
    return sig if isinstance(sig, str) else None


def parse_payload(code_type: str, raw: Any) -> ScanPayload:
    """
    Shape-check raw scanned data for code_type.

    Raises:
        ValidationError: not an object, wrong tag, or required field missing
    """
    data = _as_dict(raw)

    tag = data.get("type")
    if tag != code_type:
        raise ValidationError(
            "INVALID_PAYLOAD",
            message=f"code type mismatch: expected {code_type}",
            tag=tag,
        )

    required = REQUIRED_FIELDS.get(code_type)
    if required is None:
        return UnknownPayload(code_type=str(code_type), raw=data)

    for name in required:
        if data.get(name) in (None, ""):
            raise ValidationError(
                "INVALID_PAYLOAD",
                message=f"required field missing: {name}",
                field=name,
            )

    if code_type == CodeType.CUSTOMER_CARD:
        return CustomerCardPayload(
            unique_id=_as_text(data, "unique_id"),
            customer_id=_as_id(data, "customer_id"),
            signature=_signature(data),
            raw=data,
        )
    if code_type == CodeType.LOYALTY_CARD:
        return LoyaltyCardPayload(
            unique_id=_as_text(data, "unique_id"),
            customer_id=_as_id(data, "customer_id"),
            program_id=_as_id(data, "program_id"),
            card_id=_optional_id(data, "card_id"),
            business_id=_optional_id(data, "business_id"),
            signature=_signature(data),
            raw=data,
        )
    if code_type == CodeType.PROMO_CODE:
        return PromoPayload(
            unique_id=_as_text(data, "unique_id"),
            promo_id=_as_id(data, "promo_id"),
            code=_as_text(data, "code"),
            business_id=_optional_id(data, "business_id"),
            signature=_signature(data),
            raw=data,
        )
    return UnknownPayload(code_type=str(code_type), raw=data)


def from_record(code_type: str, payload: dict) -> ScanPayload:
    """Parse a persisted payload (already trusted) into its variant."""
    return parse_payload(code_type, payload)
