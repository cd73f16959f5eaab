"""
Payload shape tests.

Tests for:
- Parsing each code type into its variant
- Required fields per type
- Tag mismatch and malformed JSON
- Unsupported types
"""

import json

import pytest

from scanman.exceptions import ValidationError
from scanman.payloads import (
    CustomerCardPayload,
    LoyaltyCardPayload,
    PromoPayload,
    UnknownPayload,
    parse_payload,
)


class TestParsePayload:
    """Raw scanned content -> tagged union variant."""

    def test_customer_card(self):
        payload = parse_payload(
            "CUSTOMER_CARD",
            {"type": "CUSTOMER_CARD", "unique_id": "u-1", "customer_id": "42", "signature": "x.1"},
        )
        assert payload == CustomerCardPayload(unique_id="u-1", customer_id=42, signature="x.1")

    def test_loyalty_card(self):
        payload = parse_payload(
            "LOYALTY_CARD",
            {"type": "LOYALTY_CARD", "unique_id": "u-2", "customer_id": 42, "program_id": 3},
        )
        assert isinstance(payload, LoyaltyCardPayload)
        assert payload.program_id == 3
        assert payload.card_id is None

    def test_promo(self):
        payload = parse_payload(
            "PROMO_CODE",
            {"type": "PROMO_CODE", "unique_id": "u-3", "promo_id": 11, "code": "WELCOME10"},
        )
        assert isinstance(payload, PromoPayload)
        assert payload.code == "WELCOME10"

    def test_json_string_accepted(self):
        raw = json.dumps({"type": "CUSTOMER_CARD", "unique_id": "u-1", "customer_id": 42})
        assert isinstance(parse_payload("CUSTOMER_CARD", raw), CustomerCardPayload)

    def test_unsupported_type(self):
        """MASTER_CARD has no handler: parsed as UnknownPayload."""
        payload = parse_payload("MASTER_CARD", {"type": "MASTER_CARD", "unique_id": "u-4"})
        assert isinstance(payload, UnknownPayload)
        assert payload.code_type == "MASTER_CARD"


class TestShapeErrors:
    """Malformed content raises ValidationError(INVALID_PAYLOAD)."""

    def test_invalid_json(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload("CUSTOMER_CARD", "{not json")
        assert exc_info.value.code == "INVALID_PAYLOAD"

    def test_not_an_object(self):
        with pytest.raises(ValidationError):
            parse_payload("CUSTOMER_CARD", "[1, 2]")

    def test_tag_mismatch(self):
        with pytest.raises(ValidationError, match="type mismatch"):
            parse_payload("LOYALTY_CARD", {"type": "CUSTOMER_CARD", "unique_id": "u", "customer_id": 1})

    @pytest.mark.parametrize(
        "code_type,data,missing",
        [
            ("CUSTOMER_CARD", {"customer_id": 1}, "unique_id"),
            ("CUSTOMER_CARD", {"unique_id": "u"}, "customer_id"),
            ("LOYALTY_CARD", {"unique_id": "u", "customer_id": 1}, "program_id"),
            ("PROMO_CODE", {"unique_id": "u", "promo_id": 1}, "code"),
        ],
    )
    def test_required_fields(self, code_type, data, missing):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(code_type, {"type": code_type, **data})
        assert exc_info.value.context["field"] == missing

    @pytest.mark.parametrize("value", [0, -5, "abc", True])
    def test_ids_must_be_positive_integers(self, value):
        with pytest.raises(ValidationError):
            parse_payload("CUSTOMER_CARD", {"type": "CUSTOMER_CARD", "unique_id": "u", "customer_id": value})
