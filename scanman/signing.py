"""
Code signatures.

A signature binds a payload to the moment it was issued:

    signature = "<hmac-sha256 hex>.<issued_at>"
    hmac input = canonical_json(payload) + "|" + str(issued_at)

Because issued_at is part of the MAC input, a signature cannot be moved to a
different issuance time. verify() also enforces a validity window, so even an
intact signature stops verifying once it is older than
SIGNATURE_VALIDITY_DAYS.
"""

import hashlib
import hmac
import json
import logging
import time
from functools import lru_cache

from django.core.serializers.json import DjangoJSONEncoder

from scanman.conf import scanman_settings

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def canonical_json(payload) -> str:
    """Deterministic JSON used as MAC input (sorted keys, compact)."""
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        cls=DjangoJSONEncoder,
    )


def issued_at_of(signature: str) -> int | None:
    """Extract the embedded issuance timestamp, or None if malformed."""
    if not signature or signature.count(".") != 1:
        return None
    _, _, ts = signature.partition(".")
    try:
        return int(ts)
    except ValueError:
        return None


class CodeSigner:
    """HMAC-SHA256 signer with an embedded issuance timestamp."""

    def __init__(
        self,
        secret: str,
        validity_days: int = 180,
        clock_skew_seconds: int = 300,
    ):
        if not secret:
            raise ValueError("A signing secret is required.")
        self._key = secret.encode()
        self.validity_seconds = validity_days * SECONDS_PER_DAY
        self.clock_skew_seconds = clock_skew_seconds

    def _digest(self, payload, issued_at: int) -> str:
        message = f"{canonical_json(payload)}|{issued_at}".encode()
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()

    def sign(self, payload, issued_at: int) -> str:
        """Sign payload at issued_at (unix seconds)."""
        issued_at = int(issued_at)
        return f"{self._digest(payload, issued_at)}.{issued_at}"

    def verify(self, payload, signature: str, now: float | None = None) -> bool:
        """
        Check signature against payload.

        Returns False for malformed signatures, MAC mismatch, signatures older
        than the validity window and signatures dated in the future beyond the
        allowed clock skew.
        """
        issued_at = issued_at_of(signature)
        if issued_at is None:
            return False

        now = time.time() if now is None else now
        age = now - issued_at
        if age > self.validity_seconds:
            logger.info("Signature outside validity window (age=%ss)", int(age))
            return False
        if age < -self.clock_skew_seconds:
            return False

        digest, _, _ = signature.partition(".")
        expected = self._digest(payload, issued_at)
        return hmac.compare_digest(digest.encode(), expected.encode())


@lru_cache(maxsize=1)
def get_signer() -> CodeSigner:
    """Process-wide signer, built once from settings."""
    return CodeSigner(
        secret=scanman_settings.signing_secret,
        validity_days=scanman_settings.SIGNATURE_VALIDITY_DAYS,
        clock_skew_seconds=scanman_settings.SIGNATURE_CLOCK_SKEW_SECONDS,
    )
