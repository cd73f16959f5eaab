"""QRCode model - one issued, signed code.

Lifecycle:
    ACTIVE -> REVOKED   (revoke)
    ACTIVE -> EXPIRED   (lazy, when a scan finds expires_at in the past)
    ACTIVE -> REPLACED  (rotation; replaced_by points to the successor)

ACTIVE is the only non-terminal status. Records are never deleted: together
with CodeEvent they are the audit trail of every code ever printed.
"""

import secrets
import uuid

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils.translation import gettext_lazy as _

# No 0/O, 1/I/L: easy to read back over the phone
VERIFICATION_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
VERIFICATION_LENGTH = 6


def generate_unique_id() -> str:
    return str(uuid.uuid4())


def generate_verification_code() -> str:
    return "".join(secrets.choice(VERIFICATION_ALPHABET) for _ in range(VERIFICATION_LENGTH))


class CodeType(models.TextChoices):
    CUSTOMER_CARD = "CUSTOMER_CARD", _("Customer card")
    LOYALTY_CARD = "LOYALTY_CARD", _("Loyalty card")
    PROMO_CODE = "PROMO_CODE", _("Promo code")
    MASTER_CARD = "MASTER_CARD", _("Master card")


class CodeStatus(models.TextChoices):
    ACTIVE = "ACTIVE", _("Active")
    REVOKED = "REVOKED", _("Revoked")
    EXPIRED = "EXPIRED", _("Expired")
    REPLACED = "REPLACED", _("Replaced")


class QRCode(models.Model):
    """
    Issued code.

    The payload is the only trusted description of what the code refers to.
    A scan only supplies unique_id; every business-relevant field is re-read
    from here at validation time.

    Rules:
    - unique_id is globally unique and opaque
    - Only 1 ACTIVE is_primary=True per (owner_id, code_type)
    - uses_count / last_used_at never decrease
    """

    unique_id = models.CharField(
        _("unique ID"),
        max_length=64,
        unique=True,
        default=generate_unique_id,
        editable=False,
    )

    # Ownership
    owner_id = models.PositiveBigIntegerField(_("owner (customer) ID"), db_index=True)
    business_id = models.PositiveBigIntegerField(
        _("business ID"),
        null=True,
        blank=True,
        db_index=True,
    )

    code_type = models.CharField(
        _("type"),
        max_length=20,
        choices=CodeType.choices,
    )
    payload = models.JSONField(_("payload"), default=dict, encoder=DjangoJSONEncoder)
    image_url = models.URLField(_("image URL"), max_length=500, blank=True)

    status = models.CharField(
        _("status"),
        max_length=10,
        choices=CodeStatus.choices,
        default=CodeStatus.ACTIVE,
        db_index=True,
    )
    verification_code = models.CharField(
        _("verification code"),
        max_length=VERIFICATION_LENGTH,
        default=generate_verification_code,
        help_text=_("Manual fallback when the code cannot be scanned."),
    )
    is_primary = models.BooleanField(_("primary"), default=False)

    # Usage
    uses_count = models.PositiveIntegerField(_("uses"), default=0)
    last_used_at = models.DateTimeField(_("last used at"), null=True, blank=True)

    # Lifecycle
    expires_at = models.DateTimeField(_("expires at"), null=True, blank=True)
    revoked_reason = models.CharField(_("revoked reason"), max_length=255, blank=True)
    revoked_at = models.DateTimeField(_("revoked at"), null=True, blank=True)
    replaced_by = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        related_name="replaces",
        null=True,
        blank=True,
        verbose_name=_("replaced by"),
    )
    previous_unique_id = models.CharField(
        _("previous unique ID"),
        max_length=64,
        blank=True,
        db_index=True,
    )

    signature = models.CharField(_("signature"), max_length=128)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        db_table = "scanman_qrcode"
        verbose_name = _("QR code")
        verbose_name_plural = _("QR codes")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["owner_id", "code_type"],
                condition=models.Q(is_primary=True, status="ACTIVE"),
                name="scanman_unique_active_primary_per_type",
            ),
        ]
        indexes = [
            models.Index(
                fields=["owner_id", "code_type", "status"],
                name="scanman_qrcode_owner_idx",
            ),
            models.Index(fields=["status", "expires_at"], name="scanman_qrcode_expiry_idx"),
        ]

    def __str__(self):
        primary = " [primary]" if self.is_primary else ""
        return f"{self.code_type} {self.unique_id[:8]} ({self.status}){primary}"

    @property
    def is_active(self) -> bool:
        return self.status == CodeStatus.ACTIVE

    def qr_content(self) -> dict:
        """What gets encoded into the printed image: payload plus signature."""
        return {**self.payload, "signature": self.signature}
