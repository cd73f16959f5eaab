"""Scan model - one scan attempt and how it ended."""

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils.translation import gettext_lazy as _


class ScanState(models.TextChoices):
    """Dispatcher states. Only the terminal ones are ever persisted."""

    PENDING = "PENDING", _("Pending")
    PROCESSING = "PROCESSING", _("Processing")
    RATE_LIMITED = "RATE_LIMITED", _("Rate limited")
    INVALID = "INVALID", _("Invalid")
    SUCCESS = "SUCCESS", _("Success")
    FAILED = "FAILED", _("Failed")


TERMINAL_STATES = frozenset(
    {ScanState.RATE_LIMITED, ScanState.INVALID, ScanState.SUCCESS, ScanState.FAILED}
)


class ScanVerdict(models.TextChoices):
    VALID = "VALID", _("Valid")
    INVALID = "INVALID", _("Invalid")
    SUSPICIOUS = "SUSPICIOUS", _("Suspicious")


class Scan(models.Model):
    """
    Immutable record of a scan attempt.

    Written once per attempt, whatever the result (including rate-limited
    attempts and unexpected failures). code is null when the attempt ended
    before a code was resolved.
    """

    code = models.ForeignKey(
        "scanman.QRCode",
        on_delete=models.PROTECT,
        related_name="scans",
        null=True,
        blank=True,
        verbose_name=_("code"),
    )
    code_type = models.CharField(_("code type"), max_length=20, blank=True)
    # Null when the request named no valid business
    scanned_by_business_id = models.PositiveBigIntegerField(
        _("scanned by (business ID)"),
        null=True,
        blank=True,
        db_index=True,
    )
    source_address = models.CharField(_("source address"), max_length=64, blank=True)

    state = models.CharField(_("state"), max_length=12, choices=ScanState.choices)
    outcome = models.CharField(_("outcome"), max_length=10, choices=ScanVerdict.choices)
    error_code = models.CharField(_("error code"), max_length=50, blank=True)
    message = models.CharField(_("message"), max_length=255, blank=True)

    points_awarded = models.IntegerField(_("points awarded"), null=True, blank=True)
    result_detail = models.JSONField(
        _("result detail"),
        default=dict,
        blank=True,
        encoder=DjangoJSONEncoder,
    )

    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    class Meta:
        db_table = "scanman_scan"
        verbose_name = _("scan")
        verbose_name_plural = _("scans")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["scanned_by_business_id", "-created_at"],
                name="scanman_scan_business_idx",
            ),
        ]

    def __str__(self):
        return f"{self.state} by business {self.scanned_by_business_id}"
