"""ScanDailyStat model - per-day scan counters for analytics."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class ScanDailyStat(models.Model):
    """
    Daily scan counters per (business, code type).

    Best-effort: updated after the scan record is written and allowed to
    fall behind if the write fails.
    """

    business_id = models.PositiveBigIntegerField(_("business ID"))
    day = models.DateField(_("day"))
    code_type = models.CharField(_("code type"), max_length=20, blank=True)

    total = models.PositiveIntegerField(default=0)
    valid = models.PositiveIntegerField(default=0)
    invalid = models.PositiveIntegerField(default=0)
    suspicious = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "scanman_scan_daily_stat"
        verbose_name = _("daily scan stat")
        verbose_name_plural = _("daily scan stats")
        constraints = [
            models.UniqueConstraint(
                fields=["business_id", "day", "code_type"],
                name="scanman_unique_daily_stat",
            ),
        ]

    def __str__(self):
        return f"{self.day} business {self.business_id} {self.code_type}: {self.total}"
