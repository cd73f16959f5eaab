"""CodeEvent model - append-only lifecycle log per code."""

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils.translation import gettext_lazy as _


class CodeEventType(models.TextChoices):
    ISSUED = "ISSUED", _("Issued")
    REVOKED = "REVOKED", _("Revoked")
    EXPIRED = "EXPIRED", _("Expired")
    REPLACED = "REPLACED", _("Replaced")


class CodeEvent(models.Model):
    """
    One lifecycle transition of a QRCode.

    Written in the same transaction as the transition itself, so an event
    exists if and only if the transition was committed.
    """

    code = models.ForeignKey(
        "scanman.QRCode",
        on_delete=models.PROTECT,
        related_name="events",
        verbose_name=_("code"),
    )
    event_type = models.CharField(
        _("type"),
        max_length=10,
        choices=CodeEventType.choices,
        db_index=True,
    )
    data = models.JSONField(_("data"), default=dict, blank=True, encoder=DjangoJSONEncoder)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    class Meta:
        db_table = "scanman_code_event"
        verbose_name = _("code event")
        verbose_name_plural = _("code events")
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"[{self.event_type}] code {self.code_id}"
