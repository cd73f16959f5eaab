"""Promotion models - recorded promo code uses and per-promo usage counters."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class PromoRedemption(models.Model):
    """
    One redemption of a promotion, recorded by a PROMO_CODE scan.

    The cap itself is enforced on PromoUsage, whose row is locked for the
    whole redemption.
    """

    code = models.ForeignKey(
        "scanman.QRCode",
        on_delete=models.PROTECT,
        related_name="redemptions",
        verbose_name=_("code"),
    )
    promo_id = models.PositiveBigIntegerField(_("promotion ID"), db_index=True)
    promo_code = models.CharField(_("promo code"), max_length=100)
    business_id = models.PositiveBigIntegerField(_("business ID"))
    customer_id = models.PositiveBigIntegerField(_("customer ID"))
    redeemed_at = models.DateTimeField(_("redeemed at"), auto_now_add=True, db_index=True)

    class Meta:
        db_table = "scanman_promo_redemption"
        verbose_name = _("promo redemption")
        verbose_name_plural = _("promo redemptions")
        ordering = ["-redeemed_at"]

    def __str__(self):
        return f"{self.promo_code} by customer {self.customer_id}"


class PromoUsage(models.Model):
    """
    Usage counter per promotion.

    One row per promo_id. The PROMO_CODE handler locks it with
    select_for_update() before comparing uses against PromoInfo.max_uses,
    so concurrent redemptions through different codes of the same promo
    are serialized.
    """

    promo_id = models.PositiveBigIntegerField(_("promotion ID"), unique=True)
    uses = models.PositiveIntegerField(_("uses"), default=0)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        db_table = "scanman_promo_usage"
        verbose_name = _("promo usage")
        verbose_name_plural = _("promo usages")

    def __str__(self):
        return f"promo {self.promo_id}: {self.uses} uses"
