"""CustomerBusinessLink model - which businesses have seen which customers."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class CustomerBusinessLink(models.Model):
    """
    Customer <-> business relationship built from customer card scans.

    Created on the first scan of a customer at a business, then touched on
    every later scan (interaction_count + 1, last_interaction_at refreshed).
    """

    customer_id = models.PositiveBigIntegerField(_("customer ID"))
    business_id = models.PositiveBigIntegerField(_("business ID"), db_index=True)
    interaction_count = models.PositiveIntegerField(_("interactions"), default=1)
    first_interaction_at = models.DateTimeField(_("first interaction at"), auto_now_add=True)
    last_interaction_at = models.DateTimeField(_("last interaction at"))

    class Meta:
        db_table = "scanman_customer_business_link"
        verbose_name = _("customer-business link")
        verbose_name_plural = _("customer-business links")
        constraints = [
            models.UniqueConstraint(
                fields=["customer_id", "business_id"],
                name="scanman_unique_customer_business",
            ),
        ]

    def __str__(self):
        return f"customer {self.customer_id} @ business {self.business_id} ({self.interaction_count}x)"
