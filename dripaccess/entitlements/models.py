"""
Entitlement models.

A Subscription is the time-bounded right to drip or full content. It is
created from a captured payment, an administrative grant, or a free trial;
only payment subscriptions reference an Order, and at most one subscription
exists per order.

A WebinarGrant is the right to one paid webinar and never touches
subscriptions.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone
from model_utils.models import TimeStampedModel

from dripaccess.entitlements.constants import EntitlementReason
from dripaccess.payments.constants import PlanType


class Subscription(TimeStampedModel):
    """
    A user's FourDay or SixMonth plan.

    ``unlocked_content`` holds the serialized UnlockState for FourDay plans
    (see ``dripaccess.entitlements.schedule.UnlockState``) and is null for
    SixMonth plans.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="subscriptions",
    )
    order = models.OneToOneField(
        "payments.Order",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="subscription",
        help_text="Captured order this subscription was resolved from.",
    )
    plan_type = models.CharField(max_length=20, choices=PlanType.choices)
    reason = models.CharField(
        max_length=20,
        choices=EntitlementReason.choices,
        default=EntitlementReason.PAYMENT,
    )
    granted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Staff user who issued an administrative grant.",
    )
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    is_active = models.BooleanField(default=True)
    unlocked_content = models.JSONField(null=True, blank=True)
    deactivated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-start_date"]
        indexes = [
            models.Index(
                fields=["user", "is_active"],
                name="subscription_user_active_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(
                    plan_type__in=[PlanType.FOUR_DAY, PlanType.SIX_MONTH],
                ),
                name="subscription_plan_is_subscription",
            ),
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="subscription_end_after_start",
            ),
            models.UniqueConstraint(
                fields=["user"],
                condition=models.Q(reason=EntitlementReason.FREE_TRIAL),
                name="one_free_trial_per_user",
            ),
        ]

    def __str__(self):
        return f"{self.user_id} {self.plan_type} ({self.get_reason_display()})"

    def is_valid_at(self, now=None) -> bool:
        """Active and not past end_date. No grace period."""
        now = now or timezone.now()
        return self.is_active and now <= self.end_date


class WebinarGrant(TimeStampedModel):
    """Access to a single paid webinar, created from a captured order."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="webinar_grants",
    )
    webinar = models.ForeignKey(
        "catalog.Webinar",
        on_delete=models.PROTECT,
        related_name="grants",
    )
    order = models.ForeignKey(
        "payments.Order",
        on_delete=models.PROTECT,
        related_name="webinar_grants",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["-created"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "webinar", "order"],
                name="unique_webinar_grant_per_order",
            ),
        ]

    def __str__(self):
        return f"{self.user_id} webinar={self.webinar_id}"
