"""
Order ledger models.

An Order is created before the user pays and records the gateway outcome.
It is keyed by the gateway order id, which is the single lookup key used by
both the webhook and the client confirmation path. The gateway payment id is
stored (and unique) once known, but nothing looks orders up by it.
"""

from django.conf import settings
from django.db import models
from model_utils.models import TimeStampedModel

from dripaccess.payments.constants import DEFAULT_CURRENCY
from dripaccess.payments.constants import OrderStatus
from dripaccess.payments.constants import PlanType


class Order(TimeStampedModel):
    """
    A payment intent created at checkout.

    Immutable once CAPTURED apart from the payment linkage fields. CAPTURED
    and FAILED are terminal.
    """

    gateway_order_id = models.CharField(
        max_length=64,
        unique=True,
        help_text="Gateway order identifier (order_xxx).",
    )
    gateway_payment_id = models.CharField(
        max_length=64,
        unique=True,
        null=True,
        blank=True,
        help_text="Gateway payment identifier (pay_xxx), set on capture.",
    )
    gateway_signature = models.CharField(
        max_length=255,
        blank=True,
        help_text="Signature that accompanied the capture confirmation.",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Amount in major currency units.",
    )
    currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    plan_type = models.CharField(max_length=20, choices=PlanType.choices)
    webinar = models.ForeignKey(
        "catalog.Webinar",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )
    receipt = models.CharField(max_length=40, blank=True)
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    captured_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created"]
        indexes = [
            models.Index(fields=["user", "status"], name="order_user_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="order_amount_positive",
            ),
            models.CheckConstraint(
                condition=(
                    ~models.Q(plan_type=PlanType.PAID_WEBINAR)
                    | models.Q(webinar__isnull=False)
                ),
                name="order_paid_webinar_has_webinar",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.gateway_order_id} ({self.plan_type}, {self.status})"

    @property
    def amount_minor(self) -> int:
        """Amount in the currency's minor unit, as sent to the gateway."""
        return int((self.amount * 100).to_integral_value())


class UnappliedPayment(TimeStampedModel):
    """
    A verified capture whose entitlement could not be applied.

    The capture transaction rolls back on failure, so the order stays PENDING
    while the gateway has already taken the money. This row is written outside
    that transaction so operators can replay the capture once the cause is
    fixed. ``resolved_at`` is set when a later capture of the same order
    succeeds, whether by replay, gateway retry or the other intake path.
    """

    source = models.CharField(
        max_length=40,
        help_text="Event that carried the capture (payment.captured, ...).",
    )
    gateway_order_id = models.CharField(max_length=64, db_index=True)
    gateway_payment_id = models.CharField(max_length=64)
    gateway_signature = models.CharField(max_length=255, blank=True)
    error_code = models.CharField(max_length=64)
    error_detail = models.TextField(blank=True)
    attempts = models.PositiveIntegerField(default=1)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created"]
        constraints = [
            models.UniqueConstraint(
                fields=["gateway_order_id", "gateway_payment_id"],
                name="unapplied_payment_unique",
            ),
        ]

    def __str__(self) -> str:
        state = "resolved" if self.resolved_at else "open"
        return f"{self.gateway_order_id} / {self.gateway_payment_id} ({state})"
