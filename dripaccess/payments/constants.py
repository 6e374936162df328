"""
Payment constants for the order ledger.

PlanType is shared with the entitlements app: the plan a user is entitled to
is always re-derived from the order that paid for it.
"""

from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _


class PlanType(models.TextChoices):
    """
    Closed set of purchasable plans.

    FOUR_DAY and SIX_MONTH create subscriptions (FOUR_DAY carries the drip
    unlock schedule). PAID_WEBINAR creates a one-off grant for a single
    webinar and never touches subscriptions.
    """

    FOUR_DAY = "FOUR_DAY", _("Four-day plan")
    SIX_MONTH = "SIX_MONTH", _("Six-month plan")
    PAID_WEBINAR = "PAID_WEBINAR", _("Paid webinar")


SUBSCRIPTION_PLAN_TYPES = frozenset({PlanType.FOUR_DAY, PlanType.SIX_MONTH})


class OrderStatus(models.TextChoices):
    """
    Order lifecycle.

        PENDING → CAPTURED (payment captured, terminal)
        PENDING → FAILED   (payment failed, terminal)
    """

    PENDING = "PENDING", _("Pending")
    CAPTURED = "CAPTURED", _("Captured")
    FAILED = "FAILED", _("Failed")


class WebhookEvent:
    """Gateway webhook event names we act on."""

    PAYMENT_CAPTURED = "payment.captured"
    PAYMENT_FAILED = "payment.failed"


# Header carrying the HMAC signature on gateway webhooks
# (Django normalizes to HTTP_X_RAZORPAY_SIGNATURE).
WEBHOOK_SIGNATURE_HEADER = "X-Razorpay-Signature"

DEFAULT_CURRENCY = "INR"

# List prices in major currency units. Orders for subscription plans must be
# created at exactly these amounts.
PLAN_PRICES = {
    PlanType.FOUR_DAY: Decimal("199.00"),
    PlanType.SIX_MONTH: Decimal("699.00"),
}

# Gateway receipts are limited to 40 characters.
MAX_RECEIPT_LENGTH = 40
