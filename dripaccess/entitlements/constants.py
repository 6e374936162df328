"""
Entitlement constants.

Plan durations and the drip schedule are defined once here and consumed by
every entry point that creates subscriptions (purchase, admin grant, free
trial) through ``dripaccess.entitlements.schedule``.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from dripaccess.payments.constants import PlanType

PLAN_DURATION_DAYS = {
    PlanType.FOUR_DAY: 4,
    PlanType.SIX_MONTH: 180,
}

# Number of drip content slots released over a four-day plan.
FOUR_DAY_CONTENT_SLOTS = 4

# Slot k stays visible until start + (k + SLOT_EXPIRY_OFFSET_DAYS) days, one
# day ahead of its nominal unlock day.
SLOT_EXPIRY_OFFSET_DAYS = 2

FREE_TRIAL_DAYS = 30
FREE_TRIAL_UNLOCKED_SLOTS = (1, 2, 3)


def content_key(slot: int) -> str:
    """Key used in UnlockState.expiry_dates for a drip slot."""
    return f"video{slot}"


class EntitlementReason(models.TextChoices):
    """Why a subscription exists. Only PAYMENT subscriptions have an order."""

    PAYMENT = "PAYMENT", _("Gateway payment")
    ADMIN_GRANT = "ADMIN_GRANT", _("Administrative grant")
    FREE_TRIAL = "FREE_TRIAL", _("Free trial")


class CapabilityKind(models.TextChoices):
    """What a protected resource requires."""

    ANY_ACTIVE_SUBSCRIPTION = "any_active_subscription", _("Any active subscription")
    SIX_MONTH_ONLY = "six_month_only", _("Six-month plan only")
    WEBINAR_GRANT = "webinar_grant", _("Specific webinar grant")


class AccessReason(models.TextChoices):
    """Reason attached to every access decision."""

    SIX_MONTH_ACTIVE = "six_month_active", _("Six-month plan active")
    FOUR_DAY_ACTIVE = "four_day_active", _("Four-day plan active")
    WEBINAR_GRANTED = "webinar_granted", _("Webinar purchased")
    NEVER_SUBSCRIBED = "never_subscribed", _("No plan purchased yet")
    NO_ACTIVE_ENTITLEMENT = "no_active_entitlement", _("No active plan")
    REQUIRES_SIX_MONTH = "requires_six_month", _("Six-month plan required")
    NO_WEBINAR_GRANT = "no_webinar_grant", _("Webinar not purchased")
    STORAGE_UNAVAILABLE = "storage_unavailable", _("Entitlements unavailable")
