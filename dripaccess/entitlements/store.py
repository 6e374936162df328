"""
Entitlement store.

Thin persistence layer over Subscription and WebinarGrant. Reads go straight
to the database so the access gate observes a subscription as soon as the
resolver's transaction commits.
"""

from __future__ import annotations

import logging
from datetime import datetime

from django.db.models import QuerySet
from django.utils import timezone

from dripaccess.entitlements.constants import EntitlementReason
from dripaccess.entitlements.models import Subscription
from dripaccess.entitlements.models import WebinarGrant

logger = logging.getLogger(__name__)


class EntitlementStore:
    """Reads and writes entitlement rows."""

    def get_active_subscriptions(self, user_id) -> list[Subscription]:
        """Active rows for a user, most recent start_date first."""
        return list(
            Subscription.objects.filter(user_id=user_id, is_active=True).order_by(
                "-start_date",
                "-pk",
            ),
        )

    def list_subscriptions(self, user_id) -> QuerySet[Subscription]:
        return (
            Subscription.objects.filter(user_id=user_id)
            .select_related("order")
            .order_by("-start_date", "-pk")
        )

    def get_subscription_for_order(self, order_id) -> Subscription | None:
        return Subscription.objects.filter(order_id=order_id).first()

    def upsert_subscription(self, order, **fields) -> tuple[Subscription, bool]:
        """
        Return the subscription for ``order``, creating it from ``fields`` if
        none exists.

        An IntegrityError from a concurrent writer is left to the caller,
        which owns the surrounding transaction.
        """
        existing = self.get_subscription_for_order(order.pk)
        if existing is not None:
            return existing, False
        return Subscription.objects.create(order=order, **fields), True

    def create_subscription(self, **fields) -> Subscription:
        return Subscription.objects.create(**fields)

    def deactivate(self, subscription_id, now: datetime | None = None) -> bool:
        now = now or timezone.now()
        updated = Subscription.objects.filter(
            pk=subscription_id,
            is_active=True,
        ).update(is_active=False, deactivated_at=now, modified=now)
        return bool(updated)

    def deactivate_active(self, user_id, plan_type, now: datetime) -> int:
        """Deactivate every active subscription of ``plan_type`` for a user."""
        count = Subscription.objects.filter(
            user_id=user_id,
            plan_type=plan_type,
            is_active=True,
        ).update(is_active=False, deactivated_at=now, modified=now)
        if count:
            logger.info(
                "Deactivated %s active %s subscription(s) for user=%s",
                count,
                plan_type,
                user_id,
            )
        return count

    def has_valid_subscription(self, user_id, plan_type, now: datetime) -> bool:
        return Subscription.objects.filter(
            user_id=user_id,
            plan_type=plan_type,
            is_active=True,
            end_date__gte=now,
        ).exists()

    def has_free_trial(self, user_id) -> bool:
        return Subscription.objects.filter(
            user_id=user_id,
            reason=EntitlementReason.FREE_TRIAL,
        ).exists()

    def get_or_create_webinar_grant(self, order) -> tuple[WebinarGrant, bool]:
        return WebinarGrant.objects.get_or_create(
            user_id=order.user_id,
            webinar_id=order.webinar_id,
            order=order,
        )

    def get_active_webinar_grant(self, user_id, webinar_id) -> WebinarGrant | None:
        return WebinarGrant.objects.filter(
            user_id=user_id,
            webinar_id=webinar_id,
            is_active=True,
        ).first()

    def list_webinar_grants(self, user_id) -> QuerySet[WebinarGrant]:
        return (
            WebinarGrant.objects.filter(user_id=user_id, is_active=True)
            .select_related("webinar")
            .order_by("-created")
        )
