"""
Entitlement resolver.

Turns a CAPTURED order into the entitlement it pays for. Both confirmation
paths (gateway webhook and client-side verify) go through ``resolve`` so the
idempotency rules live in one place:

    * at most one Subscription per order (unique constraint on order)
    * at most one WebinarGrant per (user, webinar, order)
    * a SixMonth purchase deactivates active FourDay rows in the same
      transaction that creates the SixMonth row

A racing writer that loses on a unique constraint gets the winner's row back
instead of an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta

from django.db import IntegrityError
from django.db import OperationalError
from django.db import transaction
from django.utils import timezone

from dripaccess.entitlements.constants import EntitlementReason
from dripaccess.entitlements.models import Subscription
from dripaccess.entitlements.models import WebinarGrant
from dripaccess.entitlements.schedule import UnlockState
from dripaccess.entitlements.schedule import compute_unlock_state
from dripaccess.entitlements.schedule import plan_duration
from dripaccess.entitlements.store import EntitlementStore
from dripaccess.payments.constants import OrderStatus
from dripaccess.payments.constants import PlanType
from dripaccess.payments.exceptions import DataIntegrity
from dripaccess.payments.exceptions import InvalidOrderTransition
from dripaccess.payments.exceptions import InvalidPlanType
from dripaccess.payments.exceptions import TransactionConflict
from dripaccess.payments.exceptions import UserNotFound
from dripaccess.payments.ledger import parse_plan_type
from dripaccess.payments.models import Order
from dripaccess.users.directory import find_user_by_id
from dripaccess.users.directory import mark_plan_purchased
from dripaccess.users.directory import set_account_active

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """
    Result of resolving an order.

    Exactly one of ``subscription`` or ``grant`` is set. ``created`` is False
    when the order had already been resolved.
    """

    order: Order
    subscription: Subscription | None = None
    grant: WebinarGrant | None = None
    created: bool = False


class EntitlementResolver:
    """Creates subscriptions and webinar grants from captured orders."""

    def __init__(self, store: EntitlementStore | None = None):
        self.store = store or EntitlementStore()

    def resolve(self, order: Order, now: datetime | None = None) -> Resolution:
        """
        Materialize the entitlement for a CAPTURED order.

        Safe to call any number of times for the same order.

        Raises:
            InvalidOrderTransition: the order is not CAPTURED.
            InvalidPlanType: the stored plan type is not recognised.
            UserNotFound: the order's user no longer exists.
            DataIntegrity: a webinar order has no webinar.
            TransactionConflict: the database reported a transient conflict.
        """
        if order.status != OrderStatus.CAPTURED:
            raise InvalidOrderTransition(
                f"Order {order.gateway_order_id} is {order.status}; "
                "only captured orders can be resolved.",
            )

        try:
            plan = parse_plan_type(order.plan_type)
        except InvalidPlanType:
            logger.exception(
                "Order %s has invalid plan type %r",
                order.gateway_order_id,
                order.plan_type,
            )
            raise

        if find_user_by_id(order.user_id) is None:
            logger.error(
                "Order %s references missing user=%s",
                order.gateway_order_id,
                order.user_id,
            )
            raise UserNotFound(order.user_id)

        now = now or timezone.now()
        try:
            with transaction.atomic():
                if plan == PlanType.PAID_WEBINAR:
                    return self._grant_webinar(order)
                return self._subscribe(order, plan, now)
        except IntegrityError:
            logger.info(
                "Concurrent resolution of order %s; returning existing entitlement",
                order.gateway_order_id,
            )
            return self._existing_resolution(order, plan)
        except OperationalError as exc:
            logger.warning(
                "Transaction conflict resolving order %s: %s",
                order.gateway_order_id,
                exc,
            )
            raise TransactionConflict from exc

    def activate(  # noqa: PLR0913
        self,
        user_id,
        plan_type: PlanType,
        now: datetime,
        *,
        reason: str = EntitlementReason.PAYMENT,
        order: Order | None = None,
        granted_by=None,
        duration: timedelta | None = None,
        unlock_state: UnlockState | None = None,
    ) -> Subscription:
        """
        Create a subscription and flip the account flags.

        Callers must hold a transaction. A SixMonth plan first deactivates the
        user's active FourDay rows so no reader ever sees both or neither.
        """
        if plan_type == PlanType.SIX_MONTH:
            self.store.deactivate_active(user_id, PlanType.FOUR_DAY, now)

        if unlock_state is None:
            unlock_state = compute_unlock_state(plan_type, now)
        fields = {
            "user_id": user_id,
            "plan_type": plan_type,
            "reason": reason,
            "granted_by": granted_by,
            "start_date": now,
            "end_date": now + (duration or plan_duration(plan_type)),
            "is_active": True,
            "unlocked_content": unlock_state.to_document() if unlock_state else None,
        }
        if order is not None:
            subscription, _ = self.store.upsert_subscription(order, **fields)
        else:
            subscription = self.store.create_subscription(**fields)

        set_account_active(user_id, True)
        mark_plan_purchased(user_id)
        logger.info(
            "Activated %s subscription %s for user=%s (reason=%s, ends %s)",
            plan_type,
            subscription.pk,
            user_id,
            reason,
            subscription.end_date.isoformat(),
        )
        return subscription

    def _subscribe(self, order: Order, plan: PlanType, now: datetime) -> Resolution:
        existing = self.store.get_subscription_for_order(order.pk)
        if existing is not None:
            return Resolution(order=order, subscription=existing, created=False)
        subscription = self.activate(order.user_id, plan, now, order=order)
        return Resolution(order=order, subscription=subscription, created=True)

    def _grant_webinar(self, order: Order) -> Resolution:
        if order.webinar_id is None:
            logger.error("Webinar order %s has no webinar", order.gateway_order_id)
            raise DataIntegrity(
                f"Order {order.gateway_order_id} is a webinar purchase without a "
                "webinar.",
                code="webinar_missing",
            )
        grant, created = self.store.get_or_create_webinar_grant(order)
        if created:
            logger.info(
                "Granted webinar=%s to user=%s (order %s)",
                order.webinar_id,
                order.user_id,
                order.gateway_order_id,
            )
        return Resolution(order=order, grant=grant, created=created)

    def _existing_resolution(self, order: Order, plan: PlanType) -> Resolution:
        if plan == PlanType.PAID_WEBINAR:
            grant = WebinarGrant.objects.filter(order=order).first()
            if grant is None:
                raise DataIntegrity(
                    f"Webinar grant for order {order.gateway_order_id} vanished "
                    "after a uniqueness conflict.",
                )
            return Resolution(order=order, grant=grant, created=False)
        subscription = self.store.get_subscription_for_order(order.pk)
        if subscription is None:
            raise DataIntegrity(
                f"Subscription for order {order.gateway_order_id} vanished after "
                "a uniqueness conflict.",
            )
        return Resolution(order=order, subscription=subscription, created=False)
