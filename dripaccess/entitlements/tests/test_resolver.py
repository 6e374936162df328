from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import OperationalError
from django.utils import timezone

from dripaccess.catalog.tests.factories import WebinarFactory
from dripaccess.entitlements.constants import EntitlementReason
from dripaccess.entitlements.models import Subscription
from dripaccess.entitlements.models import WebinarGrant
from dripaccess.entitlements.resolver import EntitlementResolver
from dripaccess.entitlements.store import EntitlementStore
from dripaccess.entitlements.tests.factories import SubscriptionFactory
from dripaccess.payments.constants import PlanType
from dripaccess.payments.exceptions import InvalidOrderTransition
from dripaccess.payments.exceptions import TransactionConflict
from dripaccess.payments.tests.factories import CapturedOrderFactory
from dripaccess.payments.tests.factories import OrderFactory

pytestmark = pytest.mark.django_db


class StaleReadStore(EntitlementStore):
    """Misses the first ``misses`` lookups, like a racing writer would."""

    def __init__(self, misses):
        self.misses = misses

    def get_subscription_for_order(self, order_id):
        if self.misses:
            self.misses -= 1
            return None
        return super().get_subscription_for_order(order_id)


@pytest.fixture
def resolver():
    return EntitlementResolver()


def test_four_day_order_creates_drip_subscription(resolver):
    order = CapturedOrderFactory(plan_type=PlanType.FOUR_DAY)
    now = timezone.now()

    resolution = resolver.resolve(order, now=now)

    subscription = resolution.subscription
    assert resolution.created is True
    assert subscription.reason == EntitlementReason.PAYMENT
    assert subscription.end_date == now + timedelta(days=4)
    assert subscription.unlocked_content["unlocked_videos"] == [1]
    order.user.refresh_from_db()
    assert order.user.account_active is True
    assert order.user.has_purchased_plan is True


def test_resolving_twice_returns_the_same_subscription(resolver):
    order = CapturedOrderFactory()

    first = resolver.resolve(order)
    second = resolver.resolve(order)

    assert second.created is False
    assert second.subscription.pk == first.subscription.pk
    assert Subscription.objects.count() == 1


def test_lost_race_returns_the_winning_row():
    order = CapturedOrderFactory()
    winner = EntitlementResolver().resolve(order).subscription

    # Both existence checks miss; the unique constraint on order catches it.
    late = EntitlementResolver(store=StaleReadStore(misses=2)).resolve(order)

    assert late.created is False
    assert late.subscription.pk == winner.pk
    assert Subscription.objects.count() == 1


def test_six_month_deactivates_active_four_day(resolver):
    four_day = SubscriptionFactory(plan_type=PlanType.FOUR_DAY)
    order = CapturedOrderFactory(
        user=four_day.user,
        plan_type=PlanType.SIX_MONTH,
        amount="699.00",
    )

    resolution = resolver.resolve(order)

    four_day.refresh_from_db()
    assert four_day.is_active is False
    assert four_day.deactivated_at is not None
    assert resolution.subscription.plan_type == PlanType.SIX_MONTH
    assert resolution.subscription.unlocked_content is None


def test_four_day_purchase_leaves_six_month_alone(resolver):
    six_month = SubscriptionFactory(plan_type=PlanType.SIX_MONTH)
    order = CapturedOrderFactory(user=six_month.user, plan_type=PlanType.FOUR_DAY)

    resolver.resolve(order)

    six_month.refresh_from_db()
    assert six_month.is_active is True


def test_webinar_order_creates_grant_without_subscription(resolver):
    webinar = WebinarFactory()
    order = CapturedOrderFactory(
        plan_type=PlanType.PAID_WEBINAR,
        webinar=webinar,
        amount=webinar.price,
    )

    resolution = resolver.resolve(order)
    replay = resolver.resolve(order)

    assert resolution.grant.webinar == webinar
    assert replay.created is False
    assert WebinarGrant.objects.count() == 1
    assert not Subscription.objects.exists()
    order.user.refresh_from_db()
    assert order.user.has_purchased_plan is False


def test_pending_order_is_not_resolved(resolver):
    order = OrderFactory()

    with pytest.raises(InvalidOrderTransition):
        resolver.resolve(order)
    assert not Subscription.objects.exists()


def test_operational_error_becomes_transaction_conflict(resolver):
    order = CapturedOrderFactory()

    with (
        patch.object(
            EntitlementStore,
            "upsert_subscription",
            side_effect=OperationalError("database is locked"),
        ),
        pytest.raises(TransactionConflict),
    ):
        resolver.resolve(order)


def test_store_deactivate_is_idempotent():
    subscription = SubscriptionFactory()
    store = EntitlementStore()

    assert store.deactivate(subscription.pk) is True
    assert store.deactivate(subscription.pk) is False

    subscription.refresh_from_db()
    assert subscription.is_active is False
    assert store.get_active_subscriptions(subscription.user_id) == []


def test_store_orders_active_subscriptions_newest_first():
    older = SubscriptionFactory(start_date=timezone.now() - timedelta(days=2))
    newer = SubscriptionFactory(user=older.user)

    active = EntitlementStore().get_active_subscriptions(older.user_id)

    assert [sub.pk for sub in active] == [newer.pk, older.pk]
