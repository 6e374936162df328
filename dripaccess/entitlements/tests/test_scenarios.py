"""
End-to-end purchase flows through the HTTP endpoints.
"""

from datetime import timedelta
from unittest.mock import MagicMock
from unittest.mock import patch

import pytest
from django.urls import reverse
from django.utils import timezone

from dripaccess.entitlements.access import AccessGate
from dripaccess.entitlements.access import RequiredCapability
from dripaccess.entitlements.constants import AccessReason
from dripaccess.entitlements.models import Subscription
from dripaccess.entitlements.resolver import EntitlementResolver
from dripaccess.payments.ledger import OrderLedger
from dripaccess.payments.models import Order

pytestmark = pytest.mark.django_db


@pytest.fixture
def gateway():
    client = MagicMock()
    client.create_order.side_effect = [
        {"id": "order_four_day"},
        {"id": "order_six_month"},
    ]
    with patch("dripaccess.payments.ledger.get_gateway_client", return_value=client):
        yield client


def _post_webhook(client, body, signature):
    headers = {"HTTP_X_RAZORPAY_SIGNATURE": signature} if signature else {}
    return client.post(
        reverse("api:payments:webhook"),
        data=body,
        content_type="application/json",
        **headers,
    )


def _buy(auth_client, plan_type, amount):
    response = auth_client.post(
        reverse("api:payments:create-order"),
        {"amount": amount, "planType": plan_type},
        format="json",
    )
    assert response.status_code == 201
    return response.data["order"]["id"]


def test_gateway_retry_does_not_duplicate_subscription(
    auth_client,
    client,
    user,
    gateway,
    webhook_payload,
    sign_webhook,
):
    order_id = _buy(auth_client, "FOUR_DAY", "199")
    body = webhook_payload("payment.captured", order_id, "pay_first")
    before = timezone.now()

    first = _post_webhook(client, body, sign_webhook(body))
    retry = _post_webhook(client, body, sign_webhook(body))

    assert first.status_code == retry.status_code == 200
    subscription = Subscription.objects.get(user=user)
    assert subscription.end_date - subscription.start_date == timedelta(days=4)
    assert subscription.start_date >= before
    assert subscription.unlocked_content["unlocked_videos"] == [1]
    assert Subscription.objects.filter(user=user).count() == 1


def test_upgrade_to_six_month_a_day_later(
    auth_client,
    client,
    user,
    gateway,
    webhook_payload,
    sign_webhook,
):
    four_day_id = _buy(auth_client, "FOUR_DAY", "199")
    body = webhook_payload("payment.captured", four_day_id, "pay_four")
    _post_webhook(client, body, sign_webhook(body))
    four_day = Subscription.objects.get(order__gateway_order_id=four_day_id)

    six_month_id = _buy(auth_client, "SIX_MONTH", "699")
    purchase_time = four_day.start_date + timedelta(days=1)
    order = OrderLedger().mark_captured(six_month_id, "pay_six", "sig").order
    six_month = EntitlementResolver().resolve(order, now=purchase_time).subscription

    four_day.refresh_from_db()
    assert four_day.is_active is False
    assert six_month.is_active is True
    assert six_month.end_date == purchase_time + timedelta(days=180)
    decision = AccessGate().evaluate(
        user.pk,
        RequiredCapability.six_month_only(),
        now=purchase_time,
    )
    assert decision.allowed is True
    assert decision.reason == AccessReason.SIX_MONTH_ACTIVE


def test_stripped_signature_header_is_rejected(
    auth_client,
    client,
    user,
    gateway,
    webhook_payload,
):
    order_id = _buy(auth_client, "FOUR_DAY", "199")
    body = webhook_payload("payment.captured", order_id, "pay_forwarded")

    response = _post_webhook(client, body, None)

    assert response.status_code == 401
    assert not Subscription.objects.exists()
    assert Order.objects.get(gateway_order_id=order_id).status == "PENDING"
