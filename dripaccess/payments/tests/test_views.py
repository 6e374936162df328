from unittest.mock import MagicMock
from unittest.mock import patch

import pytest
from django.urls import reverse

from dripaccess.entitlements.models import Subscription
from dripaccess.payments.constants import OrderStatus
from dripaccess.payments.exceptions import DataIntegrity
from dripaccess.payments.exceptions import GatewayUnavailable
from dripaccess.payments.exceptions import TransactionConflict
from dripaccess.payments.models import Order
from dripaccess.payments.models import UnappliedPayment
from dripaccess.payments.tests.factories import CapturedOrderFactory
from dripaccess.payments.tests.factories import OrderFactory

pytestmark = pytest.mark.django_db


@pytest.fixture
def gateway():
    client = MagicMock()
    client.create_order.return_value = {"id": "order_view_1"}
    with patch("dripaccess.payments.ledger.get_gateway_client", return_value=client):
        yield client


class TestCreateOrderView:
    @property
    def url(self):
        return reverse("api:payments:create-order")

    def test_requires_authentication(self, api_client):
        response = api_client.post(self.url, {"amount": "199", "planType": "FOUR_DAY"})

        assert response.status_code in (401, 403)

    def test_returns_gateway_key_and_order(self, auth_client, gateway, settings):
        response = auth_client.post(
            self.url,
            {"amount": "199", "planType": "FOUR_DAY"},
            format="json",
        )

        assert response.status_code == 201
        assert response.data["gatewayKey"] == settings.PAYMENT_GATEWAY_PUBLIC_KEY
        assert response.data["order"]["id"] == "order_view_1"
        assert response.data["order"]["amountMinor"] == 19900
        assert Order.objects.get().status == OrderStatus.PENDING

    def test_client_supplied_currency_is_ignored(self, auth_client, gateway):
        response = auth_client.post(
            self.url,
            {"amount": "699.00", "planType": "SIX_MONTH", "currency": "IDR"},
            format="json",
        )

        assert response.status_code == 201
        assert gateway.create_order.call_args.kwargs["currency"] == "INR"
        assert Order.objects.get().currency == "INR"

    def test_invalid_plan_is_400(self, auth_client, gateway):
        response = auth_client.post(
            self.url,
            {"amount": "199", "planType": "LIFETIME"},
            format="json",
        )

        assert response.status_code == 400
        assert response.data["code"] == "invalid_plan_type"

    def test_gateway_outage_is_retryable_500(self, auth_client, gateway):
        gateway.create_order.side_effect = GatewayUnavailable()

        response = auth_client.post(
            self.url,
            {"amount": "199", "planType": "FOUR_DAY"},
            format="json",
        )

        assert response.status_code == 500
        assert response.data["retryable"] is True
        assert not Order.objects.exists()


class TestVerifyPaymentView:
    @property
    def url(self):
        return reverse("api:payments:verify")

    def test_valid_signature(self, api_client, sign_checkout):
        order = OrderFactory()

        response = api_client.post(
            self.url,
            {
                "gatewayOrderId": order.gateway_order_id,
                "gatewayPaymentId": "pay_v1",
                "signature": sign_checkout(order.gateway_order_id, "pay_v1"),
                "planType": "FOUR_DAY",
            },
            format="json",
        )

        assert response.status_code == 200
        assert response.data["success"] is True
        assert Subscription.objects.filter(order=order).exists()

    def test_bad_signature_is_400(self, api_client):
        order = OrderFactory()

        response = api_client.post(
            self.url,
            {
                "gatewayOrderId": order.gateway_order_id,
                "gatewayPaymentId": "pay_v1",
                "signature": "0" * 64,
            },
            format="json",
        )

        assert response.status_code == 400
        assert response.data == {"error": "Invalid signature"}
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING

    def test_unknown_order_reports_processing(self, api_client, sign_checkout):
        response = api_client.post(
            self.url,
            {
                "gatewayOrderId": "order_unknown",
                "gatewayPaymentId": "pay_v1",
                "signature": sign_checkout("order_unknown", "pay_v1"),
            },
            format="json",
        )

        assert response.status_code == 202
        assert response.data["processing"] is True


class TestPaymentWebhookView:
    @property
    def url(self):
        return reverse("api:payments:webhook")

    def _post(self, client, body, signature=None):
        headers = {}
        if signature is not None:
            headers["HTTP_X_RAZORPAY_SIGNATURE"] = signature
        return client.post(
            self.url,
            data=body,
            content_type="application/json",
            **headers,
        )

    def test_captured_event(self, client, webhook_payload, sign_webhook):
        order = OrderFactory()
        body = webhook_payload("payment.captured", order.gateway_order_id)

        response = self._post(client, body, sign_webhook(body))

        assert response.status_code == 200
        assert response.json() == {"received": True}
        assert Subscription.objects.filter(order=order).count() == 1

    def test_invalid_signature_is_401(self, client, webhook_payload):
        order = OrderFactory()
        body = webhook_payload("payment.captured", order.gateway_order_id)

        response = self._post(client, body, "deadbeef")

        assert response.status_code == 401

    def test_business_errors_are_acknowledged(
        self,
        client,
        webhook_payload,
        sign_webhook,
    ):
        body = webhook_payload("payment.captured", "order_forged")

        response = self._post(client, body, sign_webhook(body))

        assert response.status_code == 200
        assert response.json() == {"received": True}
        assert not Subscription.objects.exists()

    def test_acknowledged_resolver_failure_is_recorded(
        self,
        client,
        webhook_payload,
        sign_webhook,
    ):
        order = OrderFactory()
        body = webhook_payload("payment.captured", order.gateway_order_id, "pay_7")

        with patch(
            "dripaccess.payments.intake.EntitlementResolver.resolve",
            side_effect=DataIntegrity("user vanished"),
        ):
            response = self._post(client, body, sign_webhook(body))

        assert response.status_code == 200
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        record = UnappliedPayment.objects.get()
        assert record.gateway_order_id == order.gateway_order_id
        assert record.gateway_payment_id == "pay_7"
        assert record.resolved_at is None

    def test_transaction_conflict_asks_gateway_to_retry(
        self,
        client,
        webhook_payload,
        sign_webhook,
    ):
        order = OrderFactory()
        body = webhook_payload("payment.captured", order.gateway_order_id)

        with patch(
            "dripaccess.payments.intake.PaymentEventIntake.process_webhook",
            side_effect=TransactionConflict(),
        ):
            response = self._post(client, body, sign_webhook(body))

        assert response.status_code == 503


class TestPaymentHistoryView:
    @property
    def url(self):
        return reverse("api:payments:mine")

    def test_lists_only_my_captured_orders(self, auth_client, user):
        mine = CapturedOrderFactory(user=user)
        OrderFactory(user=user)
        CapturedOrderFactory()

        response = auth_client.get(self.url)

        assert response.status_code == 200
        assert [row["gatewayOrderId"] for row in response.data] == [
            mine.gateway_order_id,
        ]
