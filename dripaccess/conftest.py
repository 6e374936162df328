import json

import pytest
from rest_framework.test import APIClient

from dripaccess.payments.signatures import compute_signature
from dripaccess.users.models import User
from dripaccess.users.tests.factories import UserFactory


@pytest.fixture
def user(db) -> User:
    return UserFactory()


@pytest.fixture
def staff_user(db) -> User:
    return UserFactory(is_staff=True)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def auth_client(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def webhook_payload():
    """Build raw webhook bytes the way the gateway sends them."""

    def _build(event, gateway_order_id, gateway_payment_id="pay_test_1"):
        body = {
            "entity": "event",
            "event": event,
            "payload": {
                "payment": {
                    "entity": {
                        "id": gateway_payment_id,
                        "order_id": gateway_order_id,
                        "status": event.split(".", 1)[-1],
                    },
                },
            },
        }
        return json.dumps(body).encode()

    return _build


@pytest.fixture
def sign_webhook(settings):
    def _sign(body: bytes) -> str:
        return compute_signature(body, settings.PAYMENT_GATEWAY_WEBHOOK_SECRET)

    return _sign


@pytest.fixture
def sign_checkout(settings):
    def _sign(gateway_order_id: str, gateway_payment_id: str) -> str:
        payload = f"{gateway_order_id}|{gateway_payment_id}".encode()
        return compute_signature(payload, settings.PAYMENT_GATEWAY_KEY_SECRET)

    return _sign
