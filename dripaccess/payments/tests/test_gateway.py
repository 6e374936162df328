from unittest.mock import MagicMock

import pytest
import requests

from dripaccess.payments.exceptions import GatewayUnavailable
from dripaccess.payments.gateway import PaymentGatewayClient


def _client(session, **kwargs):
    defaults = {
        "key_id": "rzp_test_key",
        "key_secret": "secret",
        "api_base": "https://gateway.invalid/v1/",
        "timeout": 3,
    }
    defaults.update(kwargs)
    return PaymentGatewayClient(session=session, **defaults)


def _response(status_code=200, payload=None):
    response = MagicMock(status_code=status_code)
    response.json.return_value = payload if payload is not None else {}
    return response


def test_create_order_posts_to_orders_endpoint():
    session = MagicMock()
    session.request.return_value = _response(payload={"id": "order_abc"})

    result = _client(session).create_order(
        amount_minor=19900,
        currency="INR",
        receipt="FOUR_DAY_sub_1",
        notes={"plan_type": "FOUR_DAY"},
    )

    assert result["id"] == "order_abc"
    session.request.assert_called_once_with(
        method="POST",
        url="https://gateway.invalid/v1/orders",
        auth=("rzp_test_key", "secret"),
        json={
            "amount": 19900,
            "currency": "INR",
            "receipt": "FOUR_DAY_sub_1",
            "notes": {"plan_type": "FOUR_DAY"},
        },
        timeout=3,
    )


def test_network_errors_become_gateway_unavailable():
    session = MagicMock()
    session.request.side_effect = requests.Timeout("timed out")

    with pytest.raises(GatewayUnavailable):
        _client(session).create_order(amount_minor=100, currency="INR", receipt="r")


def test_error_status_becomes_gateway_unavailable():
    session = MagicMock()
    session.request.return_value = _response(status_code=502)

    with pytest.raises(GatewayUnavailable):
        _client(session).create_order(amount_minor=100, currency="INR", receipt="r")


def test_response_without_id_is_rejected():
    session = MagicMock()
    session.request.return_value = _response(payload={"status": "created"})

    with pytest.raises(GatewayUnavailable):
        _client(session).create_order(amount_minor=100, currency="INR", receipt="r")


def test_missing_credentials_never_call_the_gateway():
    session = MagicMock()

    with pytest.raises(GatewayUnavailable):
        _client(session, key_secret="").create_order(
            amount_minor=100,
            currency="INR",
            receipt="r",
        )
    session.request.assert_not_called()
