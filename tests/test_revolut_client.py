from decimal import Decimal

import pytest
import requests

from headway.core.errors import GatewayError
from headway.services.revolut_client import (
    PROD_URL,
    SANDBOX_URL,
    RevolutClient,
    RevolutConfig,
    to_minor_units,
)


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text=None):
        self.status_code = status_code
        self._json = json_data
        self.text = text if text is not None else ("{}" if json_data is None else "json")

    def json(self):
        return self._json


@pytest.fixture
def calls(monkeypatch):
    recorded = []

    def install(response=None, exc=None):
        def fake_request(**kwargs):
            recorded.append(kwargs)
            if exc:
                raise exc
            return response
        monkeypatch.setattr(requests, "request", fake_request)
        return recorded
    return install


@pytest.mark.parametrize("amount,cents", [("300.00", 30000), ("0.015", 2), (Decimal("99.99"), 9999), (12, 1200)])
def test_to_minor_units(amount, cents):
    assert to_minor_units(amount) == cents


def test_base_url():
    assert RevolutConfig(secret_key="k", sandbox=True).base_url == SANDBOX_URL
    assert RevolutConfig(secret_key="k").base_url == PROD_URL


def test_create_order(calls):
    recorded = calls(FakeResponse(201, {"id": "ord-1", "state": "PENDING", "checkout_url": "https://pay/ord-1"}))
    client = RevolutClient(RevolutConfig(secret_key="sk_live", sandbox=True))

    order = client.create_order(Decimal("300.00"), "usd", "Deposit", redirect_url="https://site/done")

    assert order.id == "ord-1"
    assert order.checkout_url == "https://pay/ord-1"
    call = recorded[0]
    assert call["method"] == "POST"
    assert call["url"] == f"{SANDBOX_URL}/orders"
    assert call["json"] == {"amount": 30000, "currency": "USD", "description": "Deposit",
                            "redirect_url": "https://site/done"}
    assert call["headers"]["Authorization"] == "Bearer sk_live"
    assert call["headers"]["Revolut-Api-Version"] == "2024-09-01"
    assert call["timeout"] == 25


def test_get_order(calls):
    recorded = calls(FakeResponse(200, {"id": "ord-1", "state": "COMPLETED"}))
    data = RevolutClient(RevolutConfig(secret_key="k")).get_order("ord-1")
    assert data["state"] == "COMPLETED"
    assert recorded[0]["url"] == f"{PROD_URL}/orders/ord-1"
    assert recorded[0]["json"] is None


def test_error_status_raises_gateway_error(calls):
    calls(FakeResponse(422, {"message": "bad"}, text='{"message":"bad"}'))
    with pytest.raises(GatewayError) as exc:
        RevolutClient(RevolutConfig(secret_key="k")).create_order(Decimal("1"), "USD", "x")
    assert exc.value.upstream_status == 422
    assert exc.value.status_code == 500
    assert "422" in exc.value.message


def test_transport_failure_raises_gateway_error(calls):
    calls(exc=requests.ConnectionError("dns failure"))
    with pytest.raises(GatewayError) as exc:
        RevolutClient(RevolutConfig(secret_key="k")).get_order("ord-1")
    assert exc.value.upstream_status is None
