from decimal import Decimal
from types import SimpleNamespace

import pytest
import stripe
from django.core.exceptions import ImproperlyConfigured

from payments import gateway as gateway_module
from payments.gateway import (
    MAX_SIMULATION_DELAY_SECONDS,
    SimulatedGateway,
    StripeGateway,
    get_gateway,
)


def _charge(gw, **overrides):
    params = {
        "amount": Decimal("10.00"),
        "currency": "usd",
        "method": "card",
        "idempotency_key": "order:1:charge:1",
    }
    params.update(overrides)
    return gw.charge(**params)


def test_simulated_gateway_succeeds_with_reference():
    result = _charge(SimulatedGateway(delay_seconds=0, failure_rate=0))

    assert result.succeeded is True
    assert result.reference.startswith("txn_")


def test_simulated_gateway_declines():
    result = _charge(SimulatedGateway(delay_seconds=0, failure_rate=1))

    assert result.succeeded is False
    assert result.reference == ""
    assert result.failure_message


def test_simulated_delay_is_bounded(monkeypatch):
    slept = []
    monkeypatch.setattr(gateway_module.time, "sleep", slept.append)

    gw = SimulatedGateway(delay_seconds=600, failure_rate=0)
    _charge(gw)

    assert slept == [MAX_SIMULATION_DELAY_SECONDS]


def test_get_gateway_uses_settings(settings):
    settings.PAYMENT_GATEWAY = "payments.gateway.SimulatedGateway"
    settings.PAYMENT_SIMULATION_FAILURE_RATE = 0.25

    gw = get_gateway()

    assert isinstance(gw, SimulatedGateway)
    assert gw.failure_rate == 0.25


def test_stripe_gateway_requires_key(settings):
    settings.STRIPE_SECRET_KEY = ""

    with pytest.raises(ImproperlyConfigured):
        StripeGateway()


def test_stripe_gateway_charges_in_cents(monkeypatch):
    captured = {}

    def _create(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(id="pi_123", status="succeeded")

    monkeypatch.setattr(stripe.PaymentIntent, "create", _create)

    result = _charge(StripeGateway(api_key="sk_test"), amount=Decimal("113.00"), method="pm_card")

    assert result.succeeded is True
    assert result.reference == "pi_123"
    assert captured["amount"] == 11300
    assert captured["payment_method"] == "pm_card"
    assert captured["idempotency_key"] == "order:1:charge:1"


def test_stripe_gateway_maps_card_errors(monkeypatch):
    def _create(**kwargs):
        raise stripe.error.CardError("declined", param=None, code="card_declined")

    monkeypatch.setattr(stripe.PaymentIntent, "create", _create)

    result = _charge(StripeGateway(api_key="sk_test"))

    assert result.succeeded is False
    assert result.reference == ""
