"""Payment gateways used to charge bookings and orders."""

from __future__ import annotations

import logging
import random
import secrets
import time
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

import stripe
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

# Upper bound for the simulated provider round-trip, whatever the settings say.
MAX_SIMULATION_DELAY_SECONDS = 5.0


@dataclass(frozen=True)
class ChargeResult:
    """Outcome of a single charge attempt."""

    succeeded: bool
    reference: str = ""
    failure_message: str = ""
    metadata: dict[str, str] = field(default_factory=dict)


def _to_cents(amount: Decimal) -> int:
    """Convert Decimal dollars to integer cents, rounding to the nearest cent."""
    cents = (amount * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


class SimulatedGateway:
    """
    Stand-in for the payment provider.

    Sleeps for a bounded delay, then succeeds or declines according to
    PAYMENT_SIMULATION_FAILURE_RATE. There is no retry: a decline is final
    for the attempt.
    """

    def __init__(self, *, delay_seconds: float | None = None, failure_rate: float | None = None):
        if delay_seconds is None:
            delay_seconds = getattr(settings, "PAYMENT_SIMULATION_DELAY_SECONDS", 0)
        if failure_rate is None:
            failure_rate = getattr(settings, "PAYMENT_SIMULATION_FAILURE_RATE", 0)
        self.delay_seconds = max(0.0, min(float(delay_seconds), MAX_SIMULATION_DELAY_SECONDS))
        self.failure_rate = max(0.0, min(float(failure_rate), 1.0))

    def charge(
        self,
        *,
        amount: Decimal,
        currency: str,
        method: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> ChargeResult:
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        if random.random() < self.failure_rate:
            logger.info(
                "payments: simulated charge declined",
                extra={"idempotency_key": idempotency_key, "amount": str(amount)},
            )
            return ChargeResult(
                succeeded=False,
                failure_message="Payment failed. Please try again.",
                metadata=dict(metadata or {}),
            )
        return ChargeResult(
            succeeded=True,
            reference=f"txn_{secrets.token_hex(12)}",
            metadata=dict(metadata or {}),
        )


class StripeGateway:
    """Charge through a confirmed Stripe PaymentIntent; `method` is a PaymentMethod id."""

    def __init__(self, *, api_key: str | None = None):
        api_key = api_key or getattr(settings, "STRIPE_SECRET_KEY", "")
        if not api_key:
            raise ImproperlyConfigured("Stripe secret key not configured.")
        self.api_key = api_key

    def charge(
        self,
        *,
        amount: Decimal,
        currency: str,
        method: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> ChargeResult:
        stripe.api_key = self.api_key
        try:
            intent = stripe.PaymentIntent.create(
                amount=_to_cents(amount),
                currency=currency,
                payment_method=method or None,
                confirm=True,
                automatic_payment_methods={"enabled": True, "allow_redirects": "never"},
                metadata=dict(metadata or {}),
                idempotency_key=idempotency_key,
            )
        except stripe.error.CardError as exc:
            return ChargeResult(
                succeeded=False,
                failure_message=exc.user_message or "Your card was declined.",
            )
        except stripe.error.StripeError as exc:
            logger.warning(
                "payments: stripe charge failed",
                extra={"idempotency_key": idempotency_key, "error": str(exc)},
            )
            return ChargeResult(
                succeeded=False,
                failure_message=getattr(exc, "user_message", None) or "Stripe payment failure.",
            )
        if intent.status != "succeeded":
            return ChargeResult(
                succeeded=False,
                reference=intent.id,
                failure_message=f"Payment is {intent.status}.",
            )
        return ChargeResult(succeeded=True, reference=intent.id)


def get_gateway():
    """Instantiate the gateway named by settings.PAYMENT_GATEWAY."""
    gateway_cls = import_string(settings.PAYMENT_GATEWAY)
    return gateway_cls()
