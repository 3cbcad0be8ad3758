"""Provider callbacks that report payment outcomes."""

from __future__ import annotations

import logging

import stripe
from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response

from bookings.services import mark_booking_paid_from_provider
from core.errors import CoreError
from orders.services import complete_order_from_provider

logger = logging.getLogger(__name__)


def _parse_id(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@api_view(["POST"])
@authentication_classes([])
@permission_classes([])
def stripe_webhook(request):
    """Apply payment_intent.succeeded events to the order or booking named in metadata."""
    payload = request.body
    sig_header = request.META.get("HTTP_STRIPE_SIGNATURE", "")
    endpoint_secret = getattr(settings, "STRIPE_WEBHOOK_SECRET", "")

    try:
        event = stripe.Webhook.construct_event(
            payload=payload,
            sig_header=sig_header,
            secret=endpoint_secret,
        )
    except ValueError:
        return Response(status=status.HTTP_400_BAD_REQUEST)
    except stripe.error.SignatureVerificationError:
        return Response(status=status.HTTP_400_BAD_REQUEST)

    event_type = event.get("type")
    data_object = event.get("data", {}).get("object", {}) or {}
    metadata = data_object.get("metadata") or {}
    intent_id = data_object.get("id") or ""

    if event_type != "payment_intent.succeeded":
        logger.info("stripe_webhook: ignored event", extra={"event_type": event_type})
        return Response({"received": True}, status=status.HTTP_200_OK)

    order_id = _parse_id(metadata.get("order_id"))
    booking_id = _parse_id(metadata.get("booking_id"))
    try:
        if order_id is not None:
            complete_order_from_provider(order_id=order_id, reference=intent_id)
        elif booking_id is not None:
            mark_booking_paid_from_provider(booking_id=booking_id, reference=intent_id)
        else:
            logger.info(
                "stripe_webhook: payment intent without order or booking",
                extra={"intent_id": intent_id},
            )
    except CoreError as exc:
        logger.error(
            "stripe_webhook: failed to apply payment",
            extra={"intent_id": intent_id, "error": exc.kind},
        )
        return Response(exc.as_payload(), status=exc.status_code)
    return Response({"received": True}, status=status.HTTP_200_OK)
