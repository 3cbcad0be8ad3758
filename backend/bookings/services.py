"""Booking operations that read and write several rows under one transaction."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.contrib.auth import get_user_model

from core.db import atomic_with_retry
from core.errors import (
    AlreadyPaidError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    PaymentFailedError,
    ValidationError,
)
from core.pricing import PROPERTY_BOOKING, compute_total, get_fee_schedule, quantize_money
from payments.gateway import ChargeResult, get_gateway
from payments.ledger import attempt_number, log_transaction
from payments.models import Transaction
from properties.models import Property

from .domain import (
    DELETABLE_STATUSES,
    assert_transition_allowed,
    ensure_available,
    resolve_actor_role,
    validate_booking_dates,
    validate_stay,
)
from .models import Booking

logger = logging.getLogger(__name__)
User = get_user_model()


def _lock_booking(booking_id: int) -> Booking:
    booking = Booking.objects.select_for_update().filter(pk=booking_id).first()
    if booking is None:
        raise NotFoundError("Booking not found.")
    return booking


@atomic_with_retry
def create_booking(
    *,
    property_id: int,
    guest_id: int,
    check_in: date,
    check_out: date,
    guests: int,
) -> Booking:
    """
    Reserve [check_in, check_out) on a property for a guest.

    The property row is locked for the duration of the availability check and
    the insert, so two overlapping requests for the same property serialize and
    the second one sees the first booking.
    """
    validate_booking_dates(check_in, check_out)
    if guests is None or guests < 1:
        raise ValidationError("At least one guest is required.")

    property_obj = Property.objects.select_for_update().filter(pk=property_id).first()
    if property_obj is None:
        raise NotFoundError("Property not found.")
    if property_obj.owner_id == guest_id:
        raise ValidationError("You cannot book your own property.")
    validate_stay(property_obj, check_in, check_out, guests)
    ensure_available(property_obj.pk, check_in, check_out)

    nights = (check_out - check_in).days
    breakdown = compute_total(property_obj.price, nights, get_fee_schedule(PROPERTY_BOOKING))
    totals = breakdown.as_totals()
    totals["nights"] = nights
    totals["nightly_price"] = str(property_obj.price)

    booking = Booking.objects.create(
        property=property_obj,
        guest_id=guest_id,
        check_in=check_in,
        check_out=check_out,
        guests=guests,
        total_price=breakdown.total,
        totals=totals,
    )
    logger.info(
        "bookings: created",
        extra={
            "booking_id": booking.id,
            "property_id": property_obj.pk,
            "guest_id": guest_id,
            "total_price": str(booking.total_price),
        },
    )
    return booking


@atomic_with_retry
def set_booking_status(
    *,
    booking_id: int,
    actor_id: int | None,
    new_status: str,
    actor_role: str | None = None,
) -> Booking:
    """Apply a status change after checking it against the transition table."""
    if new_status not in Booking.Status.values:
        raise ValidationError(f"Unknown booking status '{new_status}'.")

    booking = _lock_booking(booking_id)
    if actor_role == "system":
        role = "system"
    else:
        actor = User.objects.filter(pk=actor_id).first() if actor_id is not None else None
        if actor is None:
            raise ForbiddenError()
        role = resolve_actor_role(booking, actor, new_status, claimed_role=actor_role)
    assert_transition_allowed(booking, role, new_status)

    previous = booking.status
    booking.status = new_status
    update_fields = ["status", "updated_at"]
    if new_status == Booking.Status.CANCELLED:
        booking.cancelled_by = role
        update_fields.append("cancelled_by")
    booking.save(update_fields=update_fields)
    logger.info(
        "bookings: status changed",
        extra={
            "booking_id": booking.id,
            "from_status": previous,
            "to_status": new_status,
            "actor_id": actor_id,
            "actor_role": role,
        },
    )
    return booking


def _parse_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError("Amount must be a decimal number.") from exc
    if value <= 0:
        raise ValidationError("Amount must be greater than zero.")
    return quantize_money(value)


@atomic_with_retry
def _charge_booking(
    booking_id: int,
    amount: Decimal | None,
    method: str,
    payer_id: int | None,
) -> tuple[Booking, ChargeResult]:
    booking = _lock_booking(booking_id)
    if payer_id is not None and booking.guest_id != payer_id:
        raise ForbiddenError("Only the guest can pay for this booking.")
    if booking.is_paid():
        raise AlreadyPaidError()
    if booking.status == Booking.Status.CANCELLED:
        raise InvalidTransitionError("Cancelled bookings cannot be paid.")
    if amount is not None and amount != booking.total_price:
        raise ValidationError(
            f"Amount {amount} does not match booking total {booking.total_price}."
        )

    attempt = attempt_number(booking=booking)
    result = get_gateway().charge(
        amount=booking.total_price,
        currency=settings.DEFAULT_CURRENCY,
        method=method,
        idempotency_key=f"booking:{booking.id}:charge:{attempt}",
        metadata={"booking_id": str(booking.id), "kind": "booking_charge"},
    )

    booking.payment_method = method
    if result.succeeded:
        assert_transition_allowed(booking, "system", Booking.Status.CONFIRMED)
        booking.payment_status = Booking.PaymentStatus.PAID
        booking.status = Booking.Status.CONFIRMED
        booking.payment_reference = result.reference
    else:
        booking.payment_status = Booking.PaymentStatus.FAILED
    booking.save(
        update_fields=[
            "payment_status",
            "status",
            "payment_method",
            "payment_reference",
            "updated_at",
        ]
    )
    log_transaction(
        user=booking.guest,
        booking=booking,
        kind=Transaction.Kind.BOOKING_CHARGE,
        status=Transaction.Status.SUCCEEDED if result.succeeded else Transaction.Status.FAILED,
        amount=booking.total_price,
        method=method,
        reference=result.reference,
    )
    return booking, result


def pay_booking(
    *,
    booking_id: int,
    amount=None,
    method: str = "card",
    payer_id: int | None = None,
) -> Booking:
    """
    Charge a booking once.

    Success marks it PAID and CONFIRMED together. A decline is recorded as
    FAILED before PaymentFailedError is raised, so the failed attempt stays
    visible and the guest can submit another payment.
    """
    parsed = _parse_amount(amount) if amount is not None else None
    booking, result = _charge_booking(booking_id, parsed, method or "card", payer_id)
    if not result.succeeded:
        logger.info(
            "bookings: payment failed",
            extra={"booking_id": booking.id, "method": method},
        )
        raise PaymentFailedError(result.failure_message or None)
    logger.info(
        "bookings: paid",
        extra={
            "booking_id": booking.id,
            "amount": str(booking.total_price),
            "reference": booking.payment_reference,
        },
    )
    return booking


@atomic_with_retry
def mark_booking_paid_from_provider(*, booking_id: int, reference: str) -> Booking | None:
    """
    Record a charge the provider reports as succeeded.

    Replays of the same event are no-ops. Unknown or cancelled bookings are
    logged and skipped, since the provider cannot be told to stop sending.
    """
    booking = Booking.objects.select_for_update().filter(pk=booking_id).first()
    if booking is None:
        logger.warning(
            "bookings: provider payment for unknown booking",
            extra={"booking_id": booking_id},
        )
        return None
    if booking.is_paid():
        return booking
    if booking.status == Booking.Status.CANCELLED:
        logger.warning(
            "bookings: provider payment for cancelled booking",
            extra={"booking_id": booking.id, "reference": reference},
        )
        return booking

    assert_transition_allowed(booking, "system", Booking.Status.CONFIRMED)
    booking.payment_status = Booking.PaymentStatus.PAID
    booking.status = Booking.Status.CONFIRMED
    booking.payment_reference = reference
    booking.save(update_fields=["payment_status", "status", "payment_reference", "updated_at"])
    log_transaction(
        user=booking.guest,
        booking=booking,
        kind=Transaction.Kind.BOOKING_CHARGE,
        status=Transaction.Status.SUCCEEDED,
        amount=booking.total_price,
        method="stripe",
        reference=reference,
    )
    logger.info(
        "bookings: paid via provider",
        extra={"booking_id": booking.id, "reference": reference},
    )
    return booking


@atomic_with_retry
def delete_booking(*, booking_id: int, actor_id: int) -> None:
    """Delete a booking on behalf of its guest; confirmed bookings must be cancelled first."""
    booking = _lock_booking(booking_id)
    if booking.guest_id != actor_id:
        raise ForbiddenError("Only the guest can delete this booking.")
    if booking.status not in DELETABLE_STATUSES:
        raise InvalidTransitionError("Cancel the booking before deleting it.")
    booking.delete()
    logger.info("bookings: deleted", extra={"booking_id": booking_id, "actor_id": actor_id})
