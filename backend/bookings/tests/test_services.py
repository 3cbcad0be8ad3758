"""Tests for booking creation, status changes and payment."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from bookings import services
from bookings.models import Booking
from core.errors import (
    AlreadyPaidError,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    PaymentFailedError,
    ValidationError,
)
from payments.gateway import ChargeResult
from payments.models import Transaction

pytestmark = pytest.mark.django_db


class RecordingGateway:
    """Gateway double that records every charge and answers with a fixed outcome."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.calls = []

    def charge(self, **kwargs):
        self.calls.append(kwargs)
        if self.succeed:
            return ChargeResult(succeeded=True, reference=f"txn_{len(self.calls)}")
        return ChargeResult(succeeded=False, failure_message="Card declined.")


@pytest.fixture
def gateway(monkeypatch):
    fake = RecordingGateway()
    monkeypatch.setattr(services, "get_gateway", lambda: fake)
    return fake


def _book(property_obj, guest, check_in, check_out, guests=2):
    return services.create_booking(
        property_id=property_obj.pk,
        guest_id=guest.pk,
        check_in=check_in,
        check_out=check_out,
        guests=guests,
    )


def test_create_booking_prices_the_stay(property_obj, guest_user):
    booking = _book(property_obj, guest_user, date(2024, 6, 1), date(2024, 6, 5))

    assert booking.status == Booking.Status.PENDING
    assert booking.payment_status == Booking.PaymentStatus.PENDING
    # 4 nights at 100.00 plus 10% service fee and 8% tax.
    assert booking.total_price == Decimal("472.00")
    assert booking.totals["subtotal"] == "400.00"
    assert booking.totals["service_fee"] == "40.00"
    assert booking.totals["tax"] == "32.00"
    assert booking.totals["nights"] == 4


def test_overlapping_request_is_rejected(property_obj, guest_user, other_user, booking_factory):
    booking_factory(
        check_in=date(2024, 6, 1),
        check_out=date(2024, 6, 5),
        status=Booking.Status.CONFIRMED,
    )

    with pytest.raises(ConflictError):
        _book(property_obj, other_user, date(2024, 6, 3), date(2024, 6, 7))
    assert Booking.objects.count() == 1


def test_request_starting_on_checkout_day_succeeds(property_obj, other_user, booking_factory):
    booking_factory(
        check_in=date(2024, 6, 1),
        check_out=date(2024, 6, 5),
        status=Booking.Status.CONFIRMED,
    )

    booking = _book(property_obj, other_user, date(2024, 6, 5), date(2024, 6, 8))

    assert booking.pk is not None
    assert Booking.objects.filter(property=property_obj).count() == 2


def test_create_booking_validation(property_obj, guest_user, owner_user):
    with pytest.raises(ValidationError):
        _book(property_obj, guest_user, date(2024, 6, 5), date(2024, 6, 5))
    with pytest.raises(ValidationError):
        _book(property_obj, guest_user, date(2024, 6, 1), date(2024, 6, 2), guests=9)
    with pytest.raises(ValidationError):
        _book(property_obj, owner_user, date(2024, 6, 1), date(2024, 6, 2))
    with pytest.raises(NotFoundError):
        services.create_booking(
            property_id=999999,
            guest_id=guest_user.pk,
            check_in=date(2024, 6, 1),
            check_out=date(2024, 6, 2),
            guests=1,
        )
    assert not Booking.objects.exists()


def test_owner_confirms_and_guest_cancels(property_obj, guest_user, owner_user):
    booking = _book(property_obj, guest_user, date(2024, 7, 1), date(2024, 7, 3))

    booking = services.set_booking_status(
        booking_id=booking.pk, actor_id=owner_user.pk, new_status=Booking.Status.CONFIRMED
    )
    assert booking.status == Booking.Status.CONFIRMED

    booking = services.set_booking_status(
        booking_id=booking.pk, actor_id=guest_user.pk, new_status=Booking.Status.CANCELLED
    )
    assert booking.status == Booking.Status.CANCELLED
    assert booking.cancelled_by == "guest"


def test_guest_cannot_confirm(property_obj, guest_user):
    booking = _book(property_obj, guest_user, date(2024, 7, 1), date(2024, 7, 3))

    with pytest.raises(InvalidTransitionError):
        services.set_booking_status(
            booking_id=booking.pk, actor_id=guest_user.pk, new_status=Booking.Status.CONFIRMED
        )


def test_stranger_cannot_change_status(property_obj, guest_user, other_user):
    booking = _book(property_obj, guest_user, date(2024, 7, 1), date(2024, 7, 3))

    with pytest.raises(ForbiddenError):
        services.set_booking_status(
            booking_id=booking.pk, actor_id=other_user.pk, new_status=Booking.Status.CANCELLED
        )


def test_cancelled_booking_cannot_be_revived(property_obj, guest_user, admin_user):
    booking = _book(property_obj, guest_user, date(2024, 7, 1), date(2024, 7, 3))
    services.set_booking_status(
        booking_id=booking.pk, actor_id=guest_user.pk, new_status=Booking.Status.CANCELLED
    )

    with pytest.raises(InvalidTransitionError):
        services.set_booking_status(
            booking_id=booking.pk, actor_id=admin_user.pk, new_status=Booking.Status.CONFIRMED
        )


def test_cancelling_frees_the_dates(property_obj, guest_user, other_user):
    booking = _book(property_obj, guest_user, date(2024, 8, 1), date(2024, 8, 4))
    services.set_booking_status(
        booking_id=booking.pk, actor_id=guest_user.pk, new_status=Booking.Status.CANCELLED
    )

    rebooked = _book(property_obj, other_user, date(2024, 8, 2), date(2024, 8, 3))

    assert rebooked.status == Booking.Status.PENDING


def test_cancelling_paid_booking_leaves_product_stock_alone(
    property_obj, guest_user, product_factory, gateway
):
    mug = product_factory(stock=3)
    teapot = product_factory(name="Teapot", stock=7)
    booking = _book(property_obj, guest_user, date(2024, 9, 1), date(2024, 9, 3))
    services.pay_booking(booking_id=booking.pk, method="card")

    cancelled = services.set_booking_status(
        booking_id=booking.pk, actor_id=guest_user.pk, new_status=Booking.Status.CANCELLED
    )

    assert cancelled.status == Booking.Status.CANCELLED
    mug.refresh_from_db()
    teapot.refresh_from_db()
    assert (mug.stock, teapot.stock) == (3, 7)

def test_pay_booking_confirms_and_records_transaction(property_obj, guest_user, gateway):
    booking = _book(property_obj, guest_user, date(2024, 6, 1), date(2024, 6, 3))

    paid = services.pay_booking(booking_id=booking.pk, amount=booking.total_price, method="card")

    assert paid.payment_status == Booking.PaymentStatus.PAID
    assert paid.status == Booking.Status.CONFIRMED
    assert paid.payment_reference == "txn_1"
    assert gateway.calls[0]["amount"] == booking.total_price
    assert gateway.calls[0]["idempotency_key"] == f"booking:{booking.pk}:charge:1"
    txn = Transaction.objects.get(booking=booking)
    assert txn.kind == Transaction.Kind.BOOKING_CHARGE
    assert txn.status == Transaction.Status.SUCCEEDED
    assert txn.amount == booking.total_price


def test_second_payment_is_rejected_without_charging(property_obj, guest_user, gateway):
    booking = _book(property_obj, guest_user, date(2024, 6, 1), date(2024, 6, 3))
    services.pay_booking(booking_id=booking.pk)

    with pytest.raises(AlreadyPaidError):
        services.pay_booking(booking_id=booking.pk)

    assert len(gateway.calls) == 1
    assert Transaction.objects.filter(booking=booking).count() == 1


def test_failed_payment_is_recorded_and_can_be_retried(property_obj, guest_user, gateway):
    booking = _book(property_obj, guest_user, date(2024, 6, 1), date(2024, 6, 3))
    gateway.succeed = False

    with pytest.raises(PaymentFailedError):
        services.pay_booking(booking_id=booking.pk)

    booking.refresh_from_db()
    assert booking.payment_status == Booking.PaymentStatus.FAILED
    assert booking.status == Booking.Status.PENDING
    assert Transaction.objects.get(booking=booking).status == Transaction.Status.FAILED

    gateway.succeed = True
    paid = services.pay_booking(booking_id=booking.pk)

    assert paid.payment_status == Booking.PaymentStatus.PAID
    assert gateway.calls[1]["idempotency_key"] == f"booking:{booking.pk}:charge:2"


def test_pay_booking_rejects_wrong_amount(property_obj, guest_user, gateway):
    booking = _book(property_obj, guest_user, date(2024, 6, 1), date(2024, 6, 3))

    with pytest.raises(ValidationError):
        services.pay_booking(booking_id=booking.pk, amount=Decimal("1.00"))
    assert gateway.calls == []


def test_pay_cancelled_booking_is_invalid(property_obj, guest_user, gateway):
    booking = _book(property_obj, guest_user, date(2024, 6, 1), date(2024, 6, 3))
    services.set_booking_status(
        booking_id=booking.pk, actor_id=guest_user.pk, new_status=Booking.Status.CANCELLED
    )

    with pytest.raises(InvalidTransitionError):
        services.pay_booking(booking_id=booking.pk)
    assert gateway.calls == []


def test_owner_confirmed_booking_can_still_be_paid(property_obj, guest_user, owner_user, gateway):
    booking = _book(property_obj, guest_user, date(2024, 6, 1), date(2024, 6, 3))
    services.set_booking_status(
        booking_id=booking.pk, actor_id=owner_user.pk, new_status=Booking.Status.CONFIRMED
    )

    paid = services.pay_booking(booking_id=booking.pk)

    assert paid.status == Booking.Status.CONFIRMED
    assert paid.payment_status == Booking.PaymentStatus.PAID


def test_only_guest_can_pay(property_obj, guest_user, other_user, gateway):
    booking = _book(property_obj, guest_user, date(2024, 6, 1), date(2024, 6, 3))

    with pytest.raises(ForbiddenError):
        services.pay_booking(booking_id=booking.pk, payer_id=other_user.pk)


def test_provider_payment_is_idempotent(property_obj, guest_user):
    booking = _book(property_obj, guest_user, date(2024, 6, 1), date(2024, 6, 3))

    services.mark_booking_paid_from_provider(booking_id=booking.pk, reference="pi_1")
    services.mark_booking_paid_from_provider(booking_id=booking.pk, reference="pi_1")

    booking.refresh_from_db()
    assert booking.payment_status == Booking.PaymentStatus.PAID
    assert booking.status == Booking.Status.CONFIRMED
    assert Transaction.objects.filter(booking=booking).count() == 1


def test_delete_booking_rules(property_obj, guest_user, owner_user):
    pending = _book(property_obj, guest_user, date(2024, 6, 1), date(2024, 6, 3))
    confirmed = _book(property_obj, guest_user, date(2024, 6, 10), date(2024, 6, 12))
    services.set_booking_status(
        booking_id=confirmed.pk, actor_id=owner_user.pk, new_status=Booking.Status.CONFIRMED
    )

    with pytest.raises(ForbiddenError):
        services.delete_booking(booking_id=pending.pk, actor_id=owner_user.pk)
    with pytest.raises(InvalidTransitionError):
        services.delete_booking(booking_id=confirmed.pk, actor_id=guest_user.pk)

    services.delete_booking(booking_id=pending.pk, actor_id=guest_user.pk)

    assert list(Booking.objects.values_list("pk", flat=True)) == [confirmed.pk]
