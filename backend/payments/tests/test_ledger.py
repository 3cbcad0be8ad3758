from decimal import Decimal

import pytest

from orders.models import Order
from payments.ledger import attempt_number, log_transaction
from payments.models import Transaction

pytestmark = pytest.mark.django_db


@pytest.fixture
def order(store, guest_user):
    return Order.objects.create(customer=guest_user, store=store, total_amount=Decimal("40.00"))


def test_log_transaction_creates_row(order, guest_user):
    txn = log_transaction(
        user=guest_user,
        order=order,
        kind=Transaction.Kind.ORDER_CHARGE,
        status=Transaction.Status.SUCCEEDED,
        amount=Decimal("45.20"),
        currency="USD",
        method="card",
        reference="txn_123",
    )

    assert txn.pk is not None
    assert txn.user == guest_user
    assert txn.order == order
    assert txn.booking is None
    assert txn.amount == Decimal("45.20")
    assert txn.currency == "usd"
    assert txn.reference == "txn_123"


def test_log_transaction_defaults_currency(order, guest_user, settings):
    settings.DEFAULT_CURRENCY = "CAD"

    txn = log_transaction(
        user=guest_user,
        order=order,
        kind=Transaction.Kind.ORDER_CHARGE,
        status=Transaction.Status.FAILED,
        amount=Decimal("45.20"),
    )

    assert txn.currency == "cad"
    assert txn.method == ""


def test_attempt_number_ignores_refunds(order, guest_user):
    assert attempt_number(order=order) == 1
    for kind in (Transaction.Kind.ORDER_CHARGE, Transaction.Kind.REFUND):
        log_transaction(
            user=guest_user,
            order=order,
            kind=kind,
            status=Transaction.Status.SUCCEEDED,
            amount=Decimal("1.00"),
        )

    assert attempt_number(order=order) == 2
