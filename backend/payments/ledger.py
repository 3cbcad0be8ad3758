from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model

from .models import Transaction

User = get_user_model()


def log_transaction(
    *,
    user: User,
    booking=None,
    order=None,
    kind: str,
    status: str,
    amount: Decimal,
    currency: Optional[str] = None,
    method: str = "",
    reference: str = "",
) -> Transaction:
    """
    Create and return a Transaction row.

    Callers run this inside the same transaction as the status change it records.
    """
    return Transaction.objects.create(
        user=user,
        booking=booking,
        order=order,
        kind=kind,
        status=status,
        amount=amount,
        currency=(currency or settings.DEFAULT_CURRENCY).lower(),
        method=method or "",
        reference=reference or "",
    )


def attempt_number(*, booking=None, order=None) -> int:
    """Return the 1-based number of the next charge attempt for a booking or order."""
    qs = Transaction.objects.exclude(kind=Transaction.Kind.REFUND)
    if booking is not None:
        qs = qs.filter(booking=booking)
    if order is not None:
        qs = qs.filter(order=order)
    return qs.count() + 1
