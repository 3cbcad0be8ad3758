"""Transaction helpers for services that must change several rows together."""

from __future__ import annotations

import functools
import logging
from typing import Callable, TypeVar

from django.db import OperationalError, connection, transaction

from .errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def atomic_with_retry(func: Callable[..., T]) -> Callable[..., T]:
    """
    Run `func` inside one transaction, retrying once on a store-level failure.

    Deadlocks and serialization failures surface as OperationalError; the failed
    attempt is rolled back in full before the retry. A second failure is
    reported as TransientStoreError. When called inside an outer atomic block
    the outer transaction is already poisoned, so no retry is attempted.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> T:
        attempts = 1 if connection.in_atomic_block else 2
        for attempt in range(1, attempts + 1):
            try:
                with transaction.atomic():
                    return func(*args, **kwargs)
            except OperationalError as exc:
                logger.warning(
                    "store: transaction failed in %s (attempt %s/%s)",
                    func.__name__,
                    attempt,
                    attempts,
                    exc_info=True,
                )
                if attempt == attempts:
                    raise TransientStoreError() from exc
        raise TransientStoreError()  # pragma: no cover

    return wrapper
