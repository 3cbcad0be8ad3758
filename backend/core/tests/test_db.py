import pytest
from django.db import OperationalError, transaction

from core.db import atomic_with_retry
from core.errors import TransientStoreError


def _flaky(failures: int):
    calls = []

    @atomic_with_retry
    def _work():
        calls.append(len(calls) + 1)
        if len(calls) <= failures:
            raise OperationalError("deadlock detected")
        return "done"

    return _work, calls


@pytest.mark.django_db(transaction=True)
def test_retries_once_after_store_failure():
    work, calls = _flaky(failures=1)

    assert work() == "done"
    assert calls == [1, 2]


@pytest.mark.django_db(transaction=True)
def test_second_failure_is_transient_error():
    work, calls = _flaky(failures=2)

    with pytest.raises(TransientStoreError):
        work()
    assert calls == [1, 2]


@pytest.mark.django_db(transaction=True)
def test_no_retry_inside_outer_transaction():
    work, calls = _flaky(failures=1)

    with pytest.raises(TransientStoreError):
        with transaction.atomic():
            work()
    assert calls == [1]


@pytest.mark.django_db
def test_domain_errors_are_not_retried():
    calls = []

    @atomic_with_retry
    def _work():
        calls.append(1)
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        _work()
    assert calls == [1]


@pytest.mark.django_db
def test_healthz(client):
    response = client.get("/api/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}
