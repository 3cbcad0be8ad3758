"""Shared pytest configuration and fixtures."""

import threading
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.db import connection
from rest_framework.test import APIClient

from bookings.models import Booking
from properties.models import Property
from stores.models import Product, Store

User = get_user_model()


def _create_user(*, username: str, role: str = "CUSTOMER") -> User:
    return User.objects.create_user(
        username=username,
        password="testpass",
        email=f"{username}@example.com",
        role=role,
    )


@pytest.fixture
def api_client():
    """DRF API client for request/response helpers."""
    return APIClient()


@pytest.fixture
def owner_user():
    return _create_user(username="owner")


@pytest.fixture
def guest_user():
    return _create_user(username="guest")


@pytest.fixture
def other_user():
    return _create_user(username="other")


@pytest.fixture
def admin_user():
    return _create_user(username="admin", role=User.Role.ADMIN)


@pytest.fixture
def auth():
    """Return a helper that logs a user in through the token endpoint."""

    def _auth(user):
        client = APIClient()
        token_resp = client.post(
            "/api/users/token/",
            {"username": user.username, "password": "testpass"},
            format="json",
        )
        token = token_resp.data["access"]
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        return client

    return _auth


@pytest.fixture
def property_obj(owner_user):
    return Property.objects.create(
        owner=owner_user,
        name="Lakeside Cabin",
        description="Two bedrooms by the water.",
        location="Banff",
        price=Decimal("100.00"),
        bedrooms=2,
        bathrooms=1,
        max_guests=4,
    )


@pytest.fixture
def booking_factory(property_obj, guest_user):
    def _create_booking(
        *,
        property_override=None,
        guest=None,
        check_in,
        check_out,
        status=Booking.Status.PENDING,
        **extra_fields,
    ):
        extra_fields.setdefault("total_price", Decimal("118.00"))
        return Booking.objects.create(
            property=property_override or property_obj,
            guest=guest or guest_user,
            check_in=check_in,
            check_out=check_out,
            status=status,
            **extra_fields,
        )

    return _create_booking


@pytest.fixture
def store(owner_user):
    return Store.objects.create(owner=owner_user, name="Corner Shop", slug="corner-shop")


@pytest.fixture
def product_factory(store):
    def _create_product(*, stock=3, price=Decimal("50.00"), status=Product.Status.ACTIVE, **extra):
        return Product.objects.create(
            store=extra.pop("store", store),
            name=extra.pop("name", "Ceramic Mug"),
            price=price,
            stock=stock,
            status=status,
            **extra,
        )

    return _create_product


@pytest.fixture
def product(product_factory):
    return product_factory()


@pytest.fixture
def run_concurrently():
    """
    Start every callable on its own thread and connection at the same moment.

    Returns each callable's result, or the exception it raised, in order.
    """

    def _race(callables):
        barrier = threading.Barrier(len(callables))
        outcomes = [None] * len(callables)

        def _run(index, fn):
            try:
                barrier.wait()
                outcomes[index] = fn()
            except Exception as exc:  # noqa: BLE001
                outcomes[index] = exc
            finally:
                connection.close()

        threads = [threading.Thread(target=_run, args=(i, fn)) for i, fn in enumerate(callables)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        return outcomes

    return _race
