"""Integration tests for the orders API endpoints."""

from __future__ import annotations

from decimal import Decimal

import pytest

from orders import services
from orders.models import Order
from payments.gateway import ChargeResult

pytestmark = pytest.mark.django_db


@pytest.fixture
def approve_charges(monkeypatch):
    class _Gateway:
        def charge(self, **kwargs):
            return ChargeResult(succeeded=True, reference="txn_api")

    monkeypatch.setattr(services, "get_gateway", _Gateway)


def place(client, product, quantity=1, store="corner-shop"):
    return client.post(
        "/api/orders/",
        {"product": product.id, "quantity": quantity, "store": store},
        format="json",
    )


def test_place_order(auth, guest_user, product):
    resp = place(auth(guest_user), product, quantity=2)

    assert resp.status_code == 201, resp.data
    assert resp.data["status"] == "PENDING"
    assert resp.data["total_amount"] == "100.00"
    assert resp.data["final_amount"] is None
    assert resp.data["items"][0]["quantity"] == 2
    assert resp.data["items"][0]["price"] == "50.00"


def test_place_order_insufficient_stock(auth, guest_user, product):
    resp = place(auth(guest_user), product, quantity=5)

    assert resp.status_code == 409
    assert resp.data == {"error": "insufficient_stock", "detail": "Insufficient stock."}


def test_place_order_wrong_store(auth, guest_user, product):
    resp = place(auth(guest_user), product, store="elsewhere")

    assert resp.status_code == 400
    assert resp.data["error"] == "validation_error"


def test_place_order_requires_auth(api_client, product):
    resp = place(api_client, product)

    assert resp.status_code == 401


def test_pay_order_then_pay_again(auth, guest_user, product, store, approve_charges):
    client = auth(guest_user)
    order_id = place(client, product, quantity=2).data["id"]

    paid = client.post(f"/api/orders/{order_id}/pay/", {"method": "card"}, format="json")
    again = client.post(f"/api/orders/{order_id}/pay/", {"method": "card"}, format="json")

    assert paid.status_code == 200, paid.data
    assert paid.data["status"] == "COMPLETED"
    assert paid.data["service_fee"] == "5.00"
    assert paid.data["tax"] == "8.00"
    assert paid.data["final_amount"] == "113.00"
    assert again.status_code == 409
    assert again.data["error"] == "already_completed"
    store.refresh_from_db()
    assert store.revenue == Decimal("100.00")
    assert store.orders_count == 1


def test_store_owner_sees_and_cancels_order(auth, guest_user, owner_user, product):
    order_id = place(auth(guest_user), product, quantity=2).data["id"]
    owner_client = auth(owner_user)

    listed = owner_client.get("/api/orders/")
    cancelled = owner_client.post(
        f"/api/orders/{order_id}/status/", {"status": "CANCELLED"}, format="json"
    )

    assert [row["id"] for row in listed.data["results"]] == [order_id]
    assert cancelled.status_code == 200, cancelled.data
    assert cancelled.data["status"] == "CANCELLED"
    product.refresh_from_db()
    assert product.stock == 3


def test_stranger_cannot_see_order(auth, guest_user, other_user, product):
    order_id = place(auth(guest_user), product).data["id"]

    resp = auth(other_user).get(f"/api/orders/{order_id}/")

    assert resp.status_code == 403


def test_customer_deletes_pending_order(auth, guest_user, product):
    client = auth(guest_user)
    order_id = place(client, product, quantity=3).data["id"]

    resp = client.delete(f"/api/orders/{order_id}/")

    assert resp.status_code == 204
    assert not Order.objects.filter(pk=order_id).exists()
    product.refresh_from_db()
    assert product.stock == 3
