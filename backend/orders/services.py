"""Order placement, payment and status changes."""

from __future__ import annotations

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import F
from django.utils import timezone

from core.db import atomic_with_retry
from core.errors import (
    AlreadyCompletedError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    PaymentFailedError,
    ValidationError,
)
from core.pricing import PRODUCT_ORDER, compute_total, get_fee_schedule, quantize_money
from payments.gateway import ChargeResult, get_gateway
from payments.ledger import attempt_number, log_transaction
from payments.models import Transaction
from stores.inventory import release_stock, reserve_stock
from stores.models import Product, Store

from .domain import RESTOCKING_STATUSES, assert_transition_allowed, resolve_actor_role
from .models import Order, OrderItem

logger = logging.getLogger(__name__)
User = get_user_model()

DELETABLE_STATUSES = (Order.Status.PENDING, Order.Status.CANCELLED)


def _lock_order(order_id: int) -> Order:
    order = Order.objects.select_for_update().filter(pk=order_id).first()
    if order is None:
        raise NotFoundError("Order not found.")
    return order


@atomic_with_retry
def create_order(
    *,
    product_id: int,
    quantity: int,
    store_slug: str,
    customer_id: int,
) -> Order:
    """
    Place a single-product order and reserve its stock.

    The stock decrement, the order row and its item commit together; an
    InsufficientStockError rolls all three back.
    """
    if quantity is None or quantity < 1:
        raise ValidationError("Quantity must be at least 1.")
    if not store_slug:
        raise ValidationError("Store is required.")

    product = Product.objects.select_related("store").filter(pk=product_id).first()
    if product is None:
        raise NotFoundError("Product not found.")
    store = product.store
    if store.slug != store_slug:
        raise ValidationError("Product does not belong to this store.")
    if store.owner_id == customer_id:
        raise ValidationError("You cannot order from your own store.")
    if store.status != Store.Status.ACTIVE:
        raise ValidationError("This store is not accepting orders.")
    if not product.is_orderable:
        raise ValidationError("This product is not available for purchase.")

    reserved = reserve_stock(product.pk, quantity)
    unit_price = reserved.price
    order = Order.objects.create(
        customer_id=customer_id,
        store=store,
        total_amount=quantize_money(unit_price * quantity),
    )
    OrderItem.objects.create(order=order, product=reserved, quantity=quantity, price=unit_price)
    logger.info(
        "orders: created",
        extra={
            "order_id": order.id,
            "store_id": store.pk,
            "product_id": reserved.pk,
            "quantity": quantity,
            "stock_left": reserved.stock,
        },
    )
    return order


def _complete_order(order: Order, *, method: str, reference: str) -> None:
    """Mark a locked PENDING order COMPLETED and move the store counters with it."""
    assert_transition_allowed(order, "system", Order.Status.COMPLETED)
    breakdown = compute_total(order.total_amount, 1, get_fee_schedule(PRODUCT_ORDER)).rounded()
    order.status = Order.Status.COMPLETED
    order.service_fee = breakdown["service_fee"]
    order.tax = breakdown["tax"]
    order.final_amount = breakdown["total"]
    order.payment_method = method
    order.payment_reference = reference
    order.paid_at = timezone.now()
    order.save(
        update_fields=[
            "status",
            "service_fee",
            "tax",
            "final_amount",
            "payment_method",
            "payment_reference",
            "paid_at",
            "updated_at",
        ]
    )
    Store.objects.filter(pk=order.store_id).update(
        revenue=F("revenue") + order.total_amount,
        orders_count=F("orders_count") + 1,
    )


@atomic_with_retry
def _charge_order(order_id: int, method: str, payer_id: int | None) -> tuple[Order, ChargeResult]:
    order = _lock_order(order_id)
    if payer_id is not None and order.customer_id != payer_id:
        raise ForbiddenError("Only the customer can pay for this order.")
    if order.is_completed():
        raise AlreadyCompletedError()
    if order.status != Order.Status.PENDING:
        raise InvalidTransitionError(f"Orders in {order.status} cannot be paid.")

    amount = compute_total(order.total_amount, 1, get_fee_schedule(PRODUCT_ORDER)).total
    attempt = attempt_number(order=order)
    result = get_gateway().charge(
        amount=amount,
        currency=order.store.currency or settings.DEFAULT_CURRENCY,
        method=method,
        idempotency_key=f"order:{order.id}:charge:{attempt}",
        metadata={"order_id": str(order.id), "kind": "order_charge"},
    )
    if result.succeeded:
        _complete_order(order, method=method, reference=result.reference)
    log_transaction(
        user=order.customer,
        order=order,
        kind=Transaction.Kind.ORDER_CHARGE,
        status=Transaction.Status.SUCCEEDED if result.succeeded else Transaction.Status.FAILED,
        amount=amount,
        currency=order.store.currency,
        method=method,
        reference=result.reference,
    )
    return order, result


def pay_order(*, order_id: int, method: str = "card", payer_id: int | None = None) -> Order:
    """
    Charge an order's final amount once.

    On success the order is COMPLETED and the store's revenue and order count
    move in the same transaction. A decline leaves the order PENDING with a
    FAILED ledger row and raises PaymentFailedError.
    """
    order, result = _charge_order(order_id, method or "card", payer_id)
    if not result.succeeded:
        logger.info("orders: payment failed", extra={"order_id": order.id, "method": method})
        raise PaymentFailedError(result.failure_message or None)
    logger.info(
        "orders: paid",
        extra={
            "order_id": order.id,
            "final_amount": str(order.final_amount),
            "reference": order.payment_reference,
        },
    )
    return order


def _release_order_stock(order: Order) -> bool:
    """Return reserved units to stock at most once per order."""
    claimed = Order.objects.filter(pk=order.pk, stock_released=False).update(stock_released=True)
    if not claimed:
        return False
    for item in order.items.all():
        if item.product_id is not None:
            release_stock(item.product_id, item.quantity)
    order.stock_released = True
    return True


@atomic_with_retry
def set_order_status(
    *,
    order_id: int,
    actor_id: int | None,
    new_status: str,
    actor_role: str | None = None,
) -> Order:
    """
    Cancel or refund an order through the transition table.

    Both paths give the stock back exactly once; a refund also reverses the
    store counters that completion incremented.
    """
    if new_status not in Order.Status.values:
        raise ValidationError(f"Unknown order status '{new_status}'.")

    order = _lock_order(order_id)
    if actor_role == "system":
        role = "system"
    else:
        actor = User.objects.filter(pk=actor_id).first() if actor_id is not None else None
        if actor is None:
            raise ForbiddenError()
        role = resolve_actor_role(order, actor, new_status, claimed_role=actor_role)
    assert_transition_allowed(order, role, new_status)

    previous = order.status
    restocked = False
    if new_status in RESTOCKING_STATUSES:
        restocked = _release_order_stock(order)
    if new_status == Order.Status.REFUNDED:
        Store.objects.filter(pk=order.store_id).update(
            revenue=F("revenue") - order.total_amount,
            orders_count=F("orders_count") - 1,
        )
        log_transaction(
            user=order.customer,
            order=order,
            kind=Transaction.Kind.REFUND,
            status=Transaction.Status.SUCCEEDED,
            amount=order.final_amount or order.total_amount,
            currency=order.store.currency,
            method=order.payment_method,
            reference=order.payment_reference,
        )
    order.status = new_status
    order.save(update_fields=["status", "updated_at"])
    logger.info(
        "orders: status changed",
        extra={
            "order_id": order.id,
            "from_status": previous,
            "to_status": new_status,
            "actor_id": actor_id,
            "actor_role": role,
            "restocked": restocked,
        },
    )
    return order


@atomic_with_retry
def complete_order_from_provider(*, order_id: int, reference: str) -> Order | None:
    """Record a provider-reported successful charge; replays are no-ops."""
    order = Order.objects.select_for_update().filter(pk=order_id).first()
    if order is None:
        logger.warning("orders: provider payment for unknown order", extra={"order_id": order_id})
        return None
    if order.is_completed():
        return order
    if order.status != Order.Status.PENDING:
        logger.warning(
            "orders: provider payment for closed order",
            extra={"order_id": order.id, "status": order.status, "reference": reference},
        )
        return order

    _complete_order(order, method="stripe", reference=reference)
    log_transaction(
        user=order.customer,
        order=order,
        kind=Transaction.Kind.ORDER_CHARGE,
        status=Transaction.Status.SUCCEEDED,
        amount=order.final_amount,
        currency=order.store.currency,
        method="stripe",
        reference=reference,
    )
    logger.info("orders: paid via provider", extra={"order_id": order.id, "reference": reference})
    return order


@atomic_with_retry
def delete_order(*, order_id: int, actor_id: int) -> None:
    """Delete a PENDING or CANCELLED order, returning any stock it still holds."""
    order = _lock_order(order_id)
    actor = User.objects.filter(pk=actor_id).first()
    if actor is None or (order.customer_id != actor.pk and not actor.is_platform_admin):
        raise ForbiddenError("Only the customer can delete this order.")
    if order.status not in DELETABLE_STATUSES:
        raise InvalidTransitionError("Completed orders must be refunded, not deleted.")
    _release_order_stock(order)
    order.delete()
    logger.info("orders: deleted", extra={"order_id": order_id, "actor_id": actor_id})
