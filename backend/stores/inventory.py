"""Stock reservation for product orders."""

from __future__ import annotations

import logging

from django.db.models import F

from core.errors import InsufficientStockError, NotFoundError, ValidationError

from .models import Product

logger = logging.getLogger(__name__)


def reserve_stock(product_id: int, quantity: int) -> Product:
    """
    Take `quantity` units out of a product's stock.

    The decrement is a single conditional UPDATE, so concurrent reservations
    can never take the count below zero: whichever statement runs second sees
    the reduced stock and matches no row. Call inside the transaction that
    inserts the order item.
    """
    if quantity is None or quantity < 1:
        raise ValidationError("Quantity must be at least 1.")
    updated = Product.objects.filter(pk=product_id, stock__gte=quantity).update(
        stock=F("stock") - quantity
    )
    if not updated:
        if not Product.objects.filter(pk=product_id).exists():
            raise NotFoundError("Product not found.")
        logger.info(
            "inventory: insufficient stock",
            extra={"product_id": product_id, "quantity": quantity},
        )
        raise InsufficientStockError()
    return Product.objects.get(pk=product_id)


def release_stock(product_id: int, quantity: int) -> None:
    """Return `quantity` units to stock; a deleted product is skipped."""
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1.")
    updated = Product.objects.filter(pk=product_id).update(stock=F("stock") + quantity)
    if not updated:
        logger.warning(
            "inventory: restock skipped for missing product",
            extra={"product_id": product_id, "quantity": quantity},
        )


def adjust_stock(product_id: int, delta: int) -> Product:
    """
    Shift stock by `delta` relative to whatever is stored now.

    Used for owner edits: the change is applied as a difference, so units
    reserved by orders after the edit form was loaded stay reserved. A
    reduction that would go below zero changes nothing.
    """
    if delta:
        updated = Product.objects.filter(pk=product_id, stock__gte=max(-delta, 0)).update(
            stock=F("stock") + delta
        )
        if not updated:
            if not Product.objects.filter(pk=product_id).exists():
                raise NotFoundError("Product not found.")
            raise InsufficientStockError("Stock cannot be reduced below the units still on hand.")
        logger.info("inventory: adjusted", extra={"product_id": product_id, "delta": delta})
    return Product.objects.get(pk=product_id)
