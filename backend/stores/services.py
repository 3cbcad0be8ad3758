import logging

from django.contrib.auth import get_user_model

from core.db import atomic_with_retry
from core.errors import ForbiddenError, HasPendingOrdersError, NotFoundError
from orders.models import Order, OrderItem

from .models import Product

logger = logging.getLogger(__name__)
User = get_user_model()


def can_manage_store(user, store) -> bool:
    if user is None or not user.is_authenticated:
        return False
    return store.owner_id == user.pk or user.is_platform_admin


@atomic_with_retry
def delete_product(*, product_id: int, actor_id: int) -> None:
    """
    Delete a product unless a PENDING order still references it.

    The product row lock serializes with the stock decrement of an order being
    placed, so the pending-order check sees every committed order.
    """
    product = (
        Product.objects.select_for_update().select_related("store").filter(pk=product_id).first()
    )
    if product is None:
        raise NotFoundError("Product not found.")
    actor = User.objects.filter(pk=actor_id).first()
    if not can_manage_store(actor, product.store):
        raise ForbiddenError("Only the store owner can delete this product.")
    pending = OrderItem.objects.filter(
        product=product,
        order__status=Order.Status.PENDING,
    ).exists()
    if pending:
        raise HasPendingOrdersError()
    product.delete()
    logger.info(
        "stores: product deleted",
        extra={"product_id": product_id, "store_id": product.store_id, "actor_id": actor_id},
    )
