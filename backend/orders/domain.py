"""Order state machine."""

from __future__ import annotations

from core.errors import ForbiddenError, InvalidTransitionError

from .models import Order

ACTOR_ROLES = ("customer", "store_owner", "admin", "system")

# (current status, actor role, requested status); anything absent is rejected.
ORDER_TRANSITIONS = frozenset(
    {
        (Order.Status.PENDING, "system", Order.Status.COMPLETED),
        (Order.Status.PENDING, "customer", Order.Status.CANCELLED),
        (Order.Status.PENDING, "store_owner", Order.Status.CANCELLED),
        (Order.Status.PENDING, "admin", Order.Status.CANCELLED),
        (Order.Status.COMPLETED, "store_owner", Order.Status.REFUNDED),
        (Order.Status.COMPLETED, "admin", Order.Status.REFUNDED),
    }
)

# Leaving PENDING or COMPLETED for one of these gives the reserved units back.
RESTOCKING_STATUSES = (Order.Status.CANCELLED, Order.Status.REFUNDED)


def actor_roles_for(order: Order, user) -> set[str]:
    roles: set[str] = set()
    if user is None:
        return roles
    if getattr(user, "is_platform_admin", False):
        roles.add("admin")
    if order.customer_id == user.pk:
        roles.add("customer")
    if order.store.owner_id == user.pk:
        roles.add("store_owner")
    return roles


def is_transition_allowed(current: str, actor_role: str, requested: str) -> bool:
    return (current, actor_role, requested) in ORDER_TRANSITIONS


def resolve_actor_role(order: Order, user, requested: str, claimed_role: str | None = None) -> str:
    """Same resolution rules as bookings: claimed roles must be held, else first allowed wins."""
    held = actor_roles_for(order, user)
    if claimed_role is not None:
        if claimed_role not in ACTOR_ROLES or claimed_role == "system":
            raise ForbiddenError("Unknown actor role.")
        if claimed_role not in held:
            raise ForbiddenError()
        return claimed_role
    if not held:
        raise ForbiddenError()
    for role in ("admin", "store_owner", "customer"):
        if role in held and is_transition_allowed(order.status, role, requested):
            return role
    return sorted(held)[0]


def assert_transition_allowed(order: Order, actor_role: str, requested: str) -> None:
    if not is_transition_allowed(order.status, actor_role, requested):
        raise InvalidTransitionError(
            f"Cannot move order from {order.status} to {requested} as {actor_role}."
        )
