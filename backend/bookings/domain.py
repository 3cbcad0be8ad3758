"""Domain helpers for booking validation, availability and state transitions."""

from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    ValidationError,
)
from properties.models import Property

from .models import Booking

# Statuses that hold dates for availability and conflict detection.
ACTIVE_BOOKING_STATUSES = (
    Booking.Status.PENDING,
    Booking.Status.CONFIRMED,
)

ActorRole = Literal["guest", "owner", "admin", "system"]
ACTOR_ROLES: tuple[ActorRole, ...] = ("guest", "owner", "admin", "system")

# (current status, actor role, requested status); anything absent is rejected.
BOOKING_TRANSITIONS = frozenset(
    {
        (Booking.Status.PENDING, "guest", Booking.Status.CANCELLED),
        (Booking.Status.CONFIRMED, "guest", Booking.Status.CANCELLED),
        (Booking.Status.PENDING, "owner", Booking.Status.CONFIRMED),
        (Booking.Status.PENDING, "owner", Booking.Status.CANCELLED),
        (Booking.Status.CONFIRMED, "owner", Booking.Status.CANCELLED),
        (Booking.Status.PENDING, "admin", Booking.Status.CONFIRMED),
        (Booking.Status.PENDING, "admin", Booking.Status.CANCELLED),
        (Booking.Status.CONFIRMED, "admin", Booking.Status.CANCELLED),
        (Booking.Status.PENDING, "system", Booking.Status.CONFIRMED),
        (Booking.Status.CONFIRMED, "system", Booking.Status.CONFIRMED),
    }
)

DELETABLE_STATUSES = (Booking.Status.PENDING, Booking.Status.CANCELLED)


def validate_booking_dates(check_in: date | None, check_out: date | None) -> None:
    """Validate that the provided dates exist and form a valid range."""
    if not check_in or not check_out:
        raise ValidationError("Check-in and check-out dates are required.")
    if check_in >= check_out:
        raise ValidationError("Check-out date must be after check-in date.")


def validate_stay(
    property_obj: Property,
    check_in: date | None,
    check_out: date | None,
    guests: int | None,
) -> None:
    """Reject malformed stays before any availability query runs."""
    validate_booking_dates(check_in, check_out)
    if guests is None or guests < 1:
        raise ValidationError("At least one guest is required.")
    if guests > property_obj.max_guests:
        raise ValidationError(
            f"This property accommodates at most {property_obj.max_guests} guests."
        )
    if not property_obj.is_bookable:
        raise ValidationError("This property is not accepting bookings.")


def find_conflicts(
    property_id: int,
    check_in: date,
    check_out: date,
    *,
    exclude_booking_id: Optional[int] = None,
):
    """
    Return active bookings overlapping [check_in, check_out).

    Two half-open ranges overlap iff each starts before the other ends, so a
    check-out equal to another booking's check-in is not a conflict.
    """
    qs = Booking.objects.filter(property_id=property_id, status__in=ACTIVE_BOOKING_STATUSES)
    if exclude_booking_id is not None:
        qs = qs.exclude(pk=exclude_booking_id)
    return qs.filter(check_in__lt=check_out, check_out__gt=check_in)


def is_available(
    property_id: int,
    check_in: date,
    check_out: date,
    *,
    exclude_booking_id: Optional[int] = None,
) -> bool:
    return not find_conflicts(
        property_id, check_in, check_out, exclude_booking_id=exclude_booking_id
    ).exists()


def ensure_available(
    property_id: int,
    check_in: date,
    check_out: date,
    *,
    exclude_booking_id: Optional[int] = None,
) -> None:
    """Raise ConflictError if the dates are already held on the property."""
    if not is_available(property_id, check_in, check_out, exclude_booking_id=exclude_booking_id):
        raise ConflictError("Property is not available for the selected dates.")


def actor_roles_for(booking: Booking, user) -> set[str]:
    """Return every role `user` holds with respect to `booking`."""
    roles: set[str] = set()
    if user is None:
        return roles
    if getattr(user, "is_platform_admin", False):
        roles.add("admin")
    if booking.guest_id == user.pk:
        roles.add("guest")
    if booking.property.owner_id == user.pk:
        roles.add("owner")
    return roles


def is_transition_allowed(current: str, actor_role: str, requested: str) -> bool:
    return (current, actor_role, requested) in BOOKING_TRANSITIONS


def resolve_actor_role(
    booking: Booking,
    user,
    requested: str,
    claimed_role: str | None = None,
) -> str:
    """
    Pick the role under which `user` performs `requested` on `booking`.

    A claimed role must be one the user actually holds. Without a claim, the
    first held role whose transition is allowed wins. Users holding no role
    on the booking get ForbiddenError; users whose roles cannot perform the
    change get InvalidTransitionError.
    """
    held = actor_roles_for(booking, user)
    if claimed_role is not None:
        if claimed_role not in ACTOR_ROLES or claimed_role == "system":
            raise ForbiddenError("Unknown actor role.")
        if claimed_role not in held:
            raise ForbiddenError()
        return claimed_role
    if not held:
        raise ForbiddenError()
    for role in ("admin", "owner", "guest"):
        if role in held and is_transition_allowed(booking.status, role, requested):
            return role
    return sorted(held)[0]


def assert_transition_allowed(booking: Booking, actor_role: str, requested: str) -> None:
    """Raise InvalidTransitionError unless the table permits the change."""
    if not is_transition_allowed(booking.status, actor_role, requested):
        raise InvalidTransitionError(
            f"Cannot move booking from {booking.status} to {requested} as {actor_role}."
        )
