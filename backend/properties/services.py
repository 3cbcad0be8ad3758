import logging

from django.contrib.auth import get_user_model
from django.db.models import Q, QuerySet

from bookings.domain import ACTIVE_BOOKING_STATUSES
from bookings.models import Booking
from core.db import atomic_with_retry
from core.errors import ForbiddenError, HasActiveBookingsError, NotFoundError

from .models import Property

logger = logging.getLogger(__name__)
User = get_user_model()


def search_properties(
    qs: QuerySet[Property],
    q: str | None,
    owner_id: int | None = None,
) -> QuerySet[Property]:
    if q:
        qs = qs.filter(
            Q(name__icontains=q) | Q(description__icontains=q) | Q(location__icontains=q)
        )
    if owner_id is not None:
        qs = qs.filter(owner_id=owner_id)
    return qs.order_by("-created_at")


@atomic_with_retry
def delete_property(*, property_id: int, actor_id: int) -> None:
    """
    Delete a property that holds no PENDING or CONFIRMED booking.

    The property row lock is the same one create_booking takes, so a booking
    cannot slip in between the check and the delete.
    """
    property_obj = Property.objects.select_for_update().filter(pk=property_id).first()
    if property_obj is None:
        raise NotFoundError("Property not found.")
    actor = User.objects.filter(pk=actor_id).first()
    if actor is None or (property_obj.owner_id != actor.pk and not actor.is_platform_admin):
        raise ForbiddenError("Only the owner can delete this property.")
    if Booking.objects.filter(property=property_obj, status__in=ACTIVE_BOOKING_STATUSES).exists():
        raise HasActiveBookingsError()
    property_obj.delete()
    logger.info(
        "properties: deleted",
        extra={"property_id": property_id, "actor_id": actor_id},
    )
