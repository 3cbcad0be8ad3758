"""API viewsets and permissions for bookings."""

from __future__ import annotations

import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.errors import CoreError, error_response
from properties.models import Property

from . import services
from .domain import ACTIVE_BOOKING_STATUSES, is_available
from .models import Booking
from .serializers import (
    AvailabilityQuerySerializer,
    BookingCreateSerializer,
    BookingPaymentSerializer,
    BookingSerializer,
    BookingStatusSerializer,
)

logger = logging.getLogger(__name__)


class IsBookingParticipant(permissions.BasePermission):
    """Allow access only to users tied to the booking."""

    def has_permission(self, request, view) -> bool:
        """Always allow; actual checks happen at object level."""
        return True

    def has_object_permission(self, request, view, obj: Booking) -> bool:
        """Check that the user is the guest, the property owner or an admin."""
        user = request.user
        if getattr(user, "is_platform_admin", False):
            return True
        user_id = getattr(user, "id", None)
        return user_id in (obj.guest_id, obj.property.owner_id)


class BookingViewSet(viewsets.ModelViewSet):
    """Create, list, pay for and change the status of bookings."""

    serializer_class = BookingSerializer
    permission_classes = (permissions.IsAuthenticated, IsBookingParticipant)
    http_method_names = ["get", "post", "delete", "head", "options"]
    filterset_fields = ("status", "payment_status", "property")
    ordering_fields = ("check_in", "created_at", "total_price")

    def get_queryset(self):
        """Restrict bookings to the guest and the property owner."""
        user = self.request.user
        if not user.is_authenticated:
            return Booking.objects.none()
        qs = Booking.objects.select_related("property", "property__owner", "guest")
        if user.is_platform_admin:
            return qs.order_by("-created_at")
        return qs.filter(Q(guest=user) | Q(property__owner=user)).order_by("-created_at")

    def get_object(self):
        """Fetch a single booking and enforce participant permissions."""
        obj = get_object_or_404(
            Booking.objects.select_related("property", "property__owner", "guest"),
            pk=self.kwargs["pk"],
        )
        self.check_object_permissions(self.request, obj)
        return obj

    def create(self, request, *args, **kwargs):
        """Reserve dates on a property for the authenticated guest."""
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            booking = services.create_booking(
                property_id=data["property"],
                guest_id=request.user.id,
                check_in=data["check_in"],
                check_out=data["check_out"],
                guests=data["guests"],
            )
        except CoreError as exc:
            logger.info(
                "bookings: create rejected",
                extra={
                    "user_id": request.user.id,
                    "property_id": data["property"],
                    "error": exc.kind,
                },
            )
            return error_response(exc)
        return Response(self.get_serializer(booking).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        booking = self.get_object()
        try:
            services.delete_booking(booking_id=booking.pk, actor_id=request.user.id)
        except CoreError as exc:
            return error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(
        detail=False,
        methods=["get"],
        url_path="availability",
        permission_classes=[permissions.AllowAny],
    )
    def availability(self, request, *args, **kwargs):
        """Return booked [check_in, check_out) ranges, or whether given dates are free."""
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        property_obj = get_object_or_404(
            Property.objects.filter(status=Property.Status.ACTIVE),
            pk=params["property"],
        )

        if params.get("check_in"):
            available = is_available(property_obj.pk, params["check_in"], params["check_out"])
            return Response(
                {
                    "property": property_obj.pk,
                    "check_in": params["check_in"].isoformat(),
                    "check_out": params["check_out"].isoformat(),
                    "available": available,
                },
                status=status.HTTP_200_OK,
            )

        ranges = (
            Booking.objects.filter(
                property=property_obj,
                status__in=ACTIVE_BOOKING_STATUSES,
            )
            .order_by("check_in", "check_out")
            .values("check_in", "check_out")
        )
        payload = [
            {
                "check_in": item["check_in"].isoformat(),
                "check_out": item["check_out"].isoformat(),
            }
            for item in ranges
        ]
        return Response(payload, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, *args, **kwargs):
        """Confirm or cancel a booking as the guest, the owner or an admin."""
        booking = self.get_object()
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            booking = services.set_booking_status(
                booking_id=booking.pk,
                actor_id=request.user.id,
                new_status=serializer.validated_data["status"],
                actor_role=serializer.validated_data.get("actor_role"),
            )
        except CoreError as exc:
            logger.info(
                "bookings: status change rejected",
                extra={"booking_id": booking.pk, "user_id": request.user.id, "error": exc.kind},
            )
            return error_response(exc)
        return Response(self.get_serializer(booking).data)

    @action(detail=True, methods=["post"], url_path="pay")
    def pay(self, request, *args, **kwargs):
        """Charge the booking total; only the guest may pay."""
        booking = self.get_object()
        serializer = BookingPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            booking = services.pay_booking(
                booking_id=booking.pk,
                amount=serializer.validated_data.get("amount"),
                method=serializer.validated_data["method"],
                payer_id=request.user.id,
            )
        except CoreError as exc:
            return error_response(exc)
        return Response(self.get_serializer(booking).data)
