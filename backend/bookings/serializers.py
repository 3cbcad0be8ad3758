"""Serializers for booking-related API endpoints."""

from __future__ import annotations

from django.utils import timezone
from rest_framework import serializers

from .models import Booking


class BookingSerializer(serializers.ModelSerializer):
    """Serialize Booking instances for API usage."""

    guest = serializers.PrimaryKeyRelatedField(read_only=True)
    property_name = serializers.ReadOnlyField(source="property.name")
    property_owner = serializers.ReadOnlyField(source="property.owner_id")
    guest_username = serializers.ReadOnlyField(source="guest.username")
    nights = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = (
            "id",
            "property",
            "property_name",
            "property_owner",
            "guest",
            "guest_username",
            "check_in",
            "check_out",
            "nights",
            "guests",
            "total_price",
            "totals",
            "status",
            "payment_status",
            "payment_method",
            "payment_reference",
            "cancelled_by",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_nights(self, obj: Booking) -> int:
        return obj.night_count()


class BookingCreateSerializer(serializers.Serializer):
    """Shape check for a booking request; availability is checked by the service."""

    property = serializers.IntegerField(min_value=1)
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    guests = serializers.IntegerField(min_value=1, default=1)

    def validate(self, attrs):
        check_in = attrs["check_in"]
        check_out = attrs["check_out"]
        if check_in >= check_out:
            raise serializers.ValidationError(
                {"check_out": ["Check-out date must be after check-in date."]}
            )
        if check_in < timezone.localdate():
            raise serializers.ValidationError({"check_in": ["Check-in date cannot be in the past."]})
        return attrs


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Booking.Status.choices)
    actor_role = serializers.ChoiceField(
        choices=[("guest", "guest"), ("owner", "owner"), ("admin", "admin")],
        required=False,
    )


class BookingPaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        min_value=0,
    )
    method = serializers.CharField(max_length=32, required=False, default="card")


class AvailabilityQuerySerializer(serializers.Serializer):
    property = serializers.IntegerField(min_value=1)
    check_in = serializers.DateField(required=False)
    check_out = serializers.DateField(required=False)

    def validate(self, attrs):
        check_in = attrs.get("check_in")
        check_out = attrs.get("check_out")
        if bool(check_in) != bool(check_out):
            raise serializers.ValidationError(
                {"non_field_errors": ["Provide both check_in and check_out, or neither."]}
            )
        if check_in and check_in >= check_out:
            raise serializers.ValidationError(
                {"check_out": ["Check-out date must be after check-in date."]}
            )
        return attrs
