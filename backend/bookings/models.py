"""Database models for property bookings."""

from __future__ import annotations

from django.conf import settings
from django.db import models

from properties.models import Property


class Booking(models.Model):
    """A stay reserved on a property over the half-open range [check_in, check_out)."""

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        CONFIRMED = "CONFIRMED", "Confirmed"
        CANCELLED = "CANCELLED", "Cancelled"

    class PaymentStatus(models.TextChoices):
        PENDING = "PENDING", "Pending"
        PAID = "PAID", "Paid"
        FAILED = "FAILED", "Failed"

    property = models.ForeignKey(
        Property,
        related_name="bookings",
        on_delete=models.CASCADE,
    )
    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="bookings",
        on_delete=models.CASCADE,
    )
    check_in = models.DateField()
    check_out = models.DateField(help_text="Checkout date (exclusive), must be after check_in.")
    guests = models.PositiveSmallIntegerField(default=1)
    total_price = models.DecimalField(max_digits=12, decimal_places=2)
    totals = models.JSONField(default=dict, blank=True)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )
    payment_status = models.CharField(
        max_length=16,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method = models.CharField(max_length=32, blank=True, default="")
    payment_reference = models.CharField(max_length=120, blank=True, default="")
    cancelled_by = models.CharField(max_length=16, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["property", "check_in", "check_out"], name="booking_property_dates_idx"
            ),
            models.Index(fields=["guest", "status"], name="booking_guest_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out__gt=models.F("check_in")),
                name="booking_check_out_after_check_in",
            ),
            models.CheckConstraint(
                condition=models.Q(guests__gte=1),
                name="booking_guests_positive",
            ),
        ]

    def __str__(self) -> str:
        """Return a human-readable representation."""
        return f"Booking #{self.pk} for {self.property_id} ({self.status})"

    def night_count(self) -> int:
        """Return the count of booked nights."""
        if not self.check_in or not self.check_out:
            return 0
        return (self.check_out - self.check_in).days

    def is_active(self) -> bool:
        """Return True if the booking holds its dates."""
        return self.status in {self.Status.PENDING, self.Status.CONFIRMED}

    def is_paid(self) -> bool:
        return self.payment_status == self.PaymentStatus.PAID
