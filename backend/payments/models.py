from django.conf import settings
from django.db import models


class Transaction(models.Model):
    """Recorded outcome of a charge or refund; the provider call itself is external."""

    class Kind(models.TextChoices):
        BOOKING_CHARGE = "BOOKING_CHARGE", "Booking charge"
        ORDER_CHARGE = "ORDER_CHARGE", "Order charge"
        REFUND = "REFUND", "Refund"

    class Status(models.TextChoices):
        SUCCEEDED = "SUCCEEDED", "Succeeded"
        FAILED = "FAILED", "Failed"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="transactions",
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="transactions",
        null=True,
        blank=True,
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="transactions",
        null=True,
        blank=True,
    )
    kind = models.CharField(max_length=32, choices=Kind.choices)
    status = models.CharField(max_length=16, choices=Status.choices)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=8, default="usd")
    method = models.CharField(max_length=32, blank=True, default="")
    reference = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Provider transaction / PaymentIntent / refund id.",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(booking__isnull=False) | models.Q(order__isnull=False),
                name="transaction_has_subject",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user} {self.kind} {self.status} {self.amount} {self.currency}"
