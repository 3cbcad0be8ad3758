from django.apps import AppConfig


class BookingsConfig(AppConfig):
    """Property reservations and their payment state."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "bookings"
    verbose_name = "Bookings"
