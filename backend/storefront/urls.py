from django.conf import settings
from django.contrib import admin
from django.urls import include, path

from core.health import healthz
from core.pricing import pricing_summary

urlpatterns = [
    path("api/healthz", healthz),
    path("api/platform/pricing/", pricing_summary),
    path("api/users/", include("users.urls")),
    path("api/properties/", include("properties.urls")),
    path("api/bookings/", include("bookings.urls")),
    path("api/", include("stores.urls")),
    path("api/orders/", include("orders.urls")),
    path("api/payments/", include("payments.urls")),
]

if settings.ENABLE_DJANGO_ADMIN:
    urlpatterns.insert(0, path("admin/", admin.site.urls))
