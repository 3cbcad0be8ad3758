"""Routes for reservations, their availability lookup and payment actions."""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api import BookingViewSet

router = DefaultRouter()
router.register("", BookingViewSet, basename="booking")

urlpatterns = [
    path("", include(router.urls)),
]
