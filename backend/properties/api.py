import logging

from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.errors import CoreError, error_response

from .filters import PropertyFilter
from .models import Property
from .serializers import PropertySerializer
from .services import delete_property, search_properties

logger = logging.getLogger(__name__)


def _parse_number(raw, cast):
    if raw in (None, ""):
        return None
    try:
        return cast(raw)
    except (TypeError, ValueError):
        return None


class IsOwnerOrReadOnly(permissions.BasePermission):
    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        return getattr(obj, "owner_id", None) == getattr(request.user, "id", None)


class PropertyViewSet(viewsets.ModelViewSet):
    serializer_class = PropertySerializer
    filterset_class = PropertyFilter
    permission_classes = [
        permissions.IsAuthenticatedOrReadOnly,
        IsOwnerOrReadOnly,
    ]
    ordering_fields = ("price", "created_at", "max_guests")

    def get_permissions(self):
        if getattr(self, "action", None) in {"list", "retrieve"}:
            return [permissions.AllowAny()]
        if getattr(self, "action", None) == "destroy":
            # Ownership is checked under the row lock by delete_property.
            return [permissions.IsAuthenticated()]
        return [permission() for permission in self.permission_classes]

    def perform_authentication(self, request):
        """Downgrade to anonymous user when public actions receive invalid tokens."""
        try:
            return super().perform_authentication(request)
        except AuthenticationFailed:
            if getattr(self, "action", None) in {"list", "retrieve"}:
                request._not_authenticated()
                return
            raise

    def get_queryset(self):
        base_qs = Property.objects.select_related("owner")
        if getattr(self, "action", None) == "list":
            base_qs = base_qs.filter(status=Property.Status.ACTIVE)
        params = self.request.query_params
        return search_properties(
            qs=base_qs,
            q=params.get("q") or None,
            owner_id=_parse_number(params.get("owner_id"), int),
        )

    def destroy(self, request, *args, **kwargs):
        try:
            delete_property(property_id=int(kwargs["pk"]), actor_id=request.user.id)
        except (TypeError, ValueError):
            return Response(status=status.HTTP_404_NOT_FOUND)
        except CoreError as exc:
            return error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(
        detail=False,
        methods=["get"],
        url_path="mine",
        permission_classes=[IsAuthenticated],
    )
    def mine(self, request):
        """Return the authenticated user's properties, active or not."""
        qs = Property.objects.filter(owner=request.user).order_by("-created_at")
        page = self.paginate_queryset(qs)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        serializer = self.get_serializer(qs, many=True)
        return Response(serializer.data)
