import logging

from django.db.models import Q
from rest_framework import permissions, status, viewsets
from rest_framework.response import Response

from core.errors import CoreError, error_response

from .filters import ProductFilter
from .models import Product, Store
from .serializers import ProductSerializer, StoreSerializer
from .services import can_manage_store, delete_product

logger = logging.getLogger(__name__)


class IsStoreManagerOrReadOnly(permissions.BasePermission):
    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        store = obj if isinstance(obj, Store) else obj.store
        return can_manage_store(request.user, store)


class StoreViewSet(viewsets.ModelViewSet):
    serializer_class = StoreSerializer
    permission_classes = [permissions.IsAuthenticatedOrReadOnly, IsStoreManagerOrReadOnly]
    lookup_field = "slug"
    filterset_fields = ("owner", "status")
    search_fields = ("name", "description")

    def get_queryset(self):
        qs = Store.objects.select_related("owner")
        if getattr(self, "action", None) == "list":
            user = self.request.user
            if user.is_authenticated and user.is_platform_admin:
                return qs
            visible = Q(status=Store.Status.ACTIVE)
            if user.is_authenticated:
                visible |= Q(owner=user)
            return qs.filter(visible)
        return qs

    def perform_destroy(self, instance):
        store_id = instance.pk
        instance.delete()
        logger.info(
            "stores: deleted",
            extra={"store_id": store_id, "actor_id": self.request.user.pk},
        )


class ProductViewSet(viewsets.ModelViewSet):
    serializer_class = ProductSerializer
    filterset_class = ProductFilter
    permission_classes = [permissions.IsAuthenticatedOrReadOnly, IsStoreManagerOrReadOnly]
    search_fields = ("name", "description")
    ordering_fields = ("price", "created_at", "stock")

    def get_queryset(self):
        qs = Product.objects.select_related("store")
        if getattr(self, "action", None) in {"list", "retrieve"}:
            user = self.request.user
            if user.is_authenticated and user.is_platform_admin:
                return qs
            visible = Q(status=Product.Status.ACTIVE, store__status=Store.Status.ACTIVE)
            if user.is_authenticated:
                visible |= Q(store__owner=user)
            return qs.filter(visible)
        return qs

    def destroy(self, request, *args, **kwargs):
        product = self.get_object()
        try:
            delete_product(product_id=product.pk, actor_id=request.user.id)
        except CoreError as exc:
            return error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)
