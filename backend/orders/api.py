"""API viewsets for product orders."""

from __future__ import annotations

import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.errors import CoreError, error_response

from . import services
from .models import Order
from .serializers import (
    OrderCreateSerializer,
    OrderPaymentSerializer,
    OrderSerializer,
    OrderStatusSerializer,
)

logger = logging.getLogger(__name__)


class IsOrderParticipant(permissions.BasePermission):
    """Customers see their orders; store owners see orders placed with them."""

    def has_object_permission(self, request, view, obj: Order) -> bool:
        user = request.user
        if getattr(user, "is_platform_admin", False):
            return True
        return user.id in (obj.customer_id, obj.store.owner_id)


class OrderViewSet(viewsets.ModelViewSet):
    serializer_class = OrderSerializer
    permission_classes = (permissions.IsAuthenticated, IsOrderParticipant)
    http_method_names = ["get", "post", "delete", "head", "options"]
    filterset_fields = ("status", "store")
    ordering_fields = ("created_at", "total_amount")

    def get_queryset(self):
        user = self.request.user
        if not user.is_authenticated:
            return Order.objects.none()
        qs = Order.objects.select_related("store", "customer").prefetch_related("items__product")
        if user.is_platform_admin:
            return qs.order_by("-created_at")
        return qs.filter(Q(customer=user) | Q(store__owner=user)).order_by("-created_at")

    def get_object(self):
        obj = get_object_or_404(
            Order.objects.select_related("store", "customer").prefetch_related("items__product"),
            pk=self.kwargs["pk"],
        )
        self.check_object_permissions(self.request, obj)
        return obj

    def create(self, request, *args, **kwargs):
        """Place an order for one product of a store."""
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            order = services.create_order(
                product_id=data["product"],
                quantity=data["quantity"],
                store_slug=data["store"],
                customer_id=request.user.id,
            )
        except CoreError as exc:
            logger.info(
                "orders: create rejected",
                extra={
                    "user_id": request.user.id,
                    "product_id": data["product"],
                    "error": exc.kind,
                },
            )
            return error_response(exc)
        order = self._reload(order.pk)
        return Response(self.get_serializer(order).data, status=status.HTTP_201_CREATED)

    def _reload(self, pk: int) -> Order:
        return (
            Order.objects.select_related("store", "customer")
            .prefetch_related("items__product")
            .get(pk=pk)
        )

    def destroy(self, request, *args, **kwargs):
        order = self.get_object()
        try:
            services.delete_order(order_id=order.pk, actor_id=request.user.id)
        except CoreError as exc:
            return error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="pay")
    def pay(self, request, *args, **kwargs):
        order = self.get_object()
        serializer = OrderPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = services.pay_order(
                order_id=order.pk,
                method=serializer.validated_data["method"],
                payer_id=request.user.id,
            )
        except CoreError as exc:
            return error_response(exc)
        return Response(self.get_serializer(self._reload(order.pk)).data)

    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, *args, **kwargs):
        """Cancel a pending order or refund a completed one."""
        order = self.get_object()
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = services.set_order_status(
                order_id=order.pk,
                actor_id=request.user.id,
                new_status=serializer.validated_data["status"],
                actor_role=serializer.validated_data.get("actor_role"),
            )
        except CoreError as exc:
            logger.info(
                "orders: status change rejected",
                extra={"order_id": order.pk, "user_id": request.user.id, "error": exc.kind},
            )
            return error_response(exc)
        return Response(self.get_serializer(self._reload(order.pk)).data)
