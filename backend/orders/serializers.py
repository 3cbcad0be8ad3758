from rest_framework import serializers

from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    product_name = serializers.ReadOnlyField(source="product.name")

    class Meta:
        model = OrderItem
        fields = ["id", "product", "product_name", "quantity", "price"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    customer = serializers.PrimaryKeyRelatedField(read_only=True)
    store_slug = serializers.ReadOnlyField(source="store.slug")
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "customer",
            "store",
            "store_slug",
            "items",
            "status",
            "total_amount",
            "service_fee",
            "tax",
            "final_amount",
            "payment_method",
            "payment_reference",
            "paid_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderCreateSerializer(serializers.Serializer):
    product = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1, default=1)
    store = serializers.SlugField(max_length=63)


class OrderPaymentSerializer(serializers.Serializer):
    method = serializers.CharField(max_length=32, required=False, default="card")


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.Status.choices)
    actor_role = serializers.ChoiceField(
        choices=[("customer", "customer"), ("store_owner", "store_owner"), ("admin", "admin")],
        required=False,
    )
