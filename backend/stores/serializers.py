from django.db import transaction
from rest_framework import serializers

from core.errors import CoreError

from .inventory import adjust_stock
from .models import Product, Store


def _save_changed(instance, validated_data):
    """Write only the submitted columns so counters moved by F() updates survive."""
    for attr, value in validated_data.items():
        setattr(instance, attr, value)
    instance.save(update_fields=[*validated_data, "updated_at"])
    return instance


class StoreSerializer(serializers.ModelSerializer):
    owner = serializers.PrimaryKeyRelatedField(read_only=True)
    owner_username = serializers.ReadOnlyField(source="owner.username")

    class Meta:
        model = Store
        fields = [
            "id",
            "owner",
            "owner_username",
            "name",
            "slug",
            "description",
            "currency",
            "status",
            "revenue",
            "orders_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["owner", "revenue", "orders_count", "created_at", "updated_at"]

    def validate_currency(self, value):
        return value.lower()

    def create(self, validated_data):
        request = self.context.get("request")
        validated_data["owner"] = request.user
        return super().create(validated_data)

    def update(self, instance, validated_data):
        validated_data.pop("owner", None)
        return _save_changed(instance, validated_data)


class ProductSerializer(serializers.ModelSerializer):
    """Products are created under a store the requester manages."""

    store = serializers.SlugRelatedField(slug_field="slug", queryset=Store.objects.all())
    images = serializers.ListField(child=serializers.URLField(), required=False)

    class Meta:
        model = Product
        fields = [
            "id",
            "store",
            "name",
            "slug",
            "description",
            "price",
            "stock",
            "status",
            "images",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["slug", "created_at", "updated_at"]

    def validate_price(self, value):
        if value is None or value <= 0:
            raise serializers.ValidationError("Price must be a positive number.")
        return value

    def validate_stock(self, value):
        if value is None or value < 0:
            raise serializers.ValidationError("Stock cannot be negative.")
        return value

    def validate_store(self, store):
        request = self.context.get("request")
        user = getattr(request, "user", None)
        if user is None or (store.owner_id != user.pk and not user.is_platform_admin):
            raise serializers.ValidationError("You can only add products to your own store.")
        if self.instance is not None and self.instance.store_id != store.pk:
            raise serializers.ValidationError("Products cannot move between stores.")
        return store

    def update(self, instance, validated_data):
        """Apply field edits; a new stock figure is applied as a difference from the loaded one."""
        validated_data.pop("store", None)
        new_stock = validated_data.pop("stock", None)
        with transaction.atomic():
            _save_changed(instance, validated_data)
            if new_stock is not None:
                try:
                    adjusted = adjust_stock(instance.pk, new_stock - instance.stock)
                except CoreError as exc:
                    raise serializers.ValidationError({"stock": [exc.message]}) from exc
                instance.stock = adjusted.stock
        return instance
