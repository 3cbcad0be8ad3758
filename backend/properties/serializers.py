from rest_framework import serializers

from .models import Property


class PropertySerializer(serializers.ModelSerializer):
    """Serializer for Property that enforces owner-only writes."""

    owner = serializers.PrimaryKeyRelatedField(read_only=True)
    owner_username = serializers.ReadOnlyField(source="owner.username")
    amenities = serializers.ListField(child=serializers.CharField(), required=False)
    images = serializers.ListField(child=serializers.URLField(), required=False)

    class Meta:
        model = Property
        fields = [
            "id",
            "owner",
            "owner_username",
            "name",
            "description",
            "location",
            "price",
            "bedrooms",
            "bathrooms",
            "max_guests",
            "status",
            "amenities",
            "images",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["owner", "created_at", "updated_at"]

    def create(self, validated_data):
        request = self.context.get("request")
        validated_data["owner"] = request.user
        return super().create(validated_data)

    def update(self, instance, validated_data):
        validated_data.pop("owner", None)
        return super().update(instance, validated_data)

    def validate_price(self, value):
        if value is None or value <= 0:
            raise serializers.ValidationError("Price must be a positive number.")
        return value

    def _validate_positive(self, value, label: str):
        if value is None or value <= 0:
            raise serializers.ValidationError(f"{label} must be a positive number.")
        return value

    def validate_bedrooms(self, value):
        return self._validate_positive(value, "Bedrooms")

    def validate_bathrooms(self, value):
        return self._validate_positive(value, "Bathrooms")

    def validate_max_guests(self, value):
        return self._validate_positive(value, "Max guests")
