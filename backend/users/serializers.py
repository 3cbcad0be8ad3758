from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

User = get_user_model()


class ProfileSerializer(serializers.ModelSerializer):
    """Profile details synced from the identity provider."""

    avatar_url = serializers.ReadOnlyField()

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "external_id",
            "role",
            "image_url",
            "avatar_url",
            "date_joined",
        ]
        read_only_fields = (
            "id",
            "username",
            "external_id",
            "role",
            "avatar_url",
            "date_joined",
        )


class RoleChangeSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.Role.choices)
