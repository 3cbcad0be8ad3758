from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .permissions import IsPlatformAdmin
from .serializers import ProfileSerializer, RoleChangeSerializer

User = get_user_model()
logger = logging.getLogger(__name__)


class MeView(generics.RetrieveUpdateAPIView):
    """Authenticated profile view for the current user."""

    serializer_class = ProfileSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        user = self.request.user
        self.check_object_permissions(self.request, user)
        return user


class UserRoleView(APIView):
    """Promote or demote a user (platform admins only)."""

    permission_classes = [permissions.IsAuthenticated, IsPlatformAdmin]

    def post(self, request, pk: int):
        target = get_object_or_404(User, pk=pk)
        serializer = RoleChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_role = serializer.validated_data["role"]

        if target.pk == request.user.pk and new_role != User.Role.ADMIN:
            return Response(
                {"detail": "Admins cannot demote themselves."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        if target.role != new_role:
            target.role = new_role
            target.save(update_fields=["role"])
            logger.info(
                "users: role changed",
                extra={"user_id": target.pk, "role": new_role, "changed_by": request.user.pk},
            )
        return Response(ProfileSerializer(target).data, status=status.HTTP_200_OK)
