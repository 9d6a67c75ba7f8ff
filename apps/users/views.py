"""User API views."""

from __future__ import annotations

from django.contrib.auth import get_user_model  # type: ignore
from rest_framework import mixins, permissions, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .permissions import IsPlatformAdmin
from .serializers import UserSerializer

User = get_user_model()


class UserViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """User directory for admins plus the ``me`` profile endpoint."""

    serializer_class = UserSerializer
    queryset = User.objects.all()
    filterset_fields = ["role", "is_active"]

    def get_permissions(self):  # type: ignore
        if self.action == "me":
            return [permissions.IsAuthenticated()]
        return [IsPlatformAdmin()]

    @action(detail=False, methods=["get", "patch"])
    def me(self, request):
        """Read or update the profile of the current user."""
        if request.method == "PATCH":
            serializer = UserSerializer(request.user, data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            serializer.save()
            return Response(serializer.data)
        return Response(UserSerializer(request.user).data)
