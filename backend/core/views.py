"""
Core app views — **Thin Views**.

Each view delegates all business logic to the corresponding service in
``core.services``.  Views are responsible only for:

1. Validating input.
2. Calling the service with the authenticated user and parameters.
3. Serialising the result and returning an HTTP ``Response``.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    DashboardStatsSerializer,
    DeviceTokenRegisterSerializer,
    DeviceTokenSerializer,
    DeviceTokenUnregisterSerializer,
    SystemConstantsSerializer,
)
from .services import (
    DashboardAggregationService,
    DeviceTokenService,
    SystemConstantsService,
)


class DashboardStatsView(APIView):
    """
    **GET /api/core/dashboard/**

    Aggregated report statistics for admins and curators.

    **Error Responses**:
        - ``401 Unauthorized``: Missing or invalid credentials.
        - ``403 Forbidden``: Caller is not an admin or curator.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Dashboard statistics",
        description=(
            "Totals, per-status and per-priority breakdowns, resolution rate, "
            "average resolution time and top contributors. Admins and curators only."
        ),
        responses={
            200: OpenApiResponse(response=DashboardStatsSerializer, description="Dashboard stats."),
            403: OpenApiResponse(description="Admins and curators only."),
        },
        tags=["Dashboard"],
    )
    def get(self, request: Request) -> Response:
        service = DashboardAggregationService(user=request.user)
        serializer = DashboardStatsSerializer(service.get_stats())
        return Response(serializer.data, status=status.HTTP_200_OK)


class SystemConstantsView(APIView):
    """
    **GET /api/core/constants/**

    Return all system-wide choice enumerations so the frontend can build
    dropdowns and labels without hardcoding values.

    **Authentication**: Not required (``AllowAny``).
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="System constants",
        description=(
            "Report statuses with their ranks, priorities, user roles, "
            "device platforms and the points awarded per status."
        ),
        responses={200: OpenApiResponse(response=SystemConstantsSerializer, description="System constants.")},
        tags=["System"],
    )
    def get(self, request: Request) -> Response:
        data = SystemConstantsService.get_constants()
        serializer = SystemConstantsSerializer(data)
        return Response(serializer.data, status=status.HTTP_200_OK)


class DeviceTokenViewSet(viewsets.ViewSet):
    """
    **Device-token API** for the authenticated user.

    Endpoints
    ---------
    GET    /api/core/device-tokens/              → list own tokens
    POST   /api/core/device-tokens/              → register / reactivate
    DELETE /api/core/device-tokens/{id}/         → delete one
    POST   /api/core/device-tokens/unregister/   → deactivate by token value
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"[0-9]+"

    @extend_schema(
        summary="List device tokens",
        responses={200: DeviceTokenSerializer(many=True)},
        tags=["Device Tokens"],
    )
    def list(self, request: Request) -> Response:
        tokens = DeviceTokenService(user=request.user).list_tokens()
        return Response(DeviceTokenSerializer(tokens, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Register a device token",
        description="Creates the token, or reactivates it if already registered.",
        request=DeviceTokenRegisterSerializer,
        responses={
            200: OpenApiResponse(response=DeviceTokenSerializer, description="Token reactivated."),
            201: OpenApiResponse(response=DeviceTokenSerializer, description="Token registered."),
        },
        tags=["Device Tokens"],
    )
    def create(self, request: Request) -> Response:
        serializer = DeviceTokenRegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        device, created = DeviceTokenService(user=request.user).register(
            serializer.validated_data["token"],
            serializer.validated_data["platform"],
        )
        return Response(
            DeviceTokenSerializer(device).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @extend_schema(
        summary="Delete a device token",
        responses={
            204: OpenApiResponse(description="Deleted."),
            404: OpenApiResponse(description="Not found."),
        },
        tags=["Device Tokens"],
    )
    def destroy(self, request: Request, pk: int = None) -> Response:
        DeviceTokenService(user=request.user).delete(token_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["post"], url_path="unregister")
    @extend_schema(
        summary="Unregister a device token",
        description="Deactivate a token (e.g. on logout) so it stops receiving pushes.",
        request=DeviceTokenUnregisterSerializer,
        responses={
            200: OpenApiResponse(response=DeviceTokenSerializer, description="Token deactivated."),
            404: OpenApiResponse(description="Not found."),
        },
        tags=["Device Tokens"],
    )
    def unregister(self, request: Request) -> Response:
        serializer = DeviceTokenUnregisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        device = DeviceTokenService(user=request.user).unregister(
            serializer.validated_data["token"],
        )
        return Response(DeviceTokenSerializer(device).data, status=status.HTTP_200_OK)
