"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.  **No business logic** resides here.

View Map
--------
- ``RegisterView``   — POST /auth/register/
- ``LoginView``      — POST /auth/login/
- ``MeView``         — GET / PATCH /me/
- ``MyPointsView``   — GET /me/points/
- ``UserViewSet``    — /users/  (list, role, destroy)
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    AssignRoleSerializer,
    CustomTokenObtainPairSerializer,
    LoginRequestSerializer,
    MeUpdateSerializer,
    PointsSummarySerializer,
    RegisterRequestSerializer,
    TokenResponseSerializer,
    UserDetailSerializer,
    UserListSerializer,
)
from .services import (
    CurrentUserService,
    UserManagementService,
    UserRegistrationService,
)


# ═══════════════════════════════════════════════════════════════════
#  Authentication Views
# ═══════════════════════════════════════════════════════════════════


class RegisterView(generics.CreateAPIView):
    """
    POST /api/accounts/auth/register/

    Public endpoint.  Creates a new user with role ``user``.

    Request body  → ``RegisterRequestSerializer``
    Response body → ``UserDetailSerializer`` (201 Created)
    """

    permission_classes = [AllowAny]
    serializer_class = RegisterRequestSerializer

    @extend_schema(
        summary="Register",
        responses={
            201: OpenApiResponse(response=UserDetailSerializer, description="User created."),
            409: OpenApiResponse(description="Username or email already taken."),
        },
        tags=["Accounts"],
    )
    def create(self, request: Request, *args, **kwargs) -> Response:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserRegistrationService.register_user(serializer.validated_data)
        response_serializer = UserDetailSerializer(user)
        return Response(response_serializer.data, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Authenticates via username or email plus password
    and returns a JWT pair with the user's profile.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Login",
        request=LoginRequestSerializer,
        responses={
            200: OpenApiResponse(response=TokenResponseSerializer, description="Token pair."),
            400: OpenApiResponse(description="Invalid credentials."),
        },
        tags=["Accounts"],
    )
    def post(self, request: Request) -> Response:
        serializer = CustomTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)

        payload = serializer.validated_data  # contains 'access' and 'refresh'
        payload["user"] = UserDetailSerializer(serializer.user).data

        return Response(payload, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  Current User ("Me") Views
# ═══════════════════════════════════════════════════════════════════


class MeView(APIView):
    """
    GET   /api/accounts/me/ → Retrieve current user profile.
    PATCH /api/accounts/me/ → Update own profile fields.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user profile",
        responses={200: UserDetailSerializer},
        tags=["Accounts"],
    )
    def get(self, request: Request) -> Response:
        user = CurrentUserService.get_profile(request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Update current user profile",
        request=MeUpdateSerializer,
        responses={200: UserDetailSerializer},
        tags=["Accounts"],
    )
    def patch(self, request: Request) -> Response:
        serializer = MeUpdateSerializer(
            instance=request.user,
            data=request.data,
            partial=True,
        )
        serializer.is_valid(raise_exception=True)
        user = CurrentUserService.update_profile(
            request.user, serializer.validated_data,
        )
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)


class MyPointsView(APIView):
    """
    GET /api/accounts/me/points/

    Recomputes the caller's points from their reports and returns them
    with the per-status counts.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user points",
        responses={200: PointsSummarySerializer},
        tags=["Accounts"],
    )
    def get(self, request: Request) -> Response:
        summary = CurrentUserService.get_points(request.user)
        return Response(PointsSummarySerializer(summary).data, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  User Management ViewSet
# ═══════════════════════════════════════════════════════════════════


class UserViewSet(viewsets.ViewSet):
    """
    /api/accounts/users/

    Administrative user management.  Admin-only; the check lives in
    ``UserManagementService``.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"[0-9]+"

    @extend_schema(
        summary="List users",
        parameters=[
            OpenApiParameter(name="role", type=str, location=OpenApiParameter.QUERY, description="Filter by role."),
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY, description="Partial match on username, email or names."),
        ],
        responses={200: UserListSerializer(many=True), 403: OpenApiResponse(description="Admins only.")},
        tags=["Accounts – Admin"],
    )
    def list(self, request: Request) -> Response:
        """
        GET /api/accounts/users/
        """
        qs = UserManagementService.list_users(
            request.user,
            role=request.query_params.get("role") or None,
            search=request.query_params.get("search") or None,
        )
        return Response(UserListSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Delete a user",
        responses={
            204: OpenApiResponse(description="User deleted."),
            403: OpenApiResponse(description="Admins only."),
            404: OpenApiResponse(description="User not found."),
        },
        tags=["Accounts – Admin"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        """
        DELETE /api/accounts/users/{id}/
        """
        UserManagementService.delete_user(user_id=int(pk), performed_by=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["patch"], url_path="role")
    @extend_schema(
        summary="Assign a role",
        request=AssignRoleSerializer,
        responses={
            200: OpenApiResponse(response=UserDetailSerializer, description="Role updated."),
            403: OpenApiResponse(description="Admins only."),
            404: OpenApiResponse(description="User not found."),
        },
        tags=["Accounts – Admin"],
    )
    def assign_role(self, request: Request, pk: str = None) -> Response:
        """
        PATCH /api/accounts/users/{id}/role/
        """
        serializer = AssignRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserManagementService.assign_role(
            user_id=int(pk),
            role=serializer.validated_data["role"],
            performed_by=request.user,
        )
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)
