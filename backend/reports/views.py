"""
Reports app ViewSets.

Architecture: Views are intentionally thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to the appropriate service class.
    3. Serialize the result and return a DRF ``Response``.

Domain exceptions raised by services are turned into HTTP responses by
``core.domain.exception_handler``.

Views
-----
- ``ReportViewSet``    — report CRUD plus the ``status`` and ``details``
  @actions.
- ``CategoryListView`` — read-only category reference data.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    CategorySerializer,
    ReportCreateSerializer,
    ReportDetailSerializer,
    ReportDetailWriteSerializer,
    ReportSerializer,
    ReportUpdateSerializer,
    StatusTransitionResultSerializer,
    StatusTransitionSerializer,
)
from .services import (
    CategoryService,
    ReportCreationService,
    ReportDetailService,
    ReportManagementService,
    ReportQueryService,
    StatusTransitionEngine,
)


class ReportViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the reports app.

    Uses ``viewsets.ViewSet`` so every action is explicitly defined.
    The base permission is ``IsAuthenticated``; role and ownership checks
    live in the service layer.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"[0-9]+"
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    # ── Standard CRUD ────────────────────────────────────────────────

    @extend_schema(
        summary="Submit a report",
        description=(
            "Create a report owned by the caller at status 'pending'. "
            "At least one category is required. Admins and curators are "
            "notified after the report is saved."
        ),
        request=ReportCreateSerializer,
        responses={
            201: OpenApiResponse(response=ReportSerializer, description="Report created."),
            400: OpenApiResponse(description="Validation error."),
        },
        tags=["Reports"],
    )
    def create(self, request: Request) -> Response:
        """
        POST /api/reports/
        """
        serializer = ReportCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = ReportCreationService.create_report(
            serializer.validated_data, request.user,
        )
        out = ReportSerializer(report, context={"request": request})
        return Response(out.data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve a report",
        description="Owners see their own reports; admins and curators see all.",
        responses={
            200: OpenApiResponse(response=ReportSerializer, description="Report."),
            404: OpenApiResponse(description="Not found or not visible."),
        },
        tags=["Reports"],
    )
    def retrieve(self, request: Request, pk: int = None) -> Response:
        """
        GET /api/reports/{id}/
        """
        report = ReportQueryService.get_report_detail(request.user, pk)
        out = ReportSerializer(report, context={"request": request})
        return Response(out.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Update a report",
        description=(
            "Update location, comment, photo or categories. Allowed for the "
            "owner, admins and curators. The status is not writable here."
        ),
        request=ReportUpdateSerializer,
        responses={
            200: OpenApiResponse(response=ReportSerializer, description="Report updated."),
            403: OpenApiResponse(description="Permission denied."),
            404: OpenApiResponse(description="Not found."),
        },
        tags=["Reports"],
    )
    def partial_update(self, request: Request, pk: int = None) -> Response:
        """
        PATCH /api/reports/{id}/
        """
        serializer = ReportUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        report = ReportManagementService.update_report(
            pk, serializer.validated_data, request.user,
        )
        report = ReportQueryService.get_report_detail(request.user, report.pk)
        out = ReportSerializer(report, context={"request": request})
        return Response(out.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Delete a report",
        description="Admins and curators only. The owner's points are recomputed.",
        responses={
            204: OpenApiResponse(description="Report deleted."),
            403: OpenApiResponse(description="Permission denied."),
            404: OpenApiResponse(description="Not found."),
        },
        tags=["Reports"],
    )
    def destroy(self, request: Request, pk: int = None) -> Response:
        """
        DELETE /api/reports/{id}/
        """
        ReportManagementService.delete_report(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ── Workflow @actions ─────────────────────────────────────────────

    @action(detail=True, methods=["patch"], url_path="status")
    @extend_schema(
        summary="Advance a report's status",
        description=(
            "Move the report forward through pending -> in_progress -> resolved. "
            "Skipping ahead is allowed; re-submitting the current status or "
            "moving backwards is rejected. Admins and curators only. "
            "The owner's points are recomputed and the owner is notified."
        ),
        request=StatusTransitionSerializer,
        responses={
            200: OpenApiResponse(response=StatusTransitionResultSerializer, description="Transition applied."),
            400: OpenApiResponse(description="Unknown status."),
            403: OpenApiResponse(description="Permission denied."),
            404: OpenApiResponse(description="Report not found."),
            409: OpenApiResponse(description="Status can only move forward."),
        },
        tags=["Reports – Workflow"],
    )
    def change_status(self, request: Request, pk: int = None) -> Response:
        """
        PATCH /api/reports/{id}/status/

        Steps
        -----
        1. Validate with ``StatusTransitionSerializer``.
        2. Delegate to ``StatusTransitionEngine().apply(pk, status, user)``.
        3. Return HTTP 200 with ``StatusTransitionResultSerializer``.
        """
        serializer = StatusTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = StatusTransitionEngine().apply(
            pk, serializer.validated_data["status"], request.user,
        )
        out = StatusTransitionResultSerializer(result, context={"request": request})
        return Response(out.data, status=status.HTTP_200_OK)

    # ── Sub-resource @actions — Details ──────────────────────────────

    @action(detail=True, methods=["get", "post", "patch"], url_path="details")
    @extend_schema(
        summary="Read, create or update the technical detail",
        description=(
            "GET: owner, admins and curators. "
            "POST: create the detail (once per report). "
            "PATCH: update it. POST and PATCH are for admins and curators."
        ),
        request=ReportDetailWriteSerializer,
        responses={
            200: OpenApiResponse(response=ReportDetailSerializer, description="Detail."),
            201: OpenApiResponse(response=ReportDetailSerializer, description="Detail created."),
            403: OpenApiResponse(description="Permission denied."),
            404: OpenApiResponse(description="Report or detail not found."),
            409: OpenApiResponse(description="Detail already exists."),
        },
        tags=["Reports – Details"],
    )
    def details(self, request: Request, pk: int = None) -> Response:
        """
        GET   /api/reports/{id}/details/
        POST  /api/reports/{id}/details/
        PATCH /api/reports/{id}/details/
        """
        if request.method == "GET":
            detail = ReportDetailService.get_detail(pk, request.user)
            return Response(ReportDetailSerializer(detail).data, status=status.HTTP_200_OK)

        if request.method == "POST":
            serializer = ReportDetailWriteSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            detail = ReportDetailService.create_detail(
                pk, serializer.validated_data, request.user,
            )
            return Response(ReportDetailSerializer(detail).data, status=status.HTTP_201_CREATED)

        # PATCH
        serializer = ReportDetailWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        detail = ReportDetailService.update_detail(
            pk, serializer.validated_data, request.user,
        )
        return Response(ReportDetailSerializer(detail).data, status=status.HTTP_200_OK)


class CategoryListView(APIView):
    """
    GET /api/categories/

    Returns the seeded categories ordered by name.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List categories",
        responses={200: CategorySerializer(many=True)},
        tags=["Reports"],
    )
    def get(self, request: Request) -> Response:
        categories = CategoryService.list_categories()
        return Response(CategorySerializer(categories, many=True).data)
