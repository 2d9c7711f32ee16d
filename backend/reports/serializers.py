"""
Reports app serializers.

Request and Response serializers for the Reports API.  Serializers own
field definitions and field-level validation only; status rules, points
and notifications live in ``services.py``.

Structure
---------
1. Category serializers
2. Report read serializers
3. Report write serializers
4. Status transition serializers
5. Report detail serializers
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from .models import Category, Priority, Report, ReportDetail, ReportStatus


# ═══════════════════════════════════════════════════════════════════
#  1. Category Serializers
# ═══════════════════════════════════════════════════════════════════


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ["id", "name"]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════════
#  2. Report Read Serializers
# ═══════════════════════════════════════════════════════════════════


class ReportSerializer(serializers.ModelSerializer):
    """
    Full representation returned by retrieve / create / update and
    embedded in the status transition response.
    """

    status_display = serializers.CharField(source="get_status_display", read_only=True)
    status_rank = serializers.IntegerField(read_only=True)
    owner_username = serializers.CharField(source="owner.username", read_only=True)
    categories = CategorySerializer(many=True, read_only=True)
    has_detail = serializers.SerializerMethodField()

    class Meta:
        model = Report
        fields = [
            "id",
            "location",
            "photo",
            "comment",
            "status",
            "status_display",
            "status_rank",
            "owner",
            "owner_username",
            "categories",
            "has_detail",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_has_detail(self, obj: Report) -> bool:
        return hasattr(obj, "detail")


# ═══════════════════════════════════════════════════════════════════
#  3. Report Write Serializers
# ═══════════════════════════════════════════════════════════════════


class ReportCreateSerializer(serializers.Serializer):
    """
    Request body for ``POST /api/reports/``.

    ``status`` and ``owner`` are not accepted: every report starts at
    ``pending`` and belongs to the caller.
    """

    location = serializers.CharField(min_length=5, max_length=255, help_text="Where the issue is.")
    photo = serializers.ImageField(required=False, allow_null=True, help_text="Optional photo of the issue.")
    comment = serializers.CharField(required=False, allow_blank=True, default="", help_text="Free-text description.")
    categories = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(),
        many=True,
        allow_empty=False,
        help_text="One or more category IDs.",
    )


class ReportUpdateSerializer(serializers.Serializer):
    """
    Request body for ``PATCH /api/reports/{id}/``.  All fields optional;
    ``status`` is not writable here.
    """

    location = serializers.CharField(min_length=5, max_length=255, required=False)
    photo = serializers.ImageField(required=False, allow_null=True)
    comment = serializers.CharField(required=False, allow_blank=True)
    categories = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(),
        many=True,
        required=False,
        allow_empty=False,
    )

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if "status" in self.initial_data:
            raise serializers.ValidationError(
                {"status": "Use PATCH /api/reports/{id}/status/ to change the status."}
            )
        return attrs


# ═══════════════════════════════════════════════════════════════════
#  4. Status Transition Serializers
# ═══════════════════════════════════════════════════════════════════


class StatusTransitionSerializer(serializers.Serializer):
    """
    Request body for ``PATCH /api/reports/{id}/status/``.

    ``status`` is a status value (``"in_progress"``) or its rank
    (``2``).  Resolution and ordering checks happen in
    ``StatusTransitionEngine``.
    """

    status = serializers.CharField(
        max_length=20,
        help_text=(
            "Target status: one of "
            + ", ".join(ReportStatus.values)
            + " or its rank 1-3."
        ),
    )


class SideEffectFailureSerializer(serializers.Serializer):
    step = serializers.CharField(read_only=True)
    error = serializers.SerializerMethodField()

    def get_error(self, obj) -> str:
        return str(obj.error)


class StatusTransitionResultSerializer(serializers.Serializer):
    """Response body for a successful status transition."""

    report = ReportSerializer(read_only=True)
    previous_status = serializers.CharField(read_only=True)
    new_status = serializers.CharField(read_only=True)
    side_effect_failures = SideEffectFailureSerializer(many=True, read_only=True)


# ═══════════════════════════════════════════════════════════════════
#  5. Report Detail Serializers
# ═══════════════════════════════════════════════════════════════════


class ReportDetailSerializer(serializers.ModelSerializer):
    priority_display = serializers.CharField(source="get_priority_display", read_only=True)

    class Meta:
        model = ReportDetail
        fields = [
            "id",
            "report",
            "technical_description",
            "priority",
            "priority_display",
            "resolution_notes",
            "estimated_cost",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ReportDetailWriteSerializer(serializers.Serializer):
    """
    Request body for ``POST`` / ``PATCH /api/reports/{id}/details/``.
    The view passes ``partial=True`` on PATCH.
    """

    technical_description = serializers.CharField()
    priority = serializers.ChoiceField(choices=Priority.choices)
    resolution_notes = serializers.CharField(required=False, allow_blank=True)
    estimated_cost = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True,
    )
