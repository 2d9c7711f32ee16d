"""
Core app serializers.

Response serializers for the aggregated endpoints (dashboard, system
constants) plus the request / response serializers for device-token
registration.

The dashboard and constants serializers work on plain dicts produced by
the service layer and never import models from other apps.
"""

from __future__ import annotations

from rest_framework import serializers

from .models import DevicePlatform, DeviceToken


# ════════════════════════════════════════════════════════════════════
#  Dashboard Statistics
# ════════════════════════════════════════════════════════════════════

class ReportsByStatusSerializer(serializers.Serializer):
    """
    Example::

        {"status": "pending", "label": "pendente", "rank": 1, "count": 4}
    """

    status = serializers.CharField()
    label = serializers.CharField()
    rank = serializers.IntegerField()
    count = serializers.IntegerField()


class ReportsByPrioritySerializer(serializers.Serializer):
    priority = serializers.CharField()
    label = serializers.CharField()
    count = serializers.IntegerField()


class TopContributorSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    points = serializers.IntegerField()


class DashboardStatsSerializer(serializers.Serializer):
    """
    Top-level response serializer for ``GET /api/core/dashboard/``.
    """

    total_reports = serializers.IntegerField(help_text="All reports.")
    reports_last_30_days = serializers.IntegerField(
        help_text="Reports created in the last 30 days.",
    )
    resolution_rate = serializers.FloatField(
        help_text="Share of reports at 'resolved', as a percentage.",
    )
    average_resolution_days = serializers.FloatField(
        allow_null=True,
        help_text="Mean days from creation to resolution; null when nothing is resolved.",
    )
    reports_by_status = ReportsByStatusSerializer(many=True)
    reports_by_priority = ReportsByPrioritySerializer(many=True)
    total_estimated_cost = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_users = serializers.IntegerField()
    top_contributors = TopContributorSerializer(many=True)


# ════════════════════════════════════════════════════════════════════
#  System Constants / Enums
# ════════════════════════════════════════════════════════════════════

class ChoiceItemSerializer(serializers.Serializer):
    """
    A single key-label pair representing one choice/enum option.

    Example::

        {"value": "pending", "label": "pendente"}
    """

    value = serializers.CharField(
        help_text="Machine-readable value to send in API requests.",
    )
    label = serializers.CharField(
        help_text="Human-readable display label for the UI.",
    )


class RankedChoiceItemSerializer(ChoiceItemSerializer):
    rank = serializers.IntegerField(help_text="Position in the status progression.")


class SystemConstantsSerializer(serializers.Serializer):
    """
    Top-level response serializer for ``GET /api/core/constants/``.
    """

    report_statuses = RankedChoiceItemSerializer(many=True)
    priorities = ChoiceItemSerializer(many=True)
    user_roles = ChoiceItemSerializer(many=True)
    device_platforms = ChoiceItemSerializer(many=True)
    points_per_status = serializers.DictField(child=serializers.IntegerField())


# ════════════════════════════════════════════════════════════════════
#  Device Tokens
# ════════════════════════════════════════════════════════════════════

class DeviceTokenSerializer(serializers.ModelSerializer):
    class Meta:
        model = DeviceToken
        fields = [
            "id",
            "token",
            "platform",
            "is_active",
            "last_used_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class DeviceTokenRegisterSerializer(serializers.Serializer):
    """Request body for ``POST /api/core/device-tokens/``."""

    token = serializers.CharField(max_length=255)
    platform = serializers.ChoiceField(choices=DevicePlatform.choices)


class DeviceTokenUnregisterSerializer(serializers.Serializer):
    """Request body for ``POST /api/core/device-tokens/unregister/``."""

    token = serializers.CharField(max_length=255)
