"""
Core app services — **Service Layer**.

Contains cross-app aggregation logic and device-token registration.
Views delegate all business logic to the service classes defined here.

Cross-app import rule
---------------------
The core app may query models from other apps, but never at module
level.  Always resolve them inside the method that needs them::

    Report = apps.get_model("reports", "Report")

Choice classes (``ReportStatus``, ``Priority``) are imported lazily too.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.apps import apps
from django.db.models import Count, DecimalField, Q, QuerySet, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from core.constants import (
    POINTS_PER_IN_PROGRESS,
    POINTS_PER_PENDING,
    POINTS_PER_RESOLVED,
    RECENT_REPORTS_WINDOW_DAYS,
)
from core.domain.access import STAFF_ROLES, require_role
from core.domain.exceptions import NotFound
from core.models import DevicePlatform, DeviceToken

if TYPE_CHECKING:
    from accounts.models import User

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════
#  Dashboard Aggregation Service
# ════════════════════════════════════════════════════════════════════

class DashboardAggregationService:
    """
    Produces the statistics dict consumed by ``DashboardStatsSerializer``.

    Admins and curators only.  Every figure covers all reports.
    """

    #: Number of users returned in ``top_contributors``.
    TOP_CONTRIBUTORS_LIMIT: int = 5

    def __init__(self, user: User) -> None:
        require_role(
            user,
            *STAFF_ROLES,
            message="Only administrators or curators can view the dashboard.",
        )
        self.user = user

    # ── Public API ──────────────────────────────────────────────────

    def get_stats(self) -> dict[str, Any]:
        """Return the full dashboard statistics dictionary."""
        from reports.models import ReportStatus

        Report = apps.get_model("reports", "Report")
        since = timezone.now() - timedelta(days=RECENT_REPORTS_WINDOW_DAYS)

        aggregates = Report.objects.aggregate(
            total_reports=Count("id"),
            recent_reports=Count("id", filter=Q(created_at__gte=since)),
            resolved_reports=Count("id", filter=Q(status=ReportStatus.RESOLVED)),
        )
        total = aggregates["total_reports"]
        resolved = aggregates["resolved_reports"]

        return {
            "total_reports": total,
            "reports_last_30_days": aggregates["recent_reports"],
            "resolution_rate": round(resolved * 100 / total, 2) if total else 0.0,
            "average_resolution_days": self._get_average_resolution_days(),
            "reports_by_status": self._get_reports_by_status(),
            "reports_by_priority": self._get_reports_by_priority(),
            "total_estimated_cost": self._get_total_estimated_cost(),
            "total_users": apps.get_model("accounts", "User").objects.count(),
            "top_contributors": self._get_top_contributors(),
        }

    # ── Private helpers ─────────────────────────────────────────────

    def _get_reports_by_status(self) -> list[dict[str, Any]]:
        """One row per status, zero counts included, in rank order."""
        from reports.models import STATUS_RANK, ReportStatus

        Report = apps.get_model("reports", "Report")
        counts = dict(
            Report.objects
            .values_list("status")
            .annotate(count=Count("id"))
            .order_by()
        )
        return [
            {
                "status": value,
                "label": label,
                "rank": STATUS_RANK[value],
                "count": counts.get(value, 0),
            }
            for value, label in ReportStatus.choices
        ]

    def _get_reports_by_priority(self) -> list[dict[str, Any]]:
        from reports.models import Priority

        ReportDetail = apps.get_model("reports", "ReportDetail")
        counts = dict(
            ReportDetail.objects
            .values_list("priority")
            .annotate(count=Count("id"))
            .order_by()
        )
        return [
            {"priority": value, "label": label, "count": counts.get(value, 0)}
            for value, label in Priority.choices
        ]

    def _get_average_resolution_days(self) -> float | None:
        """
        Mean of ``updated_at - created_at`` over resolved reports, in
        days.  ``updated_at`` is the resolution time since resolved is
        terminal.
        """
        from reports.models import ReportStatus

        Report = apps.get_model("reports", "Report")
        spans = [
            updated - created
            for created, updated in Report.objects
            .filter(status=ReportStatus.RESOLVED)
            .values_list("created_at", "updated_at")
        ]
        if not spans:
            return None
        total_seconds = sum(span.total_seconds() for span in spans)
        return round(total_seconds / len(spans) / 86400, 2)

    def _get_total_estimated_cost(self) -> Decimal:
        ReportDetail = apps.get_model("reports", "ReportDetail")
        return ReportDetail.objects.aggregate(
            total=Coalesce(
                Sum("estimated_cost"),
                Value(Decimal("0.00")),
                output_field=DecimalField(max_digits=14, decimal_places=2),
            ),
        )["total"]

    def _get_top_contributors(self) -> list[dict[str, Any]]:
        User = apps.get_model("accounts", "User")
        return list(
            User.objects
            .filter(points__gt=0)
            .order_by("-points", "username")
            .values("id", "username", "points")[: self.TOP_CONTRIBUTORS_LIMIT]
        )


# ═══════════════════════════════════════════════════════════════════
#  System Constants Service
# ═══════════════════════════════════════════════════════════════════

class SystemConstantsService:
    """
    Gathers the system-wide choice enumerations into a single dict for
    the frontend.  Stateless; does not depend on the requesting user.
    """

    @staticmethod
    def get_constants() -> dict[str, Any]:
        """Return all system constants as a dict."""
        from accounts.models import UserRole
        from reports.models import STATUS_RANK, Priority, ReportStatus

        to_list = SystemConstantsService._choices_to_list

        return {
            "report_statuses": [
                {**item, "rank": STATUS_RANK[item["value"]]}
                for item in to_list(ReportStatus)
            ],
            "priorities": to_list(Priority),
            "user_roles": to_list(UserRole),
            "device_platforms": to_list(DevicePlatform),
            "points_per_status": {
                ReportStatus.PENDING.value: POINTS_PER_PENDING,
                ReportStatus.IN_PROGRESS.value: POINTS_PER_IN_PROGRESS,
                ReportStatus.RESOLVED.value: POINTS_PER_RESOLVED,
            },
        }

    @staticmethod
    def _choices_to_list(
        choices_class: type,
    ) -> list[dict[str, str]]:
        """
        Convert a Django ``TextChoices`` class to a list of
        ``{"value": ..., "label": ...}`` dicts.
        """
        return [
            {"value": str(value), "label": str(label)}
            for value, label in choices_class.choices
        ]


# ═══════════════════════════════════════════════════════════════════
#  Device Token Service
# ═══════════════════════════════════════════════════════════════════

class DeviceTokenService:
    """
    Registration and removal of a user's push-notification tokens.

    A token is unique per user.  Re-registering an existing token
    reactivates it and refreshes ``last_used_at``.
    """

    def __init__(self, user: Any) -> None:
        self.user = user

    def list_tokens(self) -> QuerySet[DeviceToken]:
        return DeviceToken.objects.filter(user=self.user).order_by("-updated_at")

    def register(self, token: str, platform: str) -> tuple[DeviceToken, bool]:
        """Create or reactivate ``token``.  Returns ``(device, created)``."""
        device, created = DeviceToken.objects.update_or_create(
            user=self.user,
            token=token,
            defaults={
                "platform": platform,
                "is_active": True,
                "last_used_at": timezone.now(),
            },
        )
        logger.info(
            "Device token %s for user=%s (%s)",
            "registered" if created else "reactivated",
            self.user.pk,
            platform,
        )
        return device, created

    def unregister(self, token: str) -> DeviceToken:
        """
        Deactivate ``token`` so it stops receiving pushes.

        Raises:
            NotFound: The token is not registered for this user.
        """
        try:
            device = DeviceToken.objects.get(user=self.user, token=token)
        except DeviceToken.DoesNotExist:
            raise NotFound("Device token not found.")
        device.is_active = False
        device.save(update_fields=["is_active", "updated_at"])
        logger.info("Device token %s deactivated for user=%s", device.pk, self.user.pk)
        return device

    def delete(self, token_id: int) -> None:
        """
        Raises:
            NotFound: No token with that id belongs to this user.
        """
        deleted, _ = DeviceToken.objects.filter(user=self.user, pk=token_id).delete()
        if not deleted:
            raise NotFound(f"Device token with id {token_id} not found.")
