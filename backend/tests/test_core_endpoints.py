"""
Integration tests for core endpoints.

Scope in this file:
- GET /api/core/dashboard/
- GET /api/core/constants/
"""

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import User
from reports.models import Category, Report, ReportDetail, ReportStatus


class TestCoreEndpoints(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.password = "CoreEndpointsP@ss123"

        def make(username, role="user", points=0):
            return User.objects.create_user(
                username=username,
                password=cls.password,
                email=f"{username}@example.com",
                first_name="Core",
                last_name=username.title(),
                role=role,
                points=points,
            )

        cls.admin = make("dash_admin", role="admin")
        cls.curator = make("dash_curator", role="curator")
        cls.alice = make("alice", points=21)
        cls.bob = make("bob", points=5)
        cls.carol = make("carol")

        cls.category = Category.objects.create(name="Lixo na via")

        def report(owner, status_value, location):
            obj = Report.objects.create(owner=owner, location=location, status=status_value)
            obj.categories.add(cls.category)
            return obj

        cls.r_pending = report(cls.alice, ReportStatus.PENDING, "Rua 1")
        cls.r_progress = report(cls.bob, ReportStatus.IN_PROGRESS, "Rua 2")
        cls.r_resolved_a = report(cls.alice, ReportStatus.RESOLVED, "Rua 3")
        cls.r_resolved_b = report(cls.alice, ReportStatus.RESOLVED, "Rua 4")

        # An old report outside the 30-day window, resolved two days
        # after it was filed.
        filed = timezone.now() - timedelta(days=40)
        Report.objects.filter(pk=cls.r_resolved_b.pk).update(
            created_at=filed, updated_at=filed + timedelta(days=2),
        )

        ReportDetail.objects.create(
            report=cls.r_progress,
            technical_description="Contentor partido",
            priority="high",
            estimated_cost=Decimal("120.00"),
        )
        ReportDetail.objects.create(
            report=cls.r_resolved_a,
            technical_description="Recolha feita",
            priority="low",
            estimated_cost=Decimal("30.50"),
        )

    def setUp(self):
        self.client = APIClient()

    def _login(self, user):
        self.client.force_authenticate(user=user)

    # ── Dashboard ────────────────────────────────────────────────────

    def test_dashboard_requires_authentication(self):
        resp = self.client.get(reverse("core:dashboard-stats"))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_dashboard_forbidden_for_citizens(self):
        self._login(self.carol)
        resp = self.client.get(reverse("core:dashboard-stats"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_dashboard_totals_for_curator(self):
        self._login(self.curator)
        resp = self.client.get(reverse("core:dashboard-stats"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        data = resp.json()
        self.assertEqual(data["total_reports"], 4)
        self.assertEqual(data["reports_last_30_days"], 3)
        self.assertEqual(data["resolution_rate"], 50.0)
        self.assertEqual(data["total_users"], 5)
        self.assertEqual(Decimal(data["total_estimated_cost"]), Decimal("150.50"))

    def test_dashboard_breakdowns(self):
        self._login(self.admin)
        data = self.client.get(reverse("core:dashboard-stats")).json()

        by_status = {row["status"]: row for row in data["reports_by_status"]}
        self.assertEqual(
            [row["status"] for row in data["reports_by_status"]],
            ["pending", "in_progress", "resolved"],
        )
        self.assertEqual(by_status["pending"]["count"], 1)
        self.assertEqual(by_status["in_progress"]["count"], 1)
        self.assertEqual(by_status["resolved"]["count"], 2)
        self.assertEqual(by_status["resolved"]["rank"], 3)
        self.assertEqual(by_status["in_progress"]["label"], "em resolução")

        by_priority = {row["priority"]: row["count"] for row in data["reports_by_priority"]}
        self.assertEqual(by_priority, {"low": 1, "medium": 0, "high": 1})

    def test_dashboard_average_resolution(self):
        self._login(self.admin)
        data = self.client.get(reverse("core:dashboard-stats")).json()
        # One report resolved in ~0 days, one in 2 days.
        self.assertAlmostEqual(data["average_resolution_days"], 1.0, delta=0.01)

    def test_dashboard_top_contributors(self):
        self._login(self.admin)
        data = self.client.get(reverse("core:dashboard-stats")).json()
        self.assertEqual(
            [(row["username"], row["points"]) for row in data["top_contributors"]],
            [("alice", 21), ("bob", 5)],
        )

    def test_dashboard_empty_system(self):
        Report.objects.all().delete()
        self._login(self.admin)
        data = self.client.get(reverse("core:dashboard-stats")).json()
        self.assertEqual(data["total_reports"], 0)
        self.assertEqual(data["resolution_rate"], 0.0)
        self.assertIsNone(data["average_resolution_days"])

    # ── Constants ────────────────────────────────────────────────────

    def test_constants_public(self):
        resp = self.client.get(reverse("core:system-constants"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        data = resp.json()
        self.assertEqual(
            data["report_statuses"],
            [
                {"value": "pending", "label": "pendente", "rank": 1},
                {"value": "in_progress", "label": "em resolução", "rank": 2},
                {"value": "resolved", "label": "resolvido", "rank": 3},
            ],
        )
        self.assertEqual(
            data["points_per_status"],
            {"pending": 1, "in_progress": 5, "resolved": 10},
        )
        self.assertEqual(
            {item["value"] for item in data["user_roles"]},
            {"user", "admin", "curator"},
        )
        self.assertEqual(
            {item["value"] for item in data["device_platforms"]},
            {"android", "ios"},
        )
        self.assertEqual(
            [item["value"] for item in data["priorities"]],
            ["low", "medium", "high"],
        )
