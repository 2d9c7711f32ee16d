"""
Integration tests — current profile (Me) and points endpoints.

Endpoints under test:
    GET   /api/accounts/me/          (named URL: accounts:me)
    PATCH /api/accounts/me/          (named URL: accounts:me)
    GET   /api/accounts/me/points/   (named URL: accounts:me-points)

Engineering constraints:
  * django.test.TestCase + rest_framework.test.APIClient.
  * Tests hit real endpoints via views/urls.
  * No shared auth state between tests; each test acquires its own token.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from reports.models import Category, Report, ReportStatus

User = get_user_model()

# ── Test user constants ───────────────────────────────────────────────────────
_PASSWORD = "Str0ng!Pass77"
_USER = {
    "username":   "me_test_user",
    "email":      "me_test_user@example.com",
    "telephone":  "912000077",
    "first_name": "Me",
    "last_name":  "Tester",
}


class TestMeEndpoint(TestCase):
    """GET / PATCH /api/accounts/me/."""

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(password=_PASSWORD, **_USER)
        cls.other = User.objects.create_user(
            username="other_user",
            email="other@example.com",
            password=_PASSWORD,
        )

    def setUp(self):
        self.client = APIClient()
        self.me_url = reverse("accounts:me")
        self.login_url = reverse("accounts:login")

    # ── Helper ────────────────────────────────────────────────────────────────

    def _authenticate(self) -> None:
        resp = self.client.post(
            self.login_url,
            {"identifier": _USER["username"], "password": _PASSWORD},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")

    # ── GET ───────────────────────────────────────────────────────────────────

    def test_requires_authentication(self):
        resp = self.client.get(self.me_url)
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_returns_profile(self):
        self._authenticate()
        resp = self.client.get(self.me_url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["username"], _USER["username"])
        self.assertEqual(resp.data["email"], _USER["email"])
        self.assertEqual(resp.data["role"], "user")
        self.assertEqual(resp.data["points"], 0)

    # ── PATCH ─────────────────────────────────────────────────────────────────

    def test_patch_updates_profile_fields(self):
        self._authenticate()
        resp = self.client.patch(
            self.me_url,
            {"first_name": "Changed", "telephone": "+351 913 000 000"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.user.refresh_from_db()
        self.assertEqual(self.user.first_name, "Changed")
        self.assertEqual(self.user.telephone, "+351 913 000 000")

    def test_patch_cannot_change_role_or_points(self):
        self._authenticate()
        resp = self.client.patch(
            self.me_url,
            {"role": "admin", "points": 999},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, "user")
        self.assertEqual(self.user.points, 0)

    def test_patch_rejects_taken_email(self):
        self._authenticate()
        resp = self.client.patch(
            self.me_url, {"email": "OTHER@example.com"}, format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("email", resp.data)


class TestMyPointsEndpoint(TestCase):
    """GET /api/accounts/me/points/."""

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(password=_PASSWORD, **_USER)
        category = Category.objects.create(name="Lixo na via")
        statuses = (
            [ReportStatus.PENDING] * 2
            + [ReportStatus.IN_PROGRESS]
            + [ReportStatus.RESOLVED] * 3
        )
        for index, value in enumerate(statuses):
            report = Report.objects.create(
                owner=cls.user, location=f"Rua {index}", status=value,
            )
            report.categories.add(category)

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)
        self.url = reverse("accounts:me-points")

    def test_points_and_breakdown(self):
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["points"], 37)
        self.assertEqual(
            resp.data["reports_summary"],
            {"pending": 2, "in_progress": 1, "resolved": 3},
        )

    def test_points_are_persisted(self):
        self.client.get(self.url)
        self.user.refresh_from_db()
        self.assertEqual(self.user.points, 37)

    def test_user_without_reports_has_zero(self):
        newcomer = User.objects.create_user(
            username="newcomer", email="newcomer@example.com", password=_PASSWORD,
        )
        self.client.force_authenticate(user=newcomer)
        resp = self.client.get(self.url)
        self.assertEqual(resp.data["points"], 0)
        self.assertEqual(
            resp.data["reports_summary"],
            {"pending": 0, "in_progress": 0, "resolved": 0},
        )
