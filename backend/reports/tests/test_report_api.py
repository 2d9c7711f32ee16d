"""
Integration tests — Reports API.

Endpoints under test:
    POST   /api/reports/
    GET    /api/reports/{id}/
    PATCH  /api/reports/{id}/
    DELETE /api/reports/{id}/
    PATCH  /api/reports/{id}/status/
    GET / POST / PATCH /api/reports/{id}/details/
    GET    /api/categories/
"""

from __future__ import annotations

import io
from decimal import Decimal

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image
from rest_framework import status
from rest_framework.test import APIClient

from core.domain.exceptions import DomainError
from core.models import DeviceToken
from reports.models import Report, ReportDetail, ReportStatus
from reports.services import ReportManagementService

REPORTS_URL = "/api/reports/"
CATEGORIES_URL = "/api/categories/"


def _report_url(pk: int) -> str:
    return f"{REPORTS_URL}{pk}/"


def _status_url(pk: int) -> str:
    return f"{REPORTS_URL}{pk}/status/"


def _details_url(pk: int) -> str:
    return f"{REPORTS_URL}{pk}/details/"


def _png(name: str = "pothole.png") -> SimpleUploadedFile:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 30, 30)).save(buffer, format="PNG")
    return SimpleUploadedFile(name, buffer.getvalue(), content_type="image/png")


def _client_for(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def citizen(create_user):
    return create_user(username="citizen")


@pytest.fixture()
def curator(create_user):
    return create_user(username="curator", role="curator")


@pytest.fixture()
def report(citizen, categories):
    report = Report.objects.create(owner=citizen, location="Rua do Ouro 5")
    report.categories.add(categories["Iluminação pública"])
    return report


# ════════════════════════════════════════════════════════════════════
#  Creation
# ════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestCreateReport:

    def test_create_starts_pending(self, citizen, categories, django_capture_on_commit_callbacks):
        payload = {
            "location": "Rua do Ouro 5",
            "comment": "Candeeiro apagado",
            "categories": [categories["Iluminação pública"].pk],
            "status": "resolved",
        }
        with django_capture_on_commit_callbacks(execute=True):
            resp = _client_for(citizen).post(REPORTS_URL, payload, format="json")

        assert resp.status_code == status.HTTP_201_CREATED, resp.data
        assert resp.data["status"] == ReportStatus.PENDING
        assert resp.data["status_display"] == "pendente"
        assert resp.data["owner"] == citizen.pk
        assert [c["name"] for c in resp.data["categories"]] == ["Iluminação pública"]

    def test_create_awards_pending_point(self, citizen, categories, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            _client_for(citizen).post(
                REPORTS_URL,
                {"location": "Rua A", "categories": [categories["Lixo na via"].pk]},
                format="json",
            )
        citizen.refresh_from_db()
        assert citizen.points == 1

    def test_create_notifies_staff(
        self, citizen, create_user, categories, push_gateway,
        django_capture_on_commit_callbacks,
    ):
        DeviceToken.objects.create(
            user=create_user(role="admin"), token="tok-admin", platform="ios",
        )
        DeviceToken.objects.create(user=citizen, token="tok-citizen", platform="ios")

        with django_capture_on_commit_callbacks(execute=True):
            resp = _client_for(citizen).post(
                REPORTS_URL,
                {
                    "location": "Largo do Rato",
                    "categories": [
                        categories["Lixo na via"].pk,
                        categories["Danos na via"].pk,
                    ],
                },
                format="json",
            )

        assert resp.status_code == status.HTTP_201_CREATED
        push_gateway.assert_called_once()
        (message,) = push_gateway.call_args.kwargs["json"]
        assert message["to"] == "tok-admin"
        assert message["title"] == "Novo Relatório Registrado"
        assert message["body"].endswith("categoria(s): Danos na via, Lixo na via")
        assert message["data"]["type"] == "new_report"
        assert message["data"]["report_id"] == resp.data["id"]

    def test_gateway_failure_does_not_fail_creation(
        self, citizen, create_user, categories, push_gateway,
        django_capture_on_commit_callbacks,
    ):
        push_gateway.side_effect = ConnectionError("gateway unreachable")
        DeviceToken.objects.create(
            user=create_user(role="curator"), token="tok-cur", platform="android",
        )
        with django_capture_on_commit_callbacks(execute=True):
            resp = _client_for(citizen).post(
                REPORTS_URL,
                {"location": "Rua B", "categories": [categories["Lixo na via"].pk]},
                format="json",
            )
        assert resp.status_code == status.HTTP_201_CREATED
        assert Report.objects.filter(pk=resp.data["id"]).exists()

    def test_create_requires_category(self, citizen):
        resp = _client_for(citizen).post(
            REPORTS_URL, {"location": "Rua C", "categories": []}, format="json",
        )
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert "categories" in resp.data

    def test_create_rejects_short_location(self, citizen, categories):
        resp = _client_for(citizen).post(
            REPORTS_URL,
            {"location": "Rua", "categories": [categories["Lixo na via"].pk]},
            format="json",
        )
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert "location" in resp.data

    def test_create_rejects_unknown_category(self, citizen):
        resp = _client_for(citizen).post(
            REPORTS_URL, {"location": "Rua C", "categories": [424242]}, format="json",
        )
        assert resp.status_code == status.HTTP_400_BAD_REQUEST

    def test_create_with_photo(self, citizen, categories, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            resp = _client_for(citizen).post(
                REPORTS_URL,
                {
                    "location": "Rua D",
                    "categories": [categories["Danos na via"].pk],
                    "photo": _png(),
                },
                format="multipart",
            )
        assert resp.status_code == status.HTTP_201_CREATED, resp.data
        report = Report.objects.get(pk=resp.data["id"])
        assert report.photo.name.startswith("reports/")

    def test_unauthenticated(self, api_client, categories):
        resp = api_client.post(
            REPORTS_URL,
            {"location": "Rua E", "categories": [categories["Lixo na via"].pk]},
            format="json",
        )
        assert resp.status_code == status.HTTP_401_UNAUTHORIZED


# ════════════════════════════════════════════════════════════════════
#  Retrieve / update / delete
# ════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestReportAccess:

    def test_owner_retrieves(self, report, citizen):
        resp = _client_for(citizen).get(_report_url(report.pk))
        assert resp.status_code == status.HTTP_200_OK
        assert resp.data["location"] == "Rua do Ouro 5"
        assert resp.data["status_rank"] == 1
        assert resp.data["has_detail"] is False

    def test_other_citizen_gets_404(self, report, create_user):
        resp = _client_for(create_user()).get(_report_url(report.pk))
        assert resp.status_code == status.HTTP_404_NOT_FOUND

    def test_staff_retrieves_any(self, report, curator):
        resp = _client_for(curator).get(_report_url(report.pk))
        assert resp.status_code == status.HTTP_200_OK

    def test_owner_updates_metadata(self, report, citizen, categories):
        resp = _client_for(citizen).patch(
            _report_url(report.pk),
            {
                "location": "Rua do Ouro 7",
                "categories": [categories["Danos na via"].pk],
            },
            format="json",
        )
        assert resp.status_code == status.HTTP_200_OK, resp.data
        report.refresh_from_db()
        assert report.location == "Rua do Ouro 7"
        assert list(report.categories.values_list("name", flat=True)) == ["Danos na via"]

    def test_update_cannot_touch_status(self, report, citizen):
        resp = _client_for(citizen).patch(
            _report_url(report.pk), {"status": "resolved"}, format="json",
        )
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        report.refresh_from_db()
        assert report.status == ReportStatus.PENDING

    def test_other_citizen_cannot_update(self, report, create_user):
        resp = _client_for(create_user()).patch(
            _report_url(report.pk), {"comment": "hijack"}, format="json",
        )
        assert resp.status_code == status.HTTP_403_FORBIDDEN

    def test_citizen_cannot_delete(self, report, citizen):
        resp = _client_for(citizen).delete(_report_url(report.pk))
        assert resp.status_code == status.HTTP_403_FORBIDDEN
        assert Report.objects.filter(pk=report.pk).exists()

    def test_staff_deletes_and_points_follow(
        self, report, citizen, curator, django_capture_on_commit_callbacks,
    ):
        citizen.points = 1
        citizen.save(update_fields=["points"])

        with django_capture_on_commit_callbacks(execute=True):
            resp = _client_for(curator).delete(_report_url(report.pk))

        assert resp.status_code == status.HTTP_204_NO_CONTENT
        assert not Report.objects.filter(pk=report.pk).exists()
        citizen.refresh_from_db()
        assert citizen.points == 0

    def test_delete_missing(self, curator):
        resp = _client_for(curator).delete(_report_url(999999))
        assert resp.status_code == status.HTTP_404_NOT_FOUND

    def test_non_numeric_id_is_404(self, curator):
        assert _client_for(curator).get(f"{REPORTS_URL}abc/").status_code == status.HTTP_404_NOT_FOUND
        assert _client_for(curator).delete(f"{REPORTS_URL}abc/").status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestReportPhotoFiles:

    @pytest.fixture()
    def photo_report(self, report):
        report.photo = _png("old.png")
        report.save()
        return report

    def test_replaced_photo_removed_after_commit(
        self, photo_report, citizen, django_capture_on_commit_callbacks,
    ):
        storage = photo_report.photo.storage
        old_name = photo_report.photo.name
        assert storage.exists(old_name)

        with django_capture_on_commit_callbacks(execute=True):
            resp = _client_for(citizen).patch(
                _report_url(photo_report.pk), {"photo": _png("new.png")}, format="multipart",
            )

        assert resp.status_code == status.HTTP_200_OK, resp.data
        photo_report.refresh_from_db()
        assert photo_report.photo.name != old_name
        assert storage.exists(photo_report.photo.name)
        assert not storage.exists(old_name)

    def test_failed_update_keeps_old_photo(
        self, photo_report, citizen, django_capture_on_commit_callbacks,
    ):
        storage = photo_report.photo.storage
        old_name = photo_report.photo.name

        with django_capture_on_commit_callbacks(execute=True):
            with pytest.raises(DomainError):
                ReportManagementService.update_report(
                    photo_report.pk,
                    {"photo": _png("new.png"), "categories": []},
                    citizen,
                )

        assert storage.exists(old_name)
        photo_report.refresh_from_db()
        assert photo_report.photo.name == old_name

    def test_delete_removes_photo_after_commit(
        self, photo_report, curator, django_capture_on_commit_callbacks,
    ):
        storage = photo_report.photo.storage
        old_name = photo_report.photo.name

        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            resp = _client_for(curator).delete(_report_url(photo_report.pk))
        assert resp.status_code == status.HTTP_204_NO_CONTENT
        assert storage.exists(old_name)

        for callback in callbacks:
            callback()
        assert not storage.exists(old_name)


# ════════════════════════════════════════════════════════════════════
#  Status endpoint
# ════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestStatusEndpoint:

    def test_curator_advances(self, report, curator, citizen, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            resp = _client_for(curator).patch(
                _status_url(report.pk), {"status": "in_progress"}, format="json",
            )

        assert resp.status_code == status.HTTP_200_OK, resp.data
        assert resp.data["previous_status"] == "pending"
        assert resp.data["new_status"] == "in_progress"
        assert resp.data["report"]["status"] == "in_progress"
        citizen.refresh_from_db()
        assert citizen.points == 5

    def test_accepts_rank(self, report, curator, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            resp = _client_for(curator).patch(
                _status_url(report.pk), {"status": 3}, format="json",
            )
        assert resp.status_code == status.HTTP_200_OK, resp.data
        assert resp.data["new_status"] == "resolved"

    def test_backwards_is_conflict(self, report, curator):
        Report.objects.filter(pk=report.pk).update(status=ReportStatus.RESOLVED)

        resp = _client_for(curator).patch(
            _status_url(report.pk), {"status": "pending"}, format="json",
        )

        assert resp.status_code == status.HTTP_409_CONFLICT
        assert resp.data["current_status"] == "resolved"
        assert resp.data["attempted_status"] == "pending"

    def test_same_status_is_conflict(self, report, curator):
        resp = _client_for(curator).patch(
            _status_url(report.pk), {"status": "pending"}, format="json",
        )
        assert resp.status_code == status.HTTP_409_CONFLICT

    def test_unknown_status(self, report, curator):
        resp = _client_for(curator).patch(
            _status_url(report.pk), {"status": "archived"}, format="json",
        )
        assert resp.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.parametrize("requested", ["²", "¹", "٣٣"])
    def test_non_ascii_digits_are_unknown(self, report, curator, requested):
        resp = _client_for(curator).patch(
            _status_url(report.pk), {"status": requested}, format="json",
        )
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        report.refresh_from_db()
        assert report.status == ReportStatus.PENDING

    def test_non_numeric_report_id(self, curator):
        resp = _client_for(curator).patch(
            f"{REPORTS_URL}abc/status/", {"status": "resolved"}, format="json",
        )
        assert resp.status_code == status.HTTP_404_NOT_FOUND

    def test_missing_status_field(self, report, curator):
        resp = _client_for(curator).patch(_status_url(report.pk), {}, format="json")
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert "status" in resp.data

    def test_owner_forbidden(self, report, citizen):
        resp = _client_for(citizen).patch(
            _status_url(report.pk), {"status": "resolved"}, format="json",
        )
        assert resp.status_code == status.HTTP_403_FORBIDDEN

    def test_missing_report(self, curator):
        resp = _client_for(curator).patch(
            _status_url(999999), {"status": "resolved"}, format="json",
        )
        assert resp.status_code == status.HTTP_404_NOT_FOUND


# ════════════════════════════════════════════════════════════════════
#  Details sub-resource
# ════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestReportDetails:

    PAYLOAD = {
        "technical_description": "Lâmpada fundida no poste 12",
        "priority": "high",
        "estimated_cost": "45.50",
    }

    def test_curator_creates_detail(self, report, curator):
        resp = _client_for(curator).post(_details_url(report.pk), self.PAYLOAD, format="json")
        assert resp.status_code == status.HTTP_201_CREATED, resp.data
        assert resp.data["priority"] == "high"
        assert resp.data["priority_display"] == "alta"
        detail = ReportDetail.objects.get(report=report)
        assert detail.estimated_cost == Decimal("45.50")

    def test_second_detail_conflicts(self, report, curator):
        client = _client_for(curator)
        client.post(_details_url(report.pk), self.PAYLOAD, format="json")
        resp = client.post(_details_url(report.pk), self.PAYLOAD, format="json")
        assert resp.status_code == status.HTTP_409_CONFLICT
        assert ReportDetail.objects.filter(report=report).count() == 1

    def test_citizen_cannot_create(self, report, citizen):
        resp = _client_for(citizen).post(_details_url(report.pk), self.PAYLOAD, format="json")
        assert resp.status_code == status.HTTP_403_FORBIDDEN

    def test_invalid_priority(self, report, curator):
        resp = _client_for(curator).post(
            _details_url(report.pk), {**self.PAYLOAD, "priority": "urgent"}, format="json",
        )
        assert resp.status_code == status.HTTP_400_BAD_REQUEST

    def test_negative_cost_rejected(self, report, curator):
        resp = _client_for(curator).post(
            _details_url(report.pk), {**self.PAYLOAD, "estimated_cost": "-1.00"}, format="json",
        )
        assert resp.status_code == status.HTTP_400_BAD_REQUEST

    def test_owner_reads_detail(self, report, citizen, curator):
        _client_for(curator).post(_details_url(report.pk), self.PAYLOAD, format="json")
        resp = _client_for(citizen).get(_details_url(report.pk))
        assert resp.status_code == status.HTTP_200_OK
        assert resp.data["technical_description"] == self.PAYLOAD["technical_description"]

    def test_other_citizen_cannot_read(self, report, curator, create_user):
        _client_for(curator).post(_details_url(report.pk), self.PAYLOAD, format="json")
        resp = _client_for(create_user()).get(_details_url(report.pk))
        assert resp.status_code == status.HTTP_404_NOT_FOUND

    def test_read_before_creation(self, report, citizen):
        resp = _client_for(citizen).get(_details_url(report.pk))
        assert resp.status_code == status.HTTP_404_NOT_FOUND

    def test_curator_updates_detail(self, report, curator):
        client = _client_for(curator)
        client.post(_details_url(report.pk), self.PAYLOAD, format="json")
        resp = client.patch(
            _details_url(report.pk),
            {"priority": "low", "resolution_notes": "Substituída"},
            format="json",
        )
        assert resp.status_code == status.HTTP_200_OK, resp.data
        detail = ReportDetail.objects.get(report=report)
        assert detail.priority == "low"
        assert detail.resolution_notes == "Substituída"
        assert detail.technical_description == self.PAYLOAD["technical_description"]

    def test_update_without_detail(self, report, curator):
        resp = _client_for(curator).patch(
            _details_url(report.pk), {"priority": "low"}, format="json",
        )
        assert resp.status_code == status.HTTP_404_NOT_FOUND


# ════════════════════════════════════════════════════════════════════
#  Categories
# ════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
def test_categories_sorted_by_name(citizen, categories):
    resp = _client_for(citizen).get(CATEGORIES_URL)
    assert resp.status_code == status.HTTP_200_OK
    assert [c["name"] for c in resp.data] == sorted(categories)
