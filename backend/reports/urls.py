"""
Reports app URL configuration.

Route Hierarchy
---------------
  POST   /api/reports/                  → submit a report
  GET    /api/reports/{id}/             → retrieve
  PATCH  /api/reports/{id}/             → update metadata
  DELETE /api/reports/{id}/             → delete (staff)

  ── Workflow @actions ───────────────────────────────────────────
  PATCH  /api/reports/{id}/status/      → advance the status (staff)

  ── Sub-resource @actions ───────────────────────────────────────
  GET    /api/reports/{id}/details/
  POST   /api/reports/{id}/details/
  PATCH  /api/reports/{id}/details/

  GET    /api/categories/               → category list
"""

from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import CategoryListView, ReportViewSet

router = DefaultRouter()
router.register(
    prefix=r"reports",
    viewset=ReportViewSet,
    basename="report",
)

urlpatterns = [
    path("categories/", CategoryListView.as_view(), name="category-list"),
] + router.urls
