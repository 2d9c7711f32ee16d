"""
Core app URL configuration.

Provides cross-app aggregation endpoints, system-wide constants and
device-token registration.

URL prefix (registered in ``backend/urls.py``)::

    path('api/core/', include('core.urls'))

Endpoint summary
----------------
GET    /api/core/dashboard/                   — Report statistics (staff).
GET    /api/core/constants/                   — Choice enumerations.
GET    /api/core/device-tokens/               — Own device tokens.
POST   /api/core/device-tokens/               — Register / reactivate a token.
DELETE /api/core/device-tokens/{id}/          — Delete a token.
POST   /api/core/device-tokens/unregister/    — Deactivate a token.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

app_name = "core"

# ── Router for ViewSet-based endpoints ───────────────────────────────
router = DefaultRouter()
router.register(
    prefix=r"device-tokens",
    viewset=views.DeviceTokenViewSet,
    basename="device-token",
)

urlpatterns = [
    # ── Dashboard ────────────────────────────────────────────────────
    path(
        "dashboard/",
        views.DashboardStatsView.as_view(),
        name="dashboard-stats",
    ),

    # ── System Constants / Enums ─────────────────────────────────────
    path(
        "constants/",
        views.SystemConstantsView.as_view(),
        name="system-constants",
    ),

    # ── Device tokens (router-generated URLs) ────────────────────────
    path("", include(router.urls)),
]
