"""
Root conftest.py — shared fixtures for the entire test suite.

Provides:
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``create_user`` factory fixture for creating test users.
  - ``auth_header`` fixture for authenticated requests (JWT).
  - ``categories`` fixture creating the reference categories.
  - ``push_gateway`` fixture patching the outbound gateway ``POST``.

Push dispatch runs synchronously in tests and uploaded files go to a
per-test temporary directory.
"""

from __future__ import annotations

from unittest import mock

import pytest
from rest_framework.test import APIClient


@pytest.fixture(autouse=True)
def _test_settings(settings, tmp_path):
    settings.PUSH_DISPATCH_ASYNC = False
    settings.PUSH_GATEWAY_URL = "https://push.test/send"
    settings.MEDIA_ROOT = str(tmp_path / "media")


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def create_user(db):
    """
    Factory fixture that creates a user with sensible defaults.

    Usage::

        def test_something(create_user):
            user = create_user(username="alice")
            curator = create_user(role="curator")
    """
    from accounts.models import User

    _counter = 0

    def _factory(
        *,
        username: str | None = None,
        password: str = "TestPass123!",
        email: str | None = None,
        role: str = "user",
        is_active: bool = True,
        **kwargs,
    ) -> User:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"testuser{_counter}"
        if email is None:
            email = f"{username}@test.local"

        kwargs.setdefault("first_name", "Test")
        kwargs.setdefault("last_name", f"User{_counter}")
        return User.objects.create_user(
            username=username,
            password=password,
            email=email,
            role=role,
            is_active=is_active,
            **kwargs,
        )

    return _factory


@pytest.fixture()
def auth_header(create_user):
    """
    Returns a helper function that creates a user and returns an
    ``Authorization`` header dict with a valid JWT access token.

    Usage::

        def test_protected(auth_header, api_client):
            header = auth_header(role="admin")
            api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
            resp = api_client.get("/api/core/dashboard/")
            assert resp.status_code == 200
    """
    from rest_framework_simplejwt.tokens import AccessToken

    def _make(
        *,
        username: str | None = None,
        role: str = "user",
        **user_kwargs,
    ) -> dict[str, str]:
        user = create_user(username=username, role=role, **user_kwargs)
        token = AccessToken.for_user(user)
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture()
def categories(db):
    """The seeded category set, keyed by name."""
    from reports.models import Category

    names = ["Danos na via", "Iluminação pública", "Lixo na via"]
    return {name: Category.objects.create(name=name) for name in names}


@pytest.fixture()
def push_gateway():
    """
    Patch the gateway ``POST`` with a 200 response.

    The yielded mock records every call; set ``return_value`` or
    ``side_effect`` to simulate gateway failures.
    """
    response = mock.Mock(ok=True, status_code=200, text='{"data": []}')
    with mock.patch(
        "core.domain.notifications.requests.post",
        return_value=response,
    ) as post:
        yield post
