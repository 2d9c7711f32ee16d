"""
Accounts Service Layer.

This module is the **single source of truth** for all business logic
within the ``accounts`` app.  Views must remain *thin*: they validate
input through serializers, call a service method, and return the result
wrapped in a DRF ``Response``.

Architecture
------------
- ``UserRegistrationService``  — new-user creation flow.
- ``UserManagementService``    — admin listing, role assignment, deletion.
- ``CurrentUserService``       — "Me" endpoint helpers and points.
"""

from __future__ import annotations

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet

from core.domain.access import ADMIN_ROLE, require_role
from core.domain.exceptions import Conflict, DomainError, NotFound
from reports.services import PointsCalculator

from .models import UserRole

User = get_user_model()
logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  Registration Service
# ═══════════════════════════════════════════════════════════════════


class UserRegistrationService:
    """Encapsulates the self-service registration flow."""

    @staticmethod
    def register_user(validated_data: dict[str, Any]) -> User:
        """
        Create a new user with role ``user`` and zero points.

        Implementation Contract
        -----------------------
        1. Pop ``password`` so it is hashed by ``create_user``.
        2. Pre-check ``username`` / ``email`` uniqueness for a
           field-specific ``Conflict``.
        3. Create inside ``transaction.atomic`` and map a racing
           ``IntegrityError`` to ``Conflict``.

        Raises
        ------
        core.domain.exceptions.Conflict
            If the username or email is already taken.
        """
        data = dict(validated_data)
        data.pop("password_confirm", None)
        data.pop("role", None)
        password = data.pop("password")

        conflicts = []
        if User.objects.filter(username=data.get("username")).exists():
            conflicts.append("username")
        if User.objects.filter(email__iexact=data.get("email")).exists():
            conflicts.append("email")
        if conflicts:
            raise Conflict(
                f"The following field(s) already exist: {', '.join(conflicts)}."
            )

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    password=password,
                    role=UserRole.USER,
                    **data,
                )
        except IntegrityError:
            raise Conflict(
                "A user with one of the provided unique fields already exists."
            )

        logger.info("Registered user=%s (%s)", user.pk, user.username)
        return user


# ═══════════════════════════════════════════════════════════════════
#  User Management Service
# ═══════════════════════════════════════════════════════════════════


class UserManagementService:
    """
    Administrative operations on users.  Every method requires the
    performer to be an admin (superusers count as admins).
    """

    @staticmethod
    def list_users(
        performed_by: User,
        *,
        role: str | None = None,
        search: str | None = None,
    ) -> QuerySet[User]:
        """
        Return users, optionally filtered by ``role`` and a
        case-insensitive ``search`` over username, email and names.
        """
        require_role(performed_by, ADMIN_ROLE, message="Only administrators can list users.")
        qs = User.objects.order_by("username")
        if role:
            qs = qs.filter(role=role)
        if search:
            qs = qs.filter(
                Q(username__icontains=search)
                | Q(email__icontains=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
            )
        return qs

    @staticmethod
    def get_user(user_id: int) -> User:
        try:
            return User.objects.get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound(f"User with id {user_id} not found.")

    @staticmethod
    def assign_role(*, user_id: int, role: str, performed_by: User) -> User:
        """
        Change a user's role.

        Raises
        ------
        PermissionDenied
            Performer is not an admin.
        NotFound
            No such user.
        DomainError
            Admin tries to change their own role.
        """
        require_role(performed_by, ADMIN_ROLE, message="Only administrators can assign roles.")
        target_user = UserManagementService.get_user(user_id)
        if target_user.pk == performed_by.pk:
            raise DomainError("You cannot change your own role.")

        previous = target_user.role
        target_user.role = role
        target_user.save(update_fields=["role"])
        logger.info(
            "User %s role changed %s -> %s by user=%s",
            target_user.pk, previous, role, performed_by.pk,
        )
        return target_user

    @staticmethod
    def delete_user(*, user_id: int, performed_by: User) -> None:
        """
        Delete a user together with their reports and device tokens.

        Raises
        ------
        PermissionDenied
            Performer is not an admin.
        NotFound
            No such user.
        DomainError
            Admin tries to delete their own account.
        """
        require_role(performed_by, ADMIN_ROLE, message="Only administrators can delete users.")
        target_user = UserManagementService.get_user(user_id)
        if target_user.pk == performed_by.pk:
            raise DomainError("You cannot delete your own account.")
        target_user.delete()
        logger.info("User %s deleted by user=%s", user_id, performed_by.pk)


# ═══════════════════════════════════════════════════════════════════
#  Current User (Me) Service
# ═══════════════════════════════════════════════════════════════════


class CurrentUserService:
    """Helpers for the "Me" endpoints."""

    @staticmethod
    def get_profile(user: User) -> User:
        return User.objects.get(pk=user.pk)

    @staticmethod
    def update_profile(user: User, validated_data: dict[str, Any]) -> User:
        """
        Update the authenticated user's own profile fields.  The user
        may not change ``role``, ``points``, ``is_active`` or
        ``username`` here.
        """
        for field, value in validated_data.items():
            setattr(user, field, value)
        if validated_data:
            user.save(update_fields=list(validated_data.keys()))
        return User.objects.get(pk=user.pk)

    @staticmethod
    def get_points(user: User) -> dict[str, Any]:
        """
        Recompute and persist the user's points, returning them with
        the per-status report counts.
        """
        summary = PointsCalculator.summarize(user)
        if user.points != summary["points"]:
            User.objects.filter(pk=user.pk).update(points=summary["points"])
            user.points = summary["points"]
        return summary
