"""
core.domain.access — Role-scoped guards and queryset selectors.

Roles are a closed enumeration (``accounts.models.UserRole``): ``user``,
``admin`` and ``curator``.  Admins and curators together form the
*staff* group that may drive the report lifecycle.

This module provides shared utilities that each app's service layer
calls:

    1) ``get_user_role_name`` — the effective role of a user.
    2) ``require_role``       — guard raising ``PermissionDenied``.
    3) ``apply_role_filter``  — role-keyed queryset scoping.

Usage in an app's service layer::

    from core.domain.access import apply_role_filter, require_role

    REPORT_SCOPE_CONFIG = {
        "admin":   lambda qs, u: qs,
        "curator": lambda qs, u: qs,
        "user":    lambda qs, u: qs.filter(owner=u),
    }

    qs = apply_role_filter(Report.objects.all(), user,
                           scope_config=REPORT_SCOPE_CONFIG)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from django.db.models import QuerySet

from core.domain.exceptions import PermissionDenied

if TYPE_CHECKING:
    from accounts.models import User

# Takes (queryset, user) and returns a filtered queryset.
ScopeFilter = Callable[[QuerySet, "User"], QuerySet]

# Role name → filter function.
ScopeConfig = dict[str, ScopeFilter]

ADMIN_ROLE = "admin"
CURATOR_ROLE = "curator"
STAFF_ROLES: frozenset[str] = frozenset({ADMIN_ROLE, CURATOR_ROLE})


def get_user_role_name(user: User) -> str | None:
    """
    Return the effective role name for a user, or ``None`` if anonymous.

    Superusers are always treated as ``admin``.
    """
    if not getattr(user, "is_authenticated", False):
        return None
    if user.is_superuser:
        return ADMIN_ROLE
    return getattr(user, "role", None) or None


def is_staff_role(user: User) -> bool:
    """``True`` when the user is an admin or a curator."""
    return get_user_role_name(user) in STAFF_ROLES


def require_role(user: User, *allowed_roles: str, message: str = "") -> None:
    """
    Guard that raises ``PermissionDenied`` if the user's role is not
    among ``allowed_roles``.

    Example::

        require_role(user, "admin", "curator")
    """
    role_name = get_user_role_name(user)
    if role_name not in allowed_roles:
        raise PermissionDenied(
            message
            or (
                f"Role '{role_name}' is not permitted for this operation. "
                f"Required: {', '.join(sorted(allowed_roles))}."
            )
        )


def apply_role_filter(
    queryset: QuerySet,
    user: User,
    *,
    scope_config: ScopeConfig,
    default: str = "none",
) -> QuerySet:
    """
    Apply role-based filtering to a queryset using the provided config.

    Args:
        queryset:     Base (unfiltered) queryset.
        user:         The authenticated user.
        scope_config: ``{role_name: filter_fn}`` mapping.
        default:      What to do when the role has no entry.
                      ``"none"`` (default) → empty queryset.
                      ``"all"`` → return unfiltered.
    """
    role_name = get_user_role_name(user)

    if role_name and role_name in scope_config:
        return scope_config[role_name](queryset, user)

    if default == "none":
        return queryset.none()
    return queryset
