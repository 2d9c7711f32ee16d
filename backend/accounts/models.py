"""
Accounts app models.

Defines a custom User model that extends Django's ``AbstractUser`` with
a fixed role enumeration and the cached report ``points`` score.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models


class UserRole(models.TextChoices):
    """
    Closed set of roles.

    ``admin`` and ``curator`` form the staff group that drives the report
    lifecycle; every new registration starts as ``user``.
    """

    USER = "user", "User"
    ADMIN = "admin", "Administrator"
    CURATOR = "curator", "Curator"


class User(AbstractUser):
    """
    Custom user model for the citizen-reporting backend.

    Registration requires: username, password, email, first_name and
    last_name.  Login is supported via username *or* email together with
    the password.

    ``points`` is a derived cache recomputed from the user's reports by
    ``reports.services.PointsCalculator``; it is never edited by hand.
    """

    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )
    telephone = models.CharField(
        max_length=20,
        blank=True,
        default="",
        verbose_name="Telephone",
    )
    role = models.CharField(
        max_length=10,
        choices=UserRole.choices,
        default=UserRole.USER,
        db_index=True,
        verbose_name="Role",
    )
    points = models.PositiveIntegerField(
        default=0,
        verbose_name="Points",
        help_text="Derived from report statuses; recomputed on every transition.",
    )

    REQUIRED_FIELDS = ["email", "first_name", "last_name"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return f"{self.username} ({self.get_full_name()}) - {self.role}"

    # ── Helper predicates for role checks ────────────────────────────

    def has_role(self, role_name: str) -> bool:
        """Check if the user's current role matches the given name."""
        return self.role == role_name

    @property
    def is_staff_member(self) -> bool:
        """``True`` for admins, curators and superusers."""
        return self.is_superuser or self.role in (UserRole.ADMIN, UserRole.CURATOR)
