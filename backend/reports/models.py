"""
Reports app models.

Covers the citizen report: submission with location, photo and
categories, the fixed status progression driven by staff, and the
optional technical detail record filled in by admins / curators.
"""

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class ReportStatus(models.TextChoices):
    """
    Fixed, ordered status set.  Labels are the user-facing names used in
    notification text.
    """

    PENDING = "pending", "pendente"
    IN_PROGRESS = "in_progress", "em resolução"
    RESOLVED = "resolved", "resolvido"


#: Rank of every status.  A report may only move to a strictly higher rank.
STATUS_RANK: dict[str, int] = {
    ReportStatus.PENDING.value: 1,
    ReportStatus.IN_PROGRESS.value: 2,
    ReportStatus.RESOLVED.value: 3,
}


class Priority(models.TextChoices):
    """Priority assigned by staff in the report detail."""

    LOW = "low", "baixa"
    MEDIUM = "medium", "média"
    HIGH = "high", "alta"


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class Category(models.Model):
    """
    Issue category (e.g. "Lixo na via").  Reference data seeded once by
    a data migration.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Category Name",
    )

    class Meta:
        verbose_name = "Category"
        verbose_name_plural = "Categories"
        ordering = ["name"]

    def __str__(self):
        return self.name


class Report(TimeStampedModel):
    """
    A citizen's issue report, the central entity of the system.

    * ``owner`` is fixed at creation.
    * ``status`` only moves forward through
      ``reports.services.StatusTransitionEngine``; ``updated_at`` is
      refreshed on every transition and doubles as the resolution time.
    """

    location = models.CharField(
        max_length=255,
        verbose_name="Location",
    )
    photo = models.ImageField(
        upload_to="reports/%Y/%m/",
        null=True,
        blank=True,
        verbose_name="Photo",
    )
    comment = models.TextField(
        blank=True,
        default="",
        verbose_name="Comment",
    )
    status = models.CharField(
        max_length=20,
        choices=ReportStatus.choices,
        default=ReportStatus.PENDING,
        db_index=True,
        verbose_name="Current Status",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reports",
        verbose_name="Owner",
    )
    categories = models.ManyToManyField(
        Category,
        related_name="reports",
        verbose_name="Categories",
    )

    class Meta:
        verbose_name = "Report"
        verbose_name_plural = "Reports"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner", "status"]),
            models.Index(fields=["status", "updated_at"]),
        ]

    def __str__(self):
        return f"Report #{self.pk} @ {self.location} [{self.get_status_display()}]"

    @property
    def status_rank(self) -> int:
        return STATUS_RANK[self.status]


class ReportDetail(TimeStampedModel):
    """
    Optional technical extension of a report, created at most once by
    staff.
    """

    report = models.OneToOneField(
        Report,
        on_delete=models.CASCADE,
        related_name="detail",
        verbose_name="Report",
    )
    technical_description = models.TextField(
        verbose_name="Technical Description",
    )
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        db_index=True,
        verbose_name="Priority",
    )
    resolution_notes = models.TextField(
        blank=True,
        default="",
        verbose_name="Resolution Notes",
    )
    estimated_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name="Estimated Cost",
    )

    class Meta:
        verbose_name = "Report Detail"
        verbose_name_plural = "Report Details"

    def __str__(self):
        return f"Detail of report #{self.report_id} ({self.priority})"
