"""
Reports app Service Layer.

This module is the **single source of truth** for all business logic
in the ``reports`` app.  Views must remain thin: validate input via
serializers, call a service method, and return the result wrapped in
a DRF ``Response``.

Architecture
------------
- ``PointsCalculator``         — Score derived from report counts per status.
- ``ReportLifecycleNotifier``  — Push fan-out on creation / status change.
- ``StatusTransitionEngine``   — Monotonic status state machine.
- ``ReportQueryService``       — Role-scoped retrieval.
- ``ReportCreationService``    — Submission of new reports.
- ``ReportManagementService``  — Metadata update and deletion.
- ``ReportDetailService``      — Staff-only technical detail record.
- ``CategoryService``          — Category reference data.

Status State-Machine
--------------------
Three states, ranked::

    pending (1) → in_progress (2) → resolved (3)

A transition is legal iff ``rank(target) > rank(current)``, so
``pending → resolved`` is legal as well.  Equal rank (re-submitting the
current status) and any regression are rejected with
``InvalidProgression``.  Only admins and curators may transition.

Side effects
------------
Every successful transition commits first.  Afterwards, via
``transaction.on_commit`` and in this order:

1. the owner's points are recomputed (``PointsCalculator.recompute``);
2. the owner is notified (``ReportLifecycleNotifier.on_status_changed``).

Each step is isolated.  A failure is logged and recorded as a
``SideEffectFailure`` on the ``TransitionResult``; the status change
stays committed and the caller still gets a successful result.
"""

from __future__ import annotations

import functools
import logging
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q, QuerySet

from core.constants import (
    POINTS_PER_IN_PROGRESS,
    POINTS_PER_PENDING,
    POINTS_PER_RESOLVED,
)
from core.domain.access import (
    STAFF_ROLES,
    ScopeConfig,
    apply_role_filter,
    is_staff_role,
    require_role,
)
from core.domain.exceptions import (
    Conflict,
    DomainError,
    InvalidProgression,
    NotFound,
    PermissionDenied,
    SideEffectFailure,
    UnknownStatus,
)
from core.domain.notifications import DispatchOutcome, NotificationDispatcher
from core.domain.transactions import atomic_transition, lock_for_update
from core.models import DeviceToken

from .models import STATUS_RANK, Category, Report, ReportDetail, ReportStatus

User = get_user_model()
logger = logging.getLogger(__name__)

# ── Role-scoped queryset configuration for report visibility ────────
_REPORT_SCOPE_CONFIG: ScopeConfig = {
    "admin": lambda qs, u: qs,
    "curator": lambda qs, u: qs,
    "user": lambda qs, u: qs.filter(owner=u),
}


# ═══════════════════════════════════════════════════════════════════
#  Status helpers
# ═══════════════════════════════════════════════════════════════════


def resolve_status(requested: Any) -> ReportStatus:
    """
    Map a client-supplied status to a ``ReportStatus``.

    Accepts a status value (``"in_progress"``) or its rank (``2`` /
    ``"2"``).

    Raises:
        UnknownStatus: For anything else.
    """
    if isinstance(requested, ReportStatus):
        return requested
    if isinstance(requested, str):
        candidate = requested.strip()
        if candidate in STATUS_RANK:
            return ReportStatus(candidate)
        if candidate.isdecimal():
            requested = int(candidate)
    if isinstance(requested, int) and not isinstance(requested, bool):
        for value, rank in STATUS_RANK.items():
            if rank == requested:
                return ReportStatus(value)
    raise UnknownStatus(requested)


def ensure_forward(current: str, target: str) -> None:
    """
    Guard for the status state-machine.

    Raises:
        InvalidProgression: If ``rank(target) <= rank(current)``.
    """
    if STATUS_RANK[target] <= STATUS_RANK[current]:
        raise InvalidProgression(
            current=ReportStatus(current).value,
            target=ReportStatus(target).value,
        )


def status_label(value: str) -> str:
    """Human-readable label of a status value (e.g. ``"pendente"``)."""
    return str(ReportStatus(value).label)


def _best_effort(
    step: str,
    failures: list[SideEffectFailure],
    fn: Callable[..., Any],
    *args: Any,
) -> Any:
    """
    Run ``fn(*args)`` and contain any exception.

    Failures are logged with traceback and appended to ``failures``.
    Returns ``fn``'s result, or ``None`` when it raised.
    """
    try:
        return fn(*args)
    except Exception as exc:
        logger.exception("Best-effort step '%s' failed", step)
        failures.append(SideEffectFailure(step, exc))
        return None


# ═══════════════════════════════════════════════════════════════════
#  Points Calculator
# ═══════════════════════════════════════════════════════════════════


class PointsCalculator:
    """
    **Single Source of Truth** for a user's report score.

    .. math::

        points = pending \\times 1 + in\\_progress \\times 5 + resolved \\times 10

    The score is always re-derived from the user's report rows, never
    incremented, so a missed or failed recompute converges on the next
    call.
    """

    WEIGHTS: dict[str, int] = {
        ReportStatus.PENDING.value: POINTS_PER_PENDING,
        ReportStatus.IN_PROGRESS.value: POINTS_PER_IN_PROGRESS,
        ReportStatus.RESOLVED.value: POINTS_PER_RESOLVED,
    }

    @staticmethod
    def count_by_status(user: Any) -> dict[str, int]:
        """Return ``{status_value: count}`` for every status (zeros included)."""
        counts = {value: 0 for value in STATUS_RANK}
        rows = (
            Report.objects
            .filter(owner_id=user.pk)
            .values("status")
            .annotate(count=Count("id"))
            .order_by()
        )
        for row in rows:
            counts[row["status"]] = row["count"]
        return counts

    @classmethod
    def compute(cls, counts: dict[str, int]) -> int:
        """Pure formula over a ``{status_value: count}`` mapping."""
        return sum(
            counts.get(status, 0) * weight
            for status, weight in cls.WEIGHTS.items()
        )

    @classmethod
    def summarize(cls, user: Any) -> dict[str, Any]:
        """
        Return the points together with the per-status breakdown,
        without persisting anything.

        Example::

            {"points": 37,
             "reports_summary": {"pending": 2, "in_progress": 1, "resolved": 3}}
        """
        counts = cls.count_by_status(user)
        return {"points": cls.compute(counts), "reports_summary": counts}

    @classmethod
    def recompute(cls, user: Any) -> int:
        """
        Re-derive and persist ``user.points``.

        Uses a single ``UPDATE`` so concurrent edits to other user
        columns are not overwritten.  The in-memory ``user`` is updated
        too.
        """
        points = cls.compute(cls.count_by_status(user))
        User.objects.filter(pk=user.pk).update(points=points)
        user.points = points
        logger.debug("Recomputed points for user=%s: %d", user.pk, points)
        return points


# ═══════════════════════════════════════════════════════════════════
#  Report Lifecycle Notifier
# ═══════════════════════════════════════════════════════════════════


def _log_background_outcome(future: Future) -> None:
    """Done-callback for background dispatches."""
    if future.cancelled():
        logger.warning("Background push dispatch was cancelled.")
        return
    outcome = future.result()
    if not outcome.success:
        logger.warning("Background push dispatch failed: %s", outcome.error)


class ReportLifecycleNotifier:
    """
    Resolves recipients, builds the message and hands it to the
    dispatcher for the two report lifecycle events.

    Both entry points are pure orchestration.  An empty recipient set is
    a successful no-op.  With ``settings.PUSH_DISPATCH_ASYNC`` enabled the
    gateway call runs on the background executor and ``None`` is
    returned; otherwise the ``DispatchOutcome`` is returned.
    """

    NEW_REPORT_TITLE = "Novo Relatório Registrado"
    STATUS_UPDATE_TITLE = "Atualização do seu Report"

    def __init__(self, dispatcher: NotificationDispatcher | None = None) -> None:
        self.dispatcher = dispatcher or NotificationDispatcher()

    # ── Recipient resolution ────────────────────────────────────────

    @staticmethod
    def staff_tokens() -> list[str]:
        """Active tokens of every active admin / curator (superusers included)."""
        return list(
            DeviceToken.objects
            .filter(is_active=True, user__is_active=True)
            .filter(Q(user__role__in=STAFF_ROLES) | Q(user__is_superuser=True))
            .values_list("token", flat=True)
            .order_by()
            .distinct()
        )

    @staticmethod
    def owner_tokens(report: Report) -> list[str]:
        """Active tokens of the report's owner."""
        return list(
            DeviceToken.objects
            .filter(user_id=report.owner_id, is_active=True)
            .values_list("token", flat=True)
        )

    # ── Events ──────────────────────────────────────────────────────

    def on_created(self, report: Report) -> DispatchOutcome | None:
        """Tell every admin / curator that a new report was submitted."""
        category_names = ", ".join(
            report.categories.order_by("name").values_list("name", flat=True)
        )
        body = (
            f"Novo relatório em '{report.location}' registrado "
            f"na(s) categoria(s): {category_names}"
        )
        metadata = {
            "type": "new_report",
            "report_id": report.pk,
            "status": str(report.status),
        }
        return self._deliver(self.staff_tokens(), self.NEW_REPORT_TITLE, body, metadata)

    def on_status_changed(
        self,
        report: Report,
        old_status: str,
        new_status: str,
    ) -> DispatchOutcome | None:
        """Tell the owner that their report moved to ``new_status``."""
        body = (
            f"O seu report em '{report.location}' foi atualizado de "
            f"'{status_label(old_status)}' para '{status_label(new_status)}'"
        )
        metadata = {
            "type": "status_update",
            "report_id": report.pk,
            "old_status": ReportStatus(old_status).value,
            "new_status": ReportStatus(new_status).value,
        }
        return self._deliver(
            self.owner_tokens(report), self.STATUS_UPDATE_TITLE, body, metadata,
        )

    def _deliver(
        self,
        tokens: list[str],
        title: str,
        body: str,
        metadata: dict[str, Any],
    ) -> DispatchOutcome | None:
        if tokens and getattr(settings, "PUSH_DISPATCH_ASYNC", True):
            future = self.dispatcher.dispatch_async(tokens, title, body, metadata)
            future.add_done_callback(_log_background_outcome)
            return None
        return self.dispatcher.dispatch(tokens, title, body, metadata)


# ═══════════════════════════════════════════════════════════════════
#  Status Transition Engine
# ═══════════════════════════════════════════════════════════════════


@dataclass
class TransitionResult:
    """
    Outcome of a successful ``StatusTransitionEngine.apply`` call.

    ``side_effect_failures`` is filled once the after-commit steps have
    run; when ``apply`` is called inside an outer transaction that happens
    only when that transaction commits.
    """

    report: Report
    previous_status: str
    new_status: str
    side_effect_failures: list[SideEffectFailure] = field(default_factory=list)


class StatusTransitionEngine:
    """
    Manages **all** status transitions in the report lifecycle.

    Design Pattern: State Machine + Command
    ----------------------------------------
    Each transition is a command ``(report_id, requested_status, actor)``.
    The engine checks the actor's role, resolves the requested status,
    re-reads the report under a row lock, enforces the rank ordering,
    persists, and schedules the side effects for after the commit.
    """

    def __init__(
        self,
        notifier: ReportLifecycleNotifier | None = None,
        points: type[PointsCalculator] = PointsCalculator,
    ) -> None:
        self.notifier = notifier or ReportLifecycleNotifier()
        self.points = points

    def apply(
        self,
        report_id: int,
        requested_status: Any,
        actor: Any,
    ) -> TransitionResult:
        """
        **The central state-machine gateway.**

        Parameters
        ----------
        report_id : int
            PK of the report to transition.
        requested_status : str | int
            Target status value or rank.
        actor : User
            The user initiating the transition; must be admin / curator.

        Returns
        -------
        TransitionResult
            Saved report plus previous and new status values.

        Raises
        ------
        PermissionDenied
            ``actor`` is not an admin or curator.
        UnknownStatus
            ``requested_status`` matches no status.
        NotFound
            No report with ``report_id``.
        InvalidProgression
            ``rank(requested) <= rank(current)``.
        """
        require_role(
            actor,
            *STAFF_ROLES,
            message="Only administrators or curators can change a report's status.",
        )
        target = resolve_status(requested_status)
        failures: list[SideEffectFailure] = []

        def _after_commit(report: Report, previous: str) -> None:
            self._run_side_effects(report, previous, target.value, failures)

        report, previous = atomic_transition(
            model_class=Report,
            pk=report_id,
            target_status=target.value,
            guard=ensure_forward,
            on_commit=_after_commit,
        )

        logger.info(
            "Report %s moved %s -> %s by user=%s",
            report.pk,
            previous,
            target.value,
            getattr(actor, "pk", None),
        )
        return TransitionResult(
            report=report,
            previous_status=previous,
            new_status=target.value,
            side_effect_failures=failures,
        )

    def _run_side_effects(
        self,
        report: Report,
        previous: str,
        target: str,
        failures: list[SideEffectFailure],
    ) -> None:
        """Points first, then the owner notification; both isolated."""
        _best_effort("points_recompute", failures, self.points.recompute, report.owner)

        outcome = _best_effort(
            "status_notification",
            failures,
            self.notifier.on_status_changed,
            report,
            previous,
            target,
        )
        if isinstance(outcome, DispatchOutcome) and not outcome.success:
            failures.append(SideEffectFailure("status_notification", outcome.error or "dispatch failed"))


# ═══════════════════════════════════════════════════════════════════
#  Report Query Service
# ═══════════════════════════════════════════════════════════════════


class ReportQueryService:
    """Role-scoped retrieval of reports."""

    @staticmethod
    def get_visible_queryset(requesting_user: Any) -> QuerySet[Report]:
        """Staff see every report; citizens see their own."""
        qs = Report.objects.select_related("owner", "detail").prefetch_related("categories")
        return apply_role_filter(
            qs,
            requesting_user,
            scope_config=_REPORT_SCOPE_CONFIG,
            default="none",
        )

    @staticmethod
    def get_report_detail(requesting_user: Any, pk: int) -> Report:
        """
        Raises ``NotFound`` when the report does not exist or is not
        visible to ``requesting_user``.
        """
        try:
            return ReportQueryService.get_visible_queryset(requesting_user).get(pk=pk)
        except Report.DoesNotExist:
            raise NotFound(f"Report with id {pk} not found.")


# ═══════════════════════════════════════════════════════════════════
#  Report Creation Service
# ═══════════════════════════════════════════════════════════════════


def _after_report_created(report: Report, notifier: ReportLifecycleNotifier) -> None:
    failures: list[SideEffectFailure] = []
    _best_effort("points_recompute", failures, PointsCalculator.recompute, report.owner)
    _best_effort("new_report_notification", failures, notifier.on_created, report)


class ReportCreationService:
    """Handles citizen report submission."""

    @staticmethod
    def create_report(
        validated_data: dict[str, Any],
        requesting_user: Any,
        notifier: ReportLifecycleNotifier | None = None,
    ) -> Report:
        """
        Create a report at ``pending`` owned by ``requesting_user``.

        Implementation Contract
        -----------------------
        1. ``categories`` must be non-empty.
        2. Create the report with ``status = PENDING``.
        3. Attach the categories.
        4. After commit: recompute the owner's points, then
           ``ReportLifecycleNotifier.on_created`` (both best-effort).
        """
        data = dict(validated_data)
        categories = list(data.pop("categories", []) or [])
        if not categories:
            raise DomainError("A report must have at least one category.")

        data.pop("status", None)
        data.pop("owner", None)

        notifier = notifier or ReportLifecycleNotifier()
        with transaction.atomic():
            report = Report.objects.create(
                owner=requesting_user,
                status=ReportStatus.PENDING,
                **data,
            )
            report.categories.set(categories)
            transaction.on_commit(
                functools.partial(_after_report_created, report, notifier)
            )

        logger.info("Report %s created by user=%s", report.pk, requesting_user.pk)
        return report


# ═══════════════════════════════════════════════════════════════════
#  Report Management Service
# ═══════════════════════════════════════════════════════════════════


class ReportManagementService:
    """
    Metadata update and deletion.

    ``status`` is never writable here; it only changes through the
    ``StatusTransitionEngine``.
    """

    #: Fields a report update may touch.
    MUTABLE_FIELDS = ("location", "comment", "photo")

    @staticmethod
    @transaction.atomic
    def update_report(
        report_id: int,
        validated_data: dict[str, Any],
        requesting_user: Any,
    ) -> Report:
        """
        Update location / comment / photo / categories.

        Raises:
            NotFound:         Report missing.
            PermissionDenied: Requester is neither owner nor staff.
            DomainError:      ``categories`` supplied but empty.
        """
        report = lock_for_update(Report, report_id)
        if report.owner_id != requesting_user.pk and not is_staff_role(requesting_user):
            raise PermissionDenied("You are not allowed to update this report.")

        update_fields: list[str] = []
        for name in ReportManagementService.MUTABLE_FIELDS:
            if name not in validated_data:
                continue
            if name == "photo" and report.photo:
                # The old file must survive a rollback.
                transaction.on_commit(
                    functools.partial(report.photo.storage.delete, report.photo.name)
                )
            setattr(report, name, validated_data[name])
            update_fields.append(name)

        if update_fields:
            report.save(update_fields=update_fields + ["updated_at"])

        if "categories" in validated_data:
            categories = list(validated_data["categories"] or [])
            if not categories:
                raise DomainError("A report must have at least one category.")
            report.categories.set(categories)

        return report

    @staticmethod
    def delete_report(report_id: int, requesting_user: Any) -> None:
        """
        Hard-delete a report (staff only) and reconverge the owner's
        points after commit.
        """
        require_role(
            requesting_user,
            *STAFF_ROLES,
            message="Only administrators or curators can delete reports.",
        )
        with transaction.atomic():
            report = lock_for_update(Report, report_id)
            owner = report.owner
            if report.photo:
                transaction.on_commit(
                    functools.partial(report.photo.storage.delete, report.photo.name)
                )
            report.delete()
            transaction.on_commit(
                functools.partial(
                    _best_effort, "points_recompute", [], PointsCalculator.recompute, owner,
                )
            )
        logger.info("Report %s deleted by user=%s", report_id, requesting_user.pk)


# ═══════════════════════════════════════════════════════════════════
#  Report Detail Service
# ═══════════════════════════════════════════════════════════════════


class ReportDetailService:
    """Staff-maintained technical detail, at most one per report."""

    @staticmethod
    @transaction.atomic
    def create_detail(
        report_id: int,
        validated_data: dict[str, Any],
        requesting_user: Any,
    ) -> ReportDetail:
        """
        Raises:
            PermissionDenied: Requester is not staff.
            NotFound:         Report missing.
            Conflict:         A detail already exists for the report.
        """
        require_role(
            requesting_user,
            *STAFF_ROLES,
            message="Only administrators or curators can add report details.",
        )
        report = lock_for_update(Report, report_id)
        if ReportDetail.objects.filter(report=report).exists():
            raise Conflict(f"Report {report_id} already has details.")
        return ReportDetail.objects.create(report=report, **validated_data)

    @staticmethod
    def get_detail(report_id: int, requesting_user: Any) -> ReportDetail:
        """Owner and staff may read; everyone else gets ``NotFound``."""
        report = ReportQueryService.get_report_detail(requesting_user, report_id)
        try:
            return ReportDetail.objects.get(report=report)
        except ReportDetail.DoesNotExist:
            raise NotFound(f"Report {report_id} has no details.")

    @staticmethod
    @transaction.atomic
    def update_detail(
        report_id: int,
        validated_data: dict[str, Any],
        requesting_user: Any,
    ) -> ReportDetail:
        require_role(
            requesting_user,
            *STAFF_ROLES,
            message="Only administrators or curators can update report details.",
        )
        try:
            detail = ReportDetail.objects.select_for_update().get(report_id=report_id)
        except ReportDetail.DoesNotExist:
            if not Report.objects.filter(pk=report_id).exists():
                raise NotFound(f"Report with id {report_id} not found.")
            raise NotFound(f"Report {report_id} has no details.")

        for name, value in validated_data.items():
            setattr(detail, name, value)
        if validated_data:
            detail.save(update_fields=list(validated_data) + ["updated_at"])
        return detail


# ═══════════════════════════════════════════════════════════════════
#  Category Service
# ═══════════════════════════════════════════════════════════════════


class CategoryService:
    """Read access to the seeded category list."""

    @staticmethod
    def list_categories() -> QuerySet[Category]:
        return Category.objects.order_by("name")
