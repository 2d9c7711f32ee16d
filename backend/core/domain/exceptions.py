"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the domain layer stays
framework-agnostic.  The global DRF exception handler
(``core.domain.exception_handler``) maps them to HTTP responses.

Mapping cheatsheet
------------------
┌─────────────────────┬──────────────────────────────┬──────┐
│ Domain Exception    │ DRF / HTTP equivalent        │ Code │
├─────────────────────┼──────────────────────────────┼──────┤
│ DomainError         │ ValidationError / 400        │ 400  │
│ UnknownStatus       │ ValidationError / 400        │ 400  │
│ PermissionDenied    │ PermissionDenied / 403       │ 403  │
│ NotFound            │ NotFound / 404               │ 404  │
│ Conflict            │ APIException / 409           │ 409  │
│ InvalidTransition   │ APIException / 409           │ 409  │
│ InvalidProgression  │ APIException / 409           │ 409  │
└─────────────────────┴──────────────────────────────┴──────┘

``SideEffectFailure`` never reaches the handler: it describes a
best-effort step (points recompute, push dispatch) that failed *after*
the primary write committed, and is only logged / attached to the
service result.

Recommended usage inside a service::

    from core.domain.exceptions import InvalidProgression

    if STATUS_RANK[target] <= STATUS_RANK[current]:
        raise InvalidProgression(current=current, target=target)
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Catch this at the view boundary and convert to a 400 Bad Request.
    """

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class PermissionDenied(DomainError):
    """
    The authenticated user does not have the required role for this
    operation.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested resource does not exist (or is not visible to the
    requesting user).

    Maps to HTTP 404.
    """

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: duplicate creation attempt (a second ``ReportDetail``).
    Maps to HTTP 409.
    """

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class UnknownStatus(DomainError):
    """The requested status does not match any known ``ReportStatus``."""

    def __init__(self, requested: object = None) -> None:
        self.requested = requested
        super().__init__(f"Unknown status '{requested}'.")


class InvalidTransition(Conflict):
    """
    A state-machine transition that is not allowed from the current status.

    Inherits from ``Conflict`` because an invalid transition IS a conflict
    with the resource's current state.  Maps to HTTP 409.

    Example::

        raise InvalidTransition(
            current="pending",
            target="pending",
            reason="Status can only move forward.",
        )
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        reason: str | None = None,
    ) -> None:
        if message is None:
            parts = ["Invalid state transition"]
            if current and target:
                parts.append(f"from '{current}' to '{target}'")
            if reason:
                parts.append(f"({reason})")
            message = " ".join(parts) + "."
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason


class InvalidProgression(InvalidTransition):
    """
    The requested status rank is not strictly greater than the current one.

    Report statuses only ever move forward:
    pending → in_progress → resolved.
    """

    def __init__(self, *, current: str, target: str) -> None:
        super().__init__(
            current=current,
            target=target,
            reason="status can only move forward: pending -> in_progress -> resolved",
        )


class SideEffectFailure(DomainError):
    """
    A best-effort follow-up of a committed write failed.

    Recorded for diagnostics; never raised to the caller of the primary
    operation.
    """

    def __init__(self, step: str, error: BaseException | str) -> None:
        self.step = step
        self.error = str(error)
        super().__init__(f"Side effect '{step}' failed: {self.error}")
