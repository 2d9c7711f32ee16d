"""
core.domain.transactions — Helpers for safe state transitions.

Provides utilities that wrap ``transaction.atomic`` and
``select_for_update`` into reusable patterns so that every app's
service layer follows the same concurrency-safe approach.

Design goals
------------
* Eliminate boilerplate around ``with transaction.atomic(): ...``
  inside service methods.
* Ensure that state-transition reads always lock the row first
  (``select_for_update``) so the guard sees the latest committed value,
  never a stale in-memory copy held by the caller.
* Keep the helpers **generic** — they accept any Django ``Model``
  class, a primary key and a field name.

Usage::

    from core.domain.transactions import atomic_transition

    report, previous = atomic_transition(
        model_class=Report,
        pk=report_id,
        target_status=ReportStatus.RESOLVED,
        guard=ensure_forward,
        on_commit=after_transition,
    )
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Iterable, TypeVar

from django.db import models, transaction

from core.domain.exceptions import NotFound

M = TypeVar("M", bound=models.Model)

#: ``guard(current_value, target_value)`` — raise to veto the transition.
TransitionGuard = Callable[[Any, Any], None]


def atomic_transition(
    *,
    model_class: type[M],
    pk: Any,
    target_status: Any,
    status_field: str = "status",
    guard: TransitionGuard | None = None,
    save_fields: Iterable[str] | None = None,
    on_commit: Callable[[M, Any], None] | None = None,
) -> tuple[M, Any]:
    """
    Atomically transition a model row from one status to another.

    Steps performed inside ``transaction.atomic()``:
        1. Fetch the row with ``select_for_update()`` to acquire a
           row-level lock.
        2. Read the current value of ``status_field``.
        3. If ``guard`` is provided, call ``guard(current, target)``;
           any exception it raises aborts the transition before a write.
        4. Set ``status_field`` to ``target_status`` and save together
           with ``updated_at``.
        5. If ``on_commit`` is provided, register
           ``on_commit(instance, previous)`` to run once the outermost
           transaction commits.

    Args:
        model_class:   The Django model class.
        pk:            Primary key of the row to transition.
        target_status: The desired new value.
        status_field:  Name of the status field.  Defaults to ``"status"``.
        guard:         Optional validator for the ``(current, target)`` pair.
        save_fields:   Extra fields to include in ``save(update_fields=...)``.
        on_commit:     Optional post-commit callback.

    Returns:
        ``(instance, previous_value)`` — the saved instance and the value
        ``status_field`` held before the transition.

    Raises:
        NotFound: If no row with that PK exists.
        Whatever ``guard`` raises.
    """
    with transaction.atomic():
        locked = lock_for_update(model_class, pk)
        previous = getattr(locked, status_field)

        if guard is not None:
            guard(previous, target_status)

        setattr(locked, status_field, target_status)

        update_fields = {status_field, "updated_at"}
        if save_fields:
            update_fields.update(save_fields)
        locked.save(update_fields=sorted(update_fields))

        if on_commit is not None:
            transaction.on_commit(functools.partial(on_commit, locked, previous))

    return locked, previous


def lock_for_update(model_class: type[M], pk: Any) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Raises:
        NotFound: If no row with that PK exists or ``pk`` is malformed.
    """
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except (model_class.DoesNotExist, TypeError, ValueError):
        raise NotFound(f"{model_class.__name__} with pk={pk} does not exist.")
