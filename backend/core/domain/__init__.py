"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions     Domain-specific exceptions that map cleanly to HTTP responses.
notifications  Push-gateway dispatcher (sync + background executor).
transactions   Helpers for ``transaction.atomic`` + ``select_for_update``.
access         Role guards and role-scoped queryset selectors.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidProgression
    from core.domain.notifications import NotificationDispatcher
    from core.domain.transactions import atomic_transition
    from core.domain.access import require_role
"""
