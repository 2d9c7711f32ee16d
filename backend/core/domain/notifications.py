"""
core.domain.notifications — Push-notification dispatch helper.

Centralises delivery to the external push gateway so every app uses one
consistent entry-point rather than talking HTTP directly.

Design decisions
----------------
* **Never raises** — ``dispatch`` is always called from a best-effort
  context (after a committed write).  Gateway rejections and transport
  faults are logged and folded into a ``DispatchOutcome``.
* **One batched call** — every token gets its own message envelope, but
  all envelopes travel in a single JSON-array ``POST``.
* **Time-bounded** — the ``POST`` carries ``settings.PUSH_GATEWAY_TIMEOUT``.
* **Off the request thread** — ``dispatch_async`` hands the ``POST`` to a
  small process-wide ``ThreadPoolExecutor``.  Callers resolve recipients
  (DB reads) first and only ship plain strings to the worker.
* **No filtering** — callers pass active tokens only; the dispatcher
  sends to whatever it receives.

Usage::

    from core.domain.notifications import NotificationDispatcher

    outcome = NotificationDispatcher().dispatch(
        tokens={"ExponentPushToken[abc]"},
        title="Atualização do seu Report",
        body="...",
        metadata={"type": "status_update", "report_id": 7},
    )
    if not outcome.success:
        ...
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterable

import requests
from django.conf import settings

from core.constants import (
    DEFAULT_PUSH_GATEWAY_TIMEOUT,
    DEFAULT_PUSH_GATEWAY_URL,
    PUSH_SOUND,
)

logger = logging.getLogger(__name__)

_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    """Lazily build the shared dispatch executor."""
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=getattr(settings, "PUSH_DISPATCH_WORKERS", 4),
                thread_name_prefix="push-dispatch",
            )
        return _executor


@dataclass(frozen=True)
class DispatchOutcome:
    """Structured result of one dispatch call."""

    success: bool
    count: int = 0
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success, "count": self.count}
        if self.error is not None:
            data["error"] = self.error
        return data


class NotificationDispatcher:
    """
    Sends push messages to a set of device tokens via the push gateway.
    """

    def __init__(
        self,
        gateway_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.gateway_url = gateway_url or getattr(
            settings, "PUSH_GATEWAY_URL", DEFAULT_PUSH_GATEWAY_URL,
        )
        self.timeout = timeout or getattr(
            settings, "PUSH_GATEWAY_TIMEOUT", DEFAULT_PUSH_GATEWAY_TIMEOUT,
        )

    @staticmethod
    def build_messages(
        tokens: Iterable[str],
        title: str,
        body: str,
        metadata: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Build one envelope per unique token, keeping first-seen order.
        """
        data = dict(metadata or {})
        return [
            {
                "to": token,
                "title": title,
                "body": body,
                "data": data,
                "sound": PUSH_SOUND,
            }
            for token in dict.fromkeys(tokens)
        ]

    def dispatch(
        self,
        tokens: Iterable[str],
        title: str,
        body: str,
        metadata: dict[str, Any] | None = None,
    ) -> DispatchOutcome:
        """
        Deliver ``title`` / ``body`` / ``metadata`` to every token.

        Returns:
            ``DispatchOutcome(success=True, count=0)`` for an empty token
            set (no network call); ``success=True`` with the number of
            tokens on any 2xx gateway response; ``success=False`` with the
            response body or the exception text otherwise.
        """
        messages = self.build_messages(tokens, title, body, metadata)
        if not messages:
            logger.debug("Push dispatch skipped: no tokens for '%s'", title)
            return DispatchOutcome(success=True, count=0)

        try:
            response = requests.post(
                self.gateway_url,
                json=messages,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except Exception as exc:
            logger.error(
                "Push dispatch to %d token(s) raised %s: %s",
                len(messages),
                type(exc).__name__,
                exc,
            )
            return DispatchOutcome(success=False, count=0, error=str(exc))

        logger.info(
            "Push dispatch to %d token(s) answered %s",
            len(messages),
            response.status_code,
        )

        if not response.ok:
            logger.error(
                "Push gateway rejected dispatch (status=%s): %s",
                response.status_code,
                response.text,
            )
            return DispatchOutcome(success=False, count=0, error=response.text)

        return DispatchOutcome(success=True, count=len(messages))

    def dispatch_async(
        self,
        tokens: Iterable[str],
        title: str,
        body: str,
        metadata: dict[str, Any] | None = None,
    ) -> Future:
        """
        Schedule ``dispatch`` on the background executor.

        ``tokens`` is materialised before submission so that lazy
        querysets are never evaluated on the worker thread.
        """
        return _get_executor().submit(
            self.dispatch, list(tokens), title, body, dict(metadata or {}),
        )
