from __future__ import annotations

"""Agency readiness prober.

Polls ``GET <endpoint>/agency`` until it answers without a transport error or
an error status. Failures are logged and followed by a fixed sleep; there is
no attempt limit, so an unreachable agency blocks the caller for good unless a
``ProbeContext`` is passed in to cancel the wait or bound it with a deadline.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from vcx_bootstrap.core.errors import ReadinessCancelled
from vcx_bootstrap.utils.url_helpers import agency_health_url

_log = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1.0
DEFAULT_REQUEST_TIMEOUT = 5.0


class CancelToken:
    def __init__(self):
        self._cancelled = False
    def request(self):
        self._cancelled = True
    def is_cancelled(self) -> bool:
        return self._cancelled


class ProbeContext:
    """Caller-owned stop conditions for a readiness wait."""

    def __init__(self, cancel_token: CancelToken | None = None, timeout: float | None = None,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.cancel_token = cancel_token or CancelToken()
        self._clock = clock
        self.deadline = clock() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self.cancel_token.request()

    def stop_reason(self) -> str | None:
        if self.cancel_token.is_cancelled():
            return "cancelled"
        if self.deadline is not None and self._clock() >= self.deadline:
            return "deadline exceeded"
        return None


@dataclass
class ReadinessState:
    endpoint: str
    attempt_count: int = 0
    last_error: Optional[BaseException] = None


def _check_context(context: ProbeContext | None, state: ReadinessState) -> None:
    if context is None:
        return
    reason = context.stop_reason()
    if reason:
        raise ReadinessCancelled(state.endpoint, state.attempt_count, reason)


def await_ready(
    endpoint: str,
    *,
    client: httpx.Client | None = None,
    interval: float = DEFAULT_INTERVAL,
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    sleep: Callable[[float], None] = time.sleep,
    context: ProbeContext | None = None,
) -> ReadinessState:
    """Block until the agency at ``endpoint`` answers its health check."""
    state = ReadinessState(endpoint=endpoint)
    url = agency_health_url(endpoint)
    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=request_timeout, follow_redirects=True)
    try:
        while True:
            _check_context(context, state)
            state.attempt_count += 1
            try:
                response = client.get(url, follow_redirects=True)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                state.last_error = exc
                _log.warning(
                    "Agency %s should return 200 OK on HTTP GET %s, but returns error: %s. Sleeping %.1fs (attempt %d).",
                    endpoint, url, exc, interval, state.attempt_count,
                )
                sleep(interval)
                continue
            _log.info("agency ready endpoint=%s attempts=%d", endpoint, state.attempt_count)
            state.last_error = None
            return state
    finally:
        if owns_client:
            client.close()
