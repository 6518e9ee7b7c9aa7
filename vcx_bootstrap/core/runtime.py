from __future__ import annotations

"""Process-wide record of native initialization that must happen at most once.

Plugin init entry points and the native logger have undefined behaviour when
invoked twice in one process. The orchestrator consults this state before each
of those steps and records a step only after it succeeded, so a failed step can
be attempted again by a later bootstrap.
"""

import logging
import threading
from typing import Callable, Set, TypeVar

_log = logging.getLogger(__name__)

T = TypeVar("T")

LOGGER_KEY = "logger"


def plugin_key(plugin_name: str) -> str:
    return f"plugin:{plugin_name}"


class InitializationState:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done: Set[str] = set()

    def is_done(self, key: str) -> bool:
        with self._lock:
            return key in self._done

    def mark_done(self, key: str) -> None:
        with self._lock:
            self._done.add(key)

    def completed(self) -> list[str]:
        with self._lock:
            return sorted(self._done)

    def run_once(self, key: str, fn: Callable[[], T]) -> bool:
        """Invoke ``fn`` unless ``key`` already completed.

        Returns True when ``fn`` ran. Exceptions from ``fn`` propagate and leave
        ``key`` unmarked.
        """
        if self.is_done(key):
            _log.debug("skipping %s: already initialized in this process", key)
            return False
        fn()
        self.mark_done(key)
        return True

    def reset(self) -> None:
        with self._lock:
            self._done.clear()


init_state = InitializationState()


def _reset_for_testing() -> None:
    init_state.reset()
