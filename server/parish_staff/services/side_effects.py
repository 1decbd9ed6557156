from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable

logger = logging.getLogger(__name__)


class SideEffectDispatcher:
    """Runs best-effort work after a state change has been committed.

    ``dispatch`` never blocks on the task and never raises because of it: failures
    are logged and dropped. ``inline`` runs each task immediately in the caller's
    thread with the same swallowing semantics.
    """

    def __init__(self, max_workers: int = 4, inline: bool = False) -> None:
        self.inline = inline
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None
        self._pending: set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="staff-side-effect",
                )
            return self._executor

    @staticmethod
    def _run(name: str, fn: Callable[..., Any], args: tuple, kwargs: dict) -> None:
        try:
            fn(*args, **kwargs)
        except Exception:
            logger.exception("side_effect_failed", extra={"side_effect": name})

    def dispatch(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        if self.inline:
            self._run(name, fn, args, kwargs)
            return
        if self._closed:
            logger.warning("side_effect_dropped", extra={"side_effect": name})
            return
        try:
            future = self._get_executor().submit(self._run, name, fn, args, kwargs)
        except RuntimeError:
            # Executor already shut down.
            logger.warning("side_effect_dropped", extra={"side_effect": name})
            return
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for outstanding tasks; returns False if some were still running at timeout."""

        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        if not_done:
            logger.warning("side_effects_still_running", extra={"count": len(not_done)})
        return not not_done

    def shutdown(self, timeout: float | None = None) -> None:
        self.drain(timeout)
        with self._lock:
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False)
