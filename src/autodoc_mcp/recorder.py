# ABOUTME: Background recording of exchanges, decoupled from the served response
# ABOUTME: Every failure is logged inside the worker and never reaches the caller

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Callable, Optional

from .models import DocRequest, DocResponse
from .registry import RouteSpecRegistry

log = logging.getLogger(__name__)

ExchangeBuilder = Callable[[], tuple[DocRequest, DocResponse]]


class Recorder:
    """Runs RouteSpecRegistry.record on a small worker pool."""

    def __init__(self, registry: RouteSpecRegistry, max_workers: int = 2):
        self.registry = registry
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: set[Future] = set()
        self._lock = Lock()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="autodoc-recorder",
                )
            return self._executor

    def _run(self, request: DocRequest, response: DocResponse) -> bool:
        try:
            return self.registry.record(request, response)
        except Exception:
            log.exception(f"Error recording {request.method} {request.path}")
            return False

    def submit(self, request: DocRequest, response: DocResponse) -> Optional[Future]:
        """
        Queue an exchange for recording and return immediately.

        Returns:
            The Future of the queued task, or None if the exchange was dropped
        """
        if not response.is_success:
            return None
        return self._queue(f"{request.method} {request.path}", self._run, request, response)

    def _run_deferred(self, build: ExchangeBuilder, label: str) -> bool:
        try:
            request, response = build()
            return self.registry.record(request, response)
        except Exception:
            log.exception(f"Error recording {label}")
            return False

    def submit_deferred(self, build: ExchangeBuilder, label: str = "exchange") -> Optional[Future]:
        """
        Queue a callable that produces the exchange, so decoding happens on a worker.

        Args:
            build: Returns the (DocRequest, DocResponse) pair to record
            label: Names the exchange in log messages
        """
        return self._queue(label, self._run_deferred, build, label)

    def _queue(self, label: str, fn: Callable[..., bool], *args) -> Optional[Future]:
        try:
            future = self._get_executor().submit(fn, *args)
        except RuntimeError as e:
            # Executor already shut down
            log.warning(f"Dropping {label}: {e}")
            return None

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._discard)
        return future

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for every queued exchange to finish."""
        with self._lock:
            pending = list(self._pending)
        for future in pending:
            future.exception(timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)
