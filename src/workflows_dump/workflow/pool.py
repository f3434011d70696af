"""Bounded worker pool with ordered results and fail-fast semantics."""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Callable, Generic, Sequence, TypeVar

from workflows_dump.core.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Worker = Callable[[T, int, threading.Event], R]


class WorkerPool(Generic[T, R]):
    """Runs ``worker(item, index, cancel_event)`` over items with at most ``limit`` in flight.

    Results are stored by input index, so completion order never reorders them.
    The first exception escaping a worker fails the whole run: the cancel event
    is set, items that have not started are dropped, and the error is re-raised
    without waiting for in-flight siblings. Those siblings keep running until
    they return or notice the event; whatever they produce is discarded.
    """

    def __init__(self, limit: int, *, name: str = "workers") -> None:
        self._limit = max(1, int(limit))
        self._name = name

    @property
    def limit(self) -> int:
        return self._limit

    def run(self, items: Sequence[T], worker: Worker[T, R]) -> list[R]:
        if not items:
            return []
        cancel_event = threading.Event()
        results: list[R | None] = [None] * len(items)
        executor = ThreadPoolExecutor(
            max_workers=min(self._limit, len(items)),
            thread_name_prefix=self._name,
        )
        futures: dict[Future[R], int] = {
            executor.submit(worker, item, index, cancel_event): index for index, item in enumerate(items)
        }
        try:
            pending: set[Future[R]] = set(futures)
            while pending:
                done, pending = wait(pending, return_when=FIRST_EXCEPTION)
                for future in done:
                    error = future.exception()
                    if error is not None:
                        LOGGER.debug(
                            "worker_pool.aborted",
                            pool=self._name,
                            index=futures[future],
                            error=str(error),
                        )
                        cancel_event.set()
                        raise error
                    results[futures[future]] = future.result()
        finally:
            executor.shutdown(wait=not cancel_event.is_set(), cancel_futures=True)
        return results  # type: ignore[return-value]


def run_pool(items: Sequence[T], limit: int, worker: Worker[T, R]) -> list[R]:
    """Functional wrapper around WorkerPool."""
    return WorkerPool(limit).run(items, worker)
