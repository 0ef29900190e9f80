"""Parallel execution helpers for the renderer."""
from __future__ import annotations

import concurrent.futures
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence, TypeVar


LOGGER = logging.getLogger("portrait_pipeline.parallel")

T = TypeVar("T")
R = TypeVar("R")


def create_thread_pool(max_workers: Optional[int] = None) -> concurrent.futures.ThreadPoolExecutor:
    """Create a thread pool executor with sane defaults."""

    return concurrent.futures.ThreadPoolExecutor(max_workers=max_workers)


def run_parallel(function: Callable[[T], R], items: Sequence[T], *, max_workers: Optional[int] = None) -> list[R]:
    """Run *function* for each element in *items* and return results in input order.

    With a single worker the items are processed inline. The first worker
    exception is re-raised.
    """

    if not items:
        return []
    if max_workers is not None and max_workers <= 1:
        return [function(item) for item in items]
    with create_thread_pool(max_workers=max_workers) as executor:
        futures = [executor.submit(function, item) for item in items]
        try:
            return [future.result() for future in futures]
        except Exception:
            LOGGER.error("Parallel worker failure, cancelling %d pending tasks", sum(not f.done() for f in futures))
            for future in futures:
                future.cancel()
            raise


def partition_rows(height: int, parts: int) -> List[slice]:
    """Split ``range(height)`` into at most *parts* contiguous row bands."""

    if height <= 0:
        return []
    parts = max(1, min(int(parts), height))
    bounds = [round(index * height / parts) for index in range(parts + 1)]
    return [slice(start, stop) for start, stop in zip(bounds, bounds[1:]) if stop > start]


@contextmanager
def limited_threads(max_workers: Optional[int]) -> Iterator[None]:
    """Context manager that logs thread usage for diagnostics."""

    LOGGER.debug("Starting thread pool with up to %s workers", max_workers)
    try:
        yield
    finally:
        LOGGER.debug("Thread pool with %s workers completed", max_workers)
