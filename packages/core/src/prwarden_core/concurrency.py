"""Bounded concurrency for model calls and GitHub calls.

Two independent limits apply during a run: file tasks fan out over a thread
pool sized for the model service, and every GitHub call made from inside
those tasks goes through a shared semaphore sized for the GitHub API.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class ConcurrencyLimit:
    """Context manager capping the number of in-flight calls.

    ``limit=None`` (or 0) means unbounded.
    """

    def __init__(self, limit: int | None = None):
        self.limit = limit
        self._semaphore = threading.BoundedSemaphore(limit) if limit else None

    def __enter__(self):
        if self._semaphore is not None:
            self._semaphore.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._semaphore is not None:
            self._semaphore.release()
        return False

    def __call__(self, fn: Callable[..., R], *args, **kwargs) -> R:
        with self:
            return fn(*args, **kwargs)


def run_bounded(
    fn: Callable[[T], R],
    items: Iterable[T],
    max_workers: int,
    label: str = "task",
    reraise: tuple[type[BaseException], ...] = (),
) -> list[R | None]:
    """Run ``fn`` over ``items`` with at most ``max_workers`` in flight.

    Results keep the input order. An item whose call raises is logged and
    yields None so the other items still complete; exceptions listed in
    ``reraise`` propagate instead.
    """
    items = list(items)
    if not items:
        return []

    def _guarded(item: T) -> R | None:
        try:
            return fn(item)
        except reraise:
            raise
        except Exception as e:
            logger.warning("%s failed for %r: %s", label, item, e)
            return None

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        return list(executor.map(_guarded, items))
