"""Bounded fan-out over independent documents."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")

_MAX_WORKERS = 8


def default_workers() -> int:
    return min(_MAX_WORKERS, (os.cpu_count() or 1) + 4)


def map_documents(
    func: Callable[[T], R],
    items: Iterable[T],
    *,
    max_workers: Optional[int] = None,
) -> List[R]:
    """Apply `func` to every item on a thread pool; results keep input order."""
    pending = list(items)
    if not pending:
        return []
    workers = max(1, min(max_workers or default_workers(), len(pending)))
    if workers == 1:
        return [func(item) for item in pending]
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="convkit") as pool:
        return list(pool.map(func, pending))


__all__ = ["default_workers", "map_documents"]
