"""One-task-per-repository fan-out with a wait-all join.

`fan_out(items, task)` gives every item its own worker thread (the pool is sized to the
number of items) unless `max_workers` caps it. Results come back in input order once every
task has finished; there is no early cancellation, so one slow repository holds the whole
phase. Tasks are expected to catch and log their own per-repository failures. Anything that
still escapes is re-raised here after the pool has drained.

With N repositories and no cap, a collection pass can run up to 3N git processes at once
(each repository task fans out its own three sub-queries).
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


def pool_size(item_count: int, max_workers: int | None) -> int:
    if max_workers is None or max_workers <= 0:
        return max(1, item_count)
    return max(1, min(max_workers, item_count))


def fan_out(
    items: Sequence[T],
    task: Callable[[T], R],
    *,
    max_workers: int | None = None,
    name: str = "pomfleet",
) -> list[R]:
    if not items:
        return []
    with ThreadPoolExecutor(max_workers=pool_size(len(items), max_workers), thread_name_prefix=name) as executor:
        futures = [executor.submit(task, item) for item in items]
        return [f.result() for f in futures]
