"""Run log shared by the concurrent workers of one phase.

A `RunLog` is created empty at the start of a collection, apply or commit pass, appended to
from every worker thread, and read by the caller after the pass has joined. Appends take a
lock, so each message lands whole and exactly once regardless of how many workers write.
"""

from __future__ import annotations

import threading
import time


class RunLog:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._lines: list[str] = []

    def append(self, message: str) -> None:
        with self._lock:
            self._lines.append(message.rstrip("\n"))

    def elapsed(self, label: str, started: float) -> None:
        """Record `<label>: elapsed: <ms>ms` measured from a `time.monotonic()` start."""
        ms = int((time.monotonic() - started) * 1000)
        self.append(f"{label}: elapsed: {ms}ms")

    def lines(self) -> list[str]:
        with self._lock:
            return list(self._lines)

    def text(self) -> str:
        lines = self.lines()
        return "\n".join(lines) + "\n" if lines else ""

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)
