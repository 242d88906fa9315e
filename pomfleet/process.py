"""Synchronous external-command runner.

Every git invocation in pomfleet goes through `run_process`, which captures text output and
turns both spawn failures and (by default) non-zero exits into `ProcessError`. There is no
retry and no timeout: a child that never exits blocks the calling thread, and with it the
phase that is waiting on that thread.
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .errors import ProcessError


@dataclass(frozen=True)
class ProcessResult:
    stdout: str
    exit_code: int


def run_process(argv: Sequence[str], *, cwd: Path, check: bool = True) -> ProcessResult:
    """Run `argv` in `cwd` and return its stdout and exit code.

    With `check=False` a non-zero exit is returned instead of raised; spawn failures
    always raise.
    """
    try:
        p = subprocess.run(
            list(argv),
            cwd=str(cwd),
            text=True,
            check=False,
            capture_output=True,
        )
    except OSError as exc:
        raise ProcessError(argv, str(exc), None) from exc

    if check and p.returncode != 0:
        raise ProcessError(argv, p.stderr or p.stdout or "", p.returncode)
    return ProcessResult(stdout=p.stdout, exit_code=p.returncode)
