"""Exception types shared across pomfleet.

Phase-level errors (`DiscoveryError`) end a run. Everything raised below a repository task
(`ProcessError`, `DescriptorError`, and the `RepoStepError` family) is caught by the owning
task, written to the run log, and never escapes the phase barrier.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class PomfleetError(Exception):
    """Base class for pomfleet errors."""


class DiscoveryError(PomfleetError):
    """The fleet root could not be listed."""

    def __init__(self, root: Path, reason: str) -> None:
        self.root = root
        self.reason = reason
        super().__init__(f"cannot list repositories under {root}: {reason}")


class ProcessError(PomfleetError):
    """An external command could not be spawned or exited non-zero.

    `exit_code` is None when the process never started.
    """

    def __init__(self, command: Sequence[str], stderr: str, exit_code: int | None) -> None:
        self.command = list(command)
        self.stderr = stderr
        self.exit_code = exit_code
        detail = stderr.strip() or "no output"
        if exit_code is None:
            super().__init__(f"{' '.join(self.command)} could not start: {detail}")
        else:
            super().__init__(f"{' '.join(self.command)} exited {exit_code}: {detail}")


class DescriptorError(PomfleetError):
    """The descriptor could not be read, or a numbered search hit was malformed."""


class PatchPositionStale(DescriptorError):
    """The recorded line no longer holds the version element it was collected from."""

    def __init__(self, path: Path, line_number: int | None, found: str | None) -> None:
        self.path = path
        self.line_number = line_number
        self.found = found
        if line_number is None:
            msg = f"{path}: no recorded line number; refresh before patching"
        elif found is None:
            msg = f"{path}: line {line_number} is out of range; refresh before patching"
        else:
            msg = f"{path}: line {line_number} no longer matches the collected version: {found.strip()!r}"
        super().__init__(msg)


class RepoStepError(PomfleetError):
    """A reconciliation sub-step failed for one repository."""

    step = "step"

    def __init__(self, repo: str, cause: Exception) -> None:
        self.repo = repo
        self.cause = cause
        super().__init__(f"{repo}: {self.step} failed: {cause}")


class BranchSwitchError(RepoStepError):
    step = "branch switch"


class BranchCreateError(RepoStepError):
    step = "branch create"


class VersionPatchError(RepoStepError):
    step = "version patch"


class ParentVersionPatchError(RepoStepError):
    step = "parent version patch"


class StatusQueryError(RepoStepError):
    step = "status query"


class CommitError(RepoStepError):
    step = "commit"
