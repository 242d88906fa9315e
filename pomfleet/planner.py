"""Reconciliation planning: what has to change for a repository to match the target.

`plan()` is a pure decision over one record and the fleet target. Its single I/O dependency,
the branch existence check, is injected as `branch_exists` and is only consulted after the
"already on that branch" short-circuit.

Decision table
- Branch: NONE when the target branch is empty or equals the record's branch; otherwise
  SWITCH when the branch already exists in that repository and CREATE when it does not.
- Version / parent version: PATCH when the target value is non-empty and differs from the
  declared value; otherwise NONE.

`plan_fleet()` plans every selected repository, single-threaded, and returns the pairs
sorted by repository name so that the apply pass, the printed plan and the saved snapshot
all see the same order.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import ProcessError
from .fleet import FleetTarget, RepoRecord
from .git_ops import GitClient
from .runlog import RunLog


class BranchAction(str, Enum):
    NONE = "none"
    SWITCH = "switch"
    CREATE = "create"


class PatchAction(str, Enum):
    NONE = "none"
    PATCH = "patch"


@dataclass(frozen=True)
class Plan:
    branch_action: BranchAction = BranchAction.NONE
    version_action: PatchAction = PatchAction.NONE
    parent_version_action: PatchAction = PatchAction.NONE

    def is_noop(self) -> bool:
        return (
            self.branch_action == BranchAction.NONE
            and self.version_action == PatchAction.NONE
            and self.parent_version_action == PatchAction.NONE
        )

    def describe(self, record: RepoRecord, target: FleetTarget) -> list[str]:
        out: list[str] = []
        if self.branch_action == BranchAction.SWITCH:
            out.append(f"switch {record.branch or '?'} -> {target.branch}")
        elif self.branch_action == BranchAction.CREATE:
            out.append(f"create {target.branch} (from {record.branch or '?'})")
        if self.version_action == PatchAction.PATCH:
            out.append(f"version {record.version or '?'} -> {target.version} (line {record.version_line})")
        if self.parent_version_action == PatchAction.PATCH:
            out.append(
                f"parent {record.parent_version or '?'} -> {target.parent_version} (line {record.parent_version_line})"
            )
        return out


def plan(record: RepoRecord, target: FleetTarget, *, branch_exists: Callable[[str], bool]) -> Plan:
    branch_action = BranchAction.NONE
    if target.branch and target.branch != record.branch:
        branch_action = BranchAction.SWITCH if branch_exists(target.branch) else BranchAction.CREATE

    return Plan(
        branch_action=branch_action,
        version_action=_patch_action(record.version, target.version),
        parent_version_action=_patch_action(record.parent_version, target.parent_version),
    )


def plan_fleet(
    records: Iterable[RepoRecord],
    target: FleetTarget,
    *,
    git: GitClient,
    root: Path,
    run_log: RunLog,
) -> list[tuple[RepoRecord, Plan]]:
    planned: list[tuple[RepoRecord, Plan]] = []
    for record in sorted((r for r in records if r.selected), key=lambda r: r.name):
        exists = _existence_check(git, root / record.name, record.name, run_log)
        planned.append((record, plan(record, target, branch_exists=exists)))
    return planned


def _patch_action(declared: str, wanted: str) -> PatchAction:
    if wanted and wanted != declared:
        return PatchAction.PATCH
    return PatchAction.NONE


def _existence_check(git: GitClient, repo_path: Path, name: str, run_log: RunLog) -> Callable[[str], bool]:
    def exists(branch: str) -> bool:
        try:
            return git.branch_exists(branch, cwd=repo_path)
        except ProcessError as exc:
            # Unknown existence is treated as "missing", which leads to a create attempt.
            run_log.append(f"failed to check branch {branch} for {name}, err={exc}")
            return False

    return exists
