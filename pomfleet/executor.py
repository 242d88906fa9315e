"""Concurrent reconciliation of each repository toward the fleet target.

`Executor.apply(plan, record, target)` runs the ordered sub-steps for one repository:

1. Branch: `git switch <branch>` (SWITCH) or `git switch -c <branch>` (CREATE).
2. Version: validated single-line patch at `record.version_line`.
3. Parent version: validated single-line patch at `record.parent_version_line`.
4. Dirty status re-query.

Each sub-step runs whether or not the previous one failed, and every failure is turned into
a `RepoStepError` subclass, appended to the run log and returned in the `RepoOutcome`; none
is raised. Steps 1-3 also log their elapsed time (`<name>-git`, `<name>-ver`,
`<name>-pver`). A successful step updates the returned copy of the record (branch, version,
parent version), so the snapshot saved afterwards reflects what is on disk.

`apply_fleet` runs `apply` once per planned repository through `fan_out`, joined before it
returns. `commit` / `commit_fleet` stage the descriptor and commit it where the working tree
is dirty, then refresh the dirty flag.

Patching never trusts a line number blindly: `pomfleet.descriptor.patch_version_line`
re-reads the file and refuses to write (PatchPositionStale) if the recorded line no longer
holds the version collected from it.
"""

from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass, field
from pathlib import Path

from .collector import DESCRIPTOR_NAME
from .descriptor import patch_version_line
from .errors import (
    BranchCreateError,
    BranchSwitchError,
    CommitError,
    DescriptorError,
    ParentVersionPatchError,
    ProcessError,
    RepoStepError,
    StatusQueryError,
    VersionPatchError,
)
from .fanout import fan_out
from .fleet import FleetTarget, RepoRecord
from .git_ops import GitClient
from .planner import BranchAction, PatchAction, Plan
from .runlog import RunLog

DEFAULT_COMMIT_MESSAGE = "update pom version"


@dataclass
class RepoOutcome:
    record: RepoRecord
    errors: list[RepoStepError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class Executor:
    def __init__(
        self,
        *,
        root: Path,
        git: GitClient,
        run_log: RunLog,
        descriptor_name: str = DESCRIPTOR_NAME,
        max_workers: int | None = None,
    ) -> None:
        self.root = root
        self.git = git
        self.run_log = run_log
        self.descriptor_name = descriptor_name
        self.max_workers = max_workers

    def apply_fleet(self, planned: list[tuple[RepoRecord, Plan]], target: FleetTarget) -> list[RepoOutcome]:
        return fan_out(
            planned,
            lambda pair: self.apply(pair[1], pair[0], target),
            max_workers=self.max_workers,
            name="apply",
        )

    def apply(self, plan: Plan, record: RepoRecord, target: FleetTarget) -> RepoOutcome:
        outcome = RepoOutcome(record=dataclasses.replace(record, extra=dict(record.extra)))
        repo = outcome.record
        repo_path = self.root / repo.name

        if plan.branch_action != BranchAction.NONE:
            started = time.monotonic()
            try:
                if plan.branch_action == BranchAction.SWITCH:
                    self.git.switch(target.branch, cwd=repo_path)
                else:
                    self.git.create_branch(target.branch, cwd=repo_path)
            except ProcessError as exc:
                error_cls = BranchSwitchError if plan.branch_action == BranchAction.SWITCH else BranchCreateError
                self._fail(outcome, error_cls(repo.name, exc))
            else:
                repo.branch = target.branch
            self.run_log.elapsed(f"{repo.name}-git", started)

        if plan.version_action == PatchAction.PATCH:
            started = time.monotonic()
            try:
                patch_version_line(
                    repo_path / self.descriptor_name,
                    repo.version_line,
                    target.version,
                    expected=repo.version,
                )
            except DescriptorError as exc:
                self._fail(outcome, VersionPatchError(repo.name, exc))
            else:
                repo.version = target.version
            self.run_log.elapsed(f"{repo.name}-ver", started)

        if plan.parent_version_action == PatchAction.PATCH:
            started = time.monotonic()
            try:
                patch_version_line(
                    repo_path / self.descriptor_name,
                    repo.parent_version_line,
                    target.parent_version,
                    expected=repo.parent_version,
                )
            except DescriptorError as exc:
                self._fail(outcome, ParentVersionPatchError(repo.name, exc))
            else:
                repo.parent_version = target.parent_version
            self.run_log.elapsed(f"{repo.name}-pver", started)

        self._refresh_dirty(outcome, repo_path)
        return outcome

    def commit_fleet(self, records: list[RepoRecord], *, message: str = DEFAULT_COMMIT_MESSAGE) -> list[RepoOutcome]:
        selected = [r for r in records if r.selected]
        return fan_out(
            selected,
            lambda r: self.commit(r, message=message),
            max_workers=self.max_workers,
            name="commit",
        )

    def commit(self, record: RepoRecord, *, message: str = DEFAULT_COMMIT_MESSAGE) -> RepoOutcome:
        outcome = RepoOutcome(record=dataclasses.replace(record, extra=dict(record.extra)))
        repo = outcome.record
        repo_path = self.root / repo.name

        try:
            status = self.git.status(cwd=repo_path)
        except ProcessError as exc:
            self._fail(outcome, StatusQueryError(repo.name, exc))
            return outcome
        if not status:
            repo.dirty = False
            self.run_log.append(f"{repo.name}: nothing to commit")
            return outcome

        started = time.monotonic()
        try:
            self.git.add(self.descriptor_name, cwd=repo_path)
            self.git.commit(message, cwd=repo_path)
        except ProcessError as exc:
            self._fail(outcome, CommitError(repo.name, exc))
        self.run_log.elapsed(f"{repo.name}-commit", started)

        self._refresh_dirty(outcome, repo_path)
        return outcome

    def _refresh_dirty(self, outcome: RepoOutcome, repo_path: Path) -> None:
        try:
            outcome.record.dirty = self.git.is_dirty(cwd=repo_path)
        except ProcessError as exc:
            self._fail(outcome, StatusQueryError(outcome.record.name, exc))

    def _fail(self, outcome: RepoOutcome, error: RepoStepError) -> None:
        outcome.errors.append(error)
        self.run_log.append(str(error))
