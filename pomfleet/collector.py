"""Concurrent per-repository state collection.

For every selected repository the collector runs three independent sub-fetches at once:

- branch: `git rev-parse --abbrev-ref HEAD`
- status: `git status --porcelain` (dirty when non-empty)
- version: the numbered descriptor search in `pomfleet.descriptor`, which yields the declared
  version and parent version together with their line numbers

Each sub-fetch logs its own failure (or, on success, its elapsed time) to the shared
`RunLog` and returns None instead of raising, so one failing query never hides the other two
and one failing repository never hides the rest of the fleet. A field whose fetch failed
keeps the value it had before the pass.

Sub-fetch results are applied to a copy of the record only after all three have joined, so
each record is written by exactly one thread.
"""

from __future__ import annotations

import dataclasses
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from .descriptor import CONTEXT_LINES, DeclaredVersions, read_declarations
from .errors import DescriptorError, ProcessError
from .fanout import fan_out
from .fleet import RepoRecord
from .git_ops import GitClient
from .runlog import RunLog

DESCRIPTOR_NAME = "pom.xml"


class StateCollector:
    def __init__(
        self,
        *,
        root: Path,
        git: GitClient,
        run_log: RunLog,
        descriptor_name: str = DESCRIPTOR_NAME,
        context: int = CONTEXT_LINES,
        max_workers: int | None = None,
    ) -> None:
        self.root = root
        self.git = git
        self.run_log = run_log
        self.descriptor_name = descriptor_name
        self.context = context
        self.max_workers = max_workers

    def collect_fleet(self, records: list[RepoRecord]) -> list[RepoRecord]:
        """Collect every selected record; unselected records are returned as they are."""
        selected = [r for r in records if r.selected]
        collected = fan_out(selected, self.collect, max_workers=self.max_workers, name="collect")
        by_name = {r.name: r for r in collected}
        return [by_name.get(r.name, r) for r in records]

    def collect(self, record: RepoRecord) -> RepoRecord:
        repo_path = self.root / record.name
        with ThreadPoolExecutor(max_workers=3, thread_name_prefix=f"collect-{record.name}") as pool:
            branch_f = pool.submit(self._fetch_branch, record.name, repo_path)
            dirty_f = pool.submit(self._fetch_dirty, record.name, repo_path)
            decl_f = pool.submit(self._fetch_declarations, record.name, repo_path)
        branch = branch_f.result()
        dirty = dirty_f.result()
        declared = decl_f.result()

        updated = dataclasses.replace(record, extra=dict(record.extra))
        if branch is not None:
            updated.branch = branch
        if dirty is not None:
            updated.dirty = dirty
        if declared is not None:
            self._apply_declarations(updated, declared)
        return updated

    def _fetch_branch(self, name: str, repo_path: Path) -> str | None:
        started = time.monotonic()
        try:
            branch = self.git.current_branch(cwd=repo_path)
        except ProcessError as exc:
            self.run_log.append(f"failed to get branch for {name}, err={exc}")
            return None
        self.run_log.elapsed(f"{name}-branch", started)
        return branch

    def _fetch_dirty(self, name: str, repo_path: Path) -> bool | None:
        started = time.monotonic()
        try:
            dirty = self.git.is_dirty(cwd=repo_path)
        except ProcessError as exc:
            self.run_log.append(f"failed to get status for {name}, err={exc}")
            return None
        self.run_log.elapsed(f"{name}-status", started)
        return dirty

    def _fetch_declarations(self, name: str, repo_path: Path) -> DeclaredVersions | None:
        started = time.monotonic()
        try:
            declared = read_declarations(repo_path / self.descriptor_name, name, context=self.context)
        except DescriptorError as exc:
            self.run_log.append(f"failed to get mvn version for {name}, err={exc}")
            return None
        self.run_log.elapsed(f"{name}-version", started)
        return declared

    def _apply_declarations(self, record: RepoRecord, declared: DeclaredVersions) -> None:
        if declared.version is None:
            self.run_log.append(f"no version declaration for {record.name} in {self.descriptor_name}")
        else:
            record.version = declared.version.value
            record.version_line = declared.version.line_number
        if declared.parent_version is None:
            self.run_log.append(f"no parent version declaration for {record.name} in {self.descriptor_name}")
        else:
            record.parent_version = declared.parent_version.value
            record.parent_version_line = declared.parent_version.line_number
