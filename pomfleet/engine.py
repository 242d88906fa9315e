"""pomfleet engine: discover -> collect -> plan -> apply, driven by one JSON fleet snapshot.

This module wires the phases together around a frozen `FleetConfig` resolved once by the
CLI. Every phase loads `.pomfleet/config.json`, does its work, and saves the snapshot again,
so an interrupted run can simply be repeated.

Phases
1. Refresh
  - List the root (`pomfleet.inventory.discover`); a root that cannot be listed raises
    `DiscoveryError`, which is the only error that ends a run.
  - Merge newly discovered checkouts into the snapshot as selected records.
  - Collect branch / dirty / declared versions for every selected repository concurrently
    (`pomfleet.collector.StateCollector`), sort records by name, save.

2. Plan
  - For each selected repository, decide branch and version actions against the target
    (`pomfleet.planner.plan_fleet`). Planning runs git existence checks but never mutates.

3. Apply
  - Execute the plans concurrently (`pomfleet.executor.Executor.apply_fleet`), write every
    returned record back into the snapshot, sort, save. Repositories that failed keep
    whatever state the executor could confirm, and their errors are in the run log.

4. Commit
  - Stage the descriptor and commit in every dirty selected repository, refresh dirty flags,
    save.

Each phase returns a `PhaseReport` holding the snapshot, the phase's `RunLog`, the
per-repository outcomes (apply/commit) and the elapsed wall time. Progress lines go to
stderr prefixed with `[pomfleet]`.

Concurrency
The worker cap comes from `FleetConfig.max_workers`; None means one worker per repository.
A hung git process blocks its phase indefinitely, because no phase has a timeout.
"""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass, field
from pathlib import Path

from .collector import DESCRIPTOR_NAME, StateCollector
from .descriptor import CONTEXT_LINES
from .executor import DEFAULT_COMMIT_MESSAGE, Executor, RepoOutcome
from .fleet import FleetSnapshot, RepoRecord
from .git_ops import GitClient
from .inventory import discover, merge_discovered
from .planner import Plan, plan_fleet
from .runlog import RunLog


@dataclass(frozen=True)
class FleetConfig:
    root: Path
    git: GitClient
    descriptor_name: str = DESCRIPTOR_NAME
    context_lines: int = CONTEXT_LINES
    max_workers: int | None = None

    @property
    def state_dir(self) -> Path:
        return self.root / ".pomfleet"

    @property
    def snapshot_path(self) -> Path:
        return self.state_dir / "config.json"


@dataclass
class PhaseReport:
    snapshot: FleetSnapshot
    run_log: RunLog
    outcomes: list[RepoOutcome] = field(default_factory=list)
    elapsed_ms: int = 0

    @property
    def failed(self) -> list[RepoOutcome]:
        return [o for o in self.outcomes if not o.ok]


class FleetEngine:
    def __init__(self, cfg: FleetConfig) -> None:
        self.cfg = cfg

    def load(self) -> FleetSnapshot:
        return FleetSnapshot.load_or_init(self.cfg.snapshot_path)

    def save(self, snapshot: FleetSnapshot) -> None:
        snapshot.save(self.cfg.snapshot_path)

    def refresh(self) -> PhaseReport:
        started = time.monotonic()
        names = discover(self.cfg.root)
        snapshot = self.load()
        added = merge_discovered(snapshot, names)
        if added:
            print(f"[pomfleet] discovered: {', '.join(sorted(added))}", file=sys.stderr)

        run_log = RunLog()
        selected = snapshot.selected()
        print(f"[pomfleet] collecting: repos={len(selected)}", file=sys.stderr)
        collector = StateCollector(
            root=self.cfg.root,
            git=self.cfg.git,
            run_log=run_log,
            descriptor_name=self.cfg.descriptor_name,
            context=self.cfg.context_lines,
            max_workers=self.cfg.max_workers,
        )
        snapshot.repos = collector.collect_fleet(snapshot.repos)
        snapshot.sort_by_name()
        self.save(snapshot)
        return self._report(snapshot, run_log, [], started, phase="reloaded")

    def plan(self, snapshot: FleetSnapshot | None = None) -> tuple[FleetSnapshot, list[tuple[RepoRecord, Plan]], RunLog]:
        snapshot = snapshot if snapshot is not None else self.load()
        run_log = RunLog()
        planned = plan_fleet(
            snapshot.repos,
            snapshot.target,
            git=self.cfg.git,
            root=self.cfg.root,
            run_log=run_log,
        )
        return snapshot, planned, run_log

    def apply(self) -> PhaseReport:
        started = time.monotonic()
        snapshot, planned, run_log = self.plan()
        pending = [(record, plan) for record, plan in planned if not plan.is_noop()]
        print(f"[pomfleet] applying: repos={len(planned)} changes={len(pending)}", file=sys.stderr)

        executor = self._executor(run_log)
        outcomes = executor.apply_fleet(planned, snapshot.target)
        for outcome in outcomes:
            snapshot.replace(outcome.record)
        snapshot.sort_by_name()
        self.save(snapshot)
        return self._report(snapshot, run_log, outcomes, started, phase="applied")

    def commit(self, *, message: str = DEFAULT_COMMIT_MESSAGE) -> PhaseReport:
        started = time.monotonic()
        snapshot = self.load()
        run_log = RunLog()
        print(f"[pomfleet] committing: repos={len(snapshot.selected())}", file=sys.stderr)

        outcomes = self._executor(run_log).commit_fleet(snapshot.repos, message=message)
        for outcome in outcomes:
            snapshot.replace(outcome.record)
        self.save(snapshot)
        return self._report(snapshot, run_log, outcomes, started, phase="committed")

    def set_target(
        self,
        *,
        branch: str | None = None,
        version: str | None = None,
        parent_version: str | None = None,
        name_prefix: str | None = None,
    ) -> FleetSnapshot:
        """Update the given target fields; None leaves a field alone, "" clears it."""
        snapshot = self.load()
        target = snapshot.target
        if branch is not None:
            target.branch = branch.strip()
        if version is not None:
            target.version = version.strip()
        if parent_version is not None:
            target.parent_version = parent_version.strip()
        if name_prefix is not None:
            target.name_prefix = name_prefix
        self.save(snapshot)
        return snapshot

    def set_selected(self, names: list[str], *, selected: bool, all_repos: bool = False) -> FleetSnapshot:
        snapshot = self.load()
        records = snapshot.repos if all_repos else [snapshot.get(n) for n in names]
        for record in records:
            record.selected = selected
        self.save(snapshot)
        return snapshot

    def _executor(self, run_log: RunLog) -> Executor:
        return Executor(
            root=self.cfg.root,
            git=self.cfg.git,
            run_log=run_log,
            descriptor_name=self.cfg.descriptor_name,
            max_workers=self.cfg.max_workers,
        )

    def _report(
        self,
        snapshot: FleetSnapshot,
        run_log: RunLog,
        outcomes: list[RepoOutcome],
        started: float,
        *,
        phase: str,
    ) -> PhaseReport:
        elapsed_ms = int((time.monotonic() - started) * 1000)
        failed = sum(1 for o in outcomes if not o.ok)
        print(f"[pomfleet] {phase} in {elapsed_ms}ms failed={failed}", file=sys.stderr)
        return PhaseReport(snapshot=snapshot, run_log=run_log, outcomes=outcomes, elapsed_ms=elapsed_ms)
