from __future__ import annotations

from pathlib import Path

import pytest

from pomfleet.collector import StateCollector
from pomfleet.errors import ProcessError
from pomfleet.fleet import RepoRecord
from pomfleet.runlog import RunLog

POM_TEMPLATE = """<project>
  <parent>
    <groupId>com.example</groupId>
    <artifactId>example-parent</artifactId>
    <version>{parent}</version>
  </parent>
  <artifactId>{name}</artifactId>
  <version>{version}</version>
</project>
"""


class FakeGit:
    def __init__(self) -> None:
        self.branches: dict[str, str] = {}
        self.statuses: dict[str, str] = {}
        self.fail: set[tuple[str, str]] = set()
        self.calls: list[tuple[str, str]] = []

    def _check(self, op: str, cwd: Path) -> None:
        self.calls.append((op, cwd.name))
        if (op, cwd.name) in self.fail:
            raise ProcessError(["git", op], "boom", 1)

    def current_branch(self, *, cwd: Path) -> str:
        self._check("branch", cwd)
        return self.branches.get(cwd.name, "main")

    def is_dirty(self, *, cwd: Path) -> bool:
        self._check("status", cwd)
        return self.statuses.get(cwd.name, "") != ""


def _repo(root: Path, name: str, *, version: str = "1.0.0", parent: str = "9", pom: str | None = None) -> None:
    repo = root / name
    (repo / ".git").mkdir(parents=True)
    text = pom if pom is not None else POM_TEMPLATE.format(name=name, version=version, parent=parent)
    (repo / "pom.xml").write_text(text, encoding="utf-8")


def _collector(root: Path, git: FakeGit, run_log: RunLog) -> StateCollector:
    return StateCollector(root=root, git=git, run_log=run_log)  # type: ignore[arg-type]


def test_collect_populates_branch_dirty_and_declared_versions(tmp_path: Path) -> None:
    _repo(tmp_path, "svc-a", version="1.2.0-SNAPSHOT", parent="3.1")
    git = FakeGit()
    git.branches["svc-a"] = "develop"
    git.statuses["svc-a"] = " M pom.xml\n"
    run_log = RunLog()

    record = _collector(tmp_path, git, run_log).collect(RepoRecord(name="svc-a", extra={"k": 1}))

    assert record.branch == "develop"
    assert record.dirty is True
    assert (record.version, record.version_line) == ("1.2.0-SNAPSHOT", 8)
    assert (record.parent_version, record.parent_version_line) == ("3.1", 5)
    assert record.extra == {"k": 1}
    labels = sorted(line.split(":")[0] for line in run_log.lines())
    assert labels == ["svc-a-branch", "svc-a-status", "svc-a-version"]


def test_collect_isolates_a_failed_branch_query(tmp_path: Path) -> None:
    _repo(tmp_path, "svc-a", version="2.0")
    git = FakeGit()
    git.fail.add(("branch", "svc-a"))
    run_log = RunLog()

    before = RepoRecord(name="svc-a", branch="old-branch")
    record = _collector(tmp_path, git, run_log).collect(before)

    assert record.branch == "old-branch"
    assert record.dirty is False
    assert record.version == "2.0"
    assert any(line.startswith("failed to get branch for svc-a, err=") for line in run_log.lines())
    assert before.version == ""


def test_collect_keeps_previous_versions_when_descriptor_is_missing(tmp_path: Path) -> None:
    (tmp_path / "svc-a" / ".git").mkdir(parents=True)
    run_log = RunLog()
    before = RepoRecord(name="svc-a", version="1.0", version_line=4, parent_version="9", parent_version_line=2)

    record = _collector(tmp_path, FakeGit(), run_log).collect(before)

    assert (record.version, record.version_line) == ("1.0", 4)
    assert (record.parent_version, record.parent_version_line) == ("9", 2)
    assert any(line.startswith("failed to get mvn version for svc-a") for line in run_log.lines())


def test_collect_logs_missing_parent_declaration_without_failing(tmp_path: Path) -> None:
    _repo(
        tmp_path,
        "svc-a",
        pom="<project>\n  <artifactId>svc-a</artifactId>\n  <version>4.0</version>\n</project>\n",
    )
    run_log = RunLog()

    record = _collector(tmp_path, FakeGit(), run_log).collect(RepoRecord(name="svc-a", parent_version="old"))

    assert (record.version, record.version_line) == ("4.0", 3)
    assert record.parent_version == "old"
    assert "no parent version declaration for svc-a in pom.xml" in run_log.lines()
    assert not any(line.startswith("failed") for line in run_log.lines())


def test_collect_fleet_skips_unselected_and_keeps_order(tmp_path: Path) -> None:
    for name in ("svc-c", "svc-a", "svc-b"):
        _repo(tmp_path, name)
    git = FakeGit()
    run_log = RunLog()
    records = [
        RepoRecord(name="svc-c"),
        RepoRecord(name="svc-a", selected=False, branch="stale"),
        RepoRecord(name="svc-b"),
    ]

    collected = _collector(tmp_path, git, run_log).collect_fleet(records)

    assert [r.name for r in collected] == ["svc-c", "svc-a", "svc-b"]
    assert collected[1] is records[1]
    assert collected[0].branch == "main"
    assert collected[2].version == "1.0.0"
    assert {name for _, name in git.calls} == {"svc-b", "svc-c"}


def test_collect_fleet_with_nothing_selected_logs_nothing(tmp_path: Path) -> None:
    run_log = RunLog()

    assert _collector(tmp_path, FakeGit(), run_log).collect_fleet([]) == []
    assert run_log.text() == ""


@pytest.mark.parametrize("failing", ["branch", "status"])
def test_one_failing_repository_does_not_hide_others(tmp_path: Path, failing: str) -> None:
    _repo(tmp_path, "bad")
    _repo(tmp_path, "good", version="7.0")
    git = FakeGit()
    git.fail.add((failing, "bad"))
    run_log = RunLog()

    collected = _collector(tmp_path, git, run_log).collect_fleet([RepoRecord(name="bad"), RepoRecord(name="good")])

    assert collected[1].version == "7.0"
    assert collected[1].branch == "main"
    failures = [line for line in run_log.lines() if line.startswith("failed")]
    assert len(failures) == 1
    assert "bad" in failures[0]
