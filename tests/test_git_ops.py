from __future__ import annotations

from pathlib import Path

import pytest

from pomfleet import git_ops
from pomfleet.errors import ProcessError
from pomfleet.process import ProcessResult


def _recorder(
    monkeypatch: pytest.MonkeyPatch,
    *,
    stdout: str = "",
    exit_code: int = 0,
) -> list[tuple[list[str], Path, bool]]:
    calls: list[tuple[list[str], Path, bool]] = []

    def fake_run(argv: list[str], *, cwd: Path, check: bool = True) -> ProcessResult:
        calls.append((list(argv), cwd, check))
        return ProcessResult(stdout=stdout, exit_code=exit_code)

    monkeypatch.setattr(git_ops, "run_process", fake_run)
    return calls


def test_current_branch_strips_output(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _recorder(monkeypatch, stdout="feature/x\n")

    assert git_ops.GitClient().current_branch(cwd=tmp_path) == "feature/x"
    assert calls == [(["git", "rev-parse", "--abbrev-ref", "HEAD"], tmp_path, True)]


def test_current_branch_reports_detached_head_as_head(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _recorder(monkeypatch, stdout="HEAD\n")

    assert git_ops.GitClient().current_branch(cwd=tmp_path) == "HEAD"


@pytest.mark.parametrize(
    ("exit_code", "expected"),
    [
        (0, True),
        (1, False),
        (128, False),
    ],
)
def test_branch_exists_uses_rev_parse_verify_and_exit_code(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, exit_code: int, expected: bool
) -> None:
    calls = _recorder(monkeypatch, exit_code=exit_code)

    assert git_ops.GitClient().branch_exists("release/2.0", cwd=tmp_path) is expected
    assert calls == [(["git", "rev-parse", "--verify", "--quiet", "release/2.0"], tmp_path, False)]


@pytest.mark.parametrize(
    ("method", "args", "expected"),
    [
        ("switch", ("develop",), ["git", "switch", "develop"]),
        ("create_branch", ("release/2.0",), ["git", "switch", "-c", "release/2.0"]),
        ("add", ("pom.xml",), ["git", "add", "pom.xml"]),
        ("commit", ("update pom version",), ["git", "commit", "-m", "update pom version"]),
    ],
)
def test_mutating_commands_map_to_single_git_calls(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, method: str, args: tuple[str, ...], expected: list[str]
) -> None:
    calls = _recorder(monkeypatch)

    getattr(git_ops.GitClient(), method)(*args, cwd=tmp_path)

    assert calls == [(expected, tmp_path, True)]


@pytest.mark.parametrize(("porcelain", "dirty"), [("", False), (" M pom.xml\n", True), ("?? new.txt\n", True)])
def test_is_dirty_uses_porcelain_status(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, porcelain: str, dirty: bool
) -> None:
    calls = _recorder(monkeypatch, stdout=porcelain)

    assert git_ops.GitClient().is_dirty(cwd=tmp_path) is dirty
    assert calls == [(["git", "status", "--porcelain"], tmp_path, True)]


def test_custom_executable_is_used_for_every_call(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _recorder(monkeypatch, stdout="main\n")
    client = git_ops.GitClient(executable="/opt/git/bin/git")

    client.current_branch(cwd=tmp_path)
    client.branch_exists("main", cwd=tmp_path)

    assert [c[0][0] for c in calls] == ["/opt/git/bin/git", "/opt/git/bin/git"]


def test_process_errors_propagate(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def failing(argv: list[str], *, cwd: Path, check: bool = True) -> ProcessResult:
        raise ProcessError(argv, "fatal: invalid reference: nope", 128)

    monkeypatch.setattr(git_ops, "run_process", failing)

    with pytest.raises(ProcessError, match="invalid reference"):
        git_ops.GitClient().switch("nope", cwd=tmp_path)
