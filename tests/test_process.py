from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from pomfleet import process
from pomfleet.errors import ProcessError
from pomfleet.process import ProcessResult, run_process


def test_run_process_returns_stdout_and_exit_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict[str, object]] = []

    def fake_run(cmd: list[str], **kwargs: object) -> SimpleNamespace:
        calls.append({"cmd": cmd, **kwargs})
        return SimpleNamespace(returncode=0, stdout="main\n", stderr="")

    monkeypatch.setattr(process.subprocess, "run", fake_run)

    result = run_process(["git", "rev-parse", "--abbrev-ref", "HEAD"], cwd=tmp_path)

    assert result == ProcessResult(stdout="main\n", exit_code=0)
    assert calls == [
        {
            "cmd": ["git", "rev-parse", "--abbrev-ref", "HEAD"],
            "cwd": str(tmp_path),
            "text": True,
            "check": False,
            "capture_output": True,
        }
    ]


def test_run_process_raises_on_non_zero_exit(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        process.subprocess,
        "run",
        lambda cmd, **kwargs: SimpleNamespace(returncode=128, stdout="", stderr="fatal: not a git repository\n"),
    )

    with pytest.raises(ProcessError) as exc:
        run_process(["git", "status"], cwd=tmp_path)

    assert exc.value.command == ["git", "status"]
    assert exc.value.exit_code == 128
    assert "not a git repository" in exc.value.stderr
    assert "exited 128" in str(exc.value)


def test_run_process_unchecked_returns_non_zero_exit(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        process.subprocess,
        "run",
        lambda cmd, **kwargs: SimpleNamespace(returncode=1, stdout="", stderr=""),
    )

    assert run_process(["git", "rev-parse", "--verify", "x"], cwd=tmp_path, check=False).exit_code == 1


def test_run_process_wraps_spawn_failures(tmp_path: Path) -> None:
    with pytest.raises(ProcessError) as exc:
        run_process(["pomfleet-definitely-not-a-real-binary"], cwd=tmp_path, check=False)

    assert exc.value.exit_code is None
    assert "could not start" in str(exc.value)


def test_run_process_wraps_missing_working_directory(tmp_path: Path) -> None:
    with pytest.raises(ProcessError) as exc:
        run_process(["git", "status"], cwd=tmp_path / "gone")

    assert exc.value.exit_code is None
