"""Git operations for pomfleet.

`GitClient` is the narrow VCS surface the engine depends on. Every method maps to a single
git command run through `pomfleet.process.run_process`, so callers can reason about side
effects one call at a time.

GitClient API (public methods)
- `current_branch(cwd=...) -> str`
  `git rev-parse --abbrev-ref HEAD`, stripped. A detached HEAD is reported as `"HEAD"`
  rather than raised; the fleet view simply shows it.
- `branch_exists(branch, cwd=...) -> bool`
  `git rev-parse --verify --quiet <branch>`; true on exit code 0. Only spawn failures raise.
- `switch(branch, cwd=...) -> None` / `create_branch(branch, cwd=...) -> None`
  `git switch <branch>` and `git switch -c <branch>`.
- `status(cwd=...) -> str` / `is_dirty(cwd=...) -> bool`
  `git status --porcelain`; dirty when the output is non-empty.
- `add(path, cwd=...) -> None` / `commit(message, cwd=...) -> None`
  `git add <path>` and `git commit -m <message>`.

Side effects and safety notes
- `switch`, `create_branch`, `add` and `commit` mutate the checkout at `cwd`.
- Failures surface as `pomfleet.errors.ProcessError`; callers in the collector and executor
  catch them per repository.
- The git executable is configurable (`executable=`) so a non-PATH git can be used without
  touching process-wide state.
"""

from __future__ import annotations

from pathlib import Path

from .process import run_process


class GitClient:
    def __init__(self, *, executable: str = "git") -> None:
        self.executable = executable

    def current_branch(self, *, cwd: Path) -> str:
        return self._git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd).strip()

    def branch_exists(self, branch: str, *, cwd: Path) -> bool:
        result = run_process(
            [self.executable, "rev-parse", "--verify", "--quiet", branch],
            cwd=cwd,
            check=False,
        )
        return result.exit_code == 0

    def switch(self, branch: str, *, cwd: Path) -> None:
        self._git(["switch", branch], cwd=cwd)

    def create_branch(self, branch: str, *, cwd: Path) -> None:
        self._git(["switch", "-c", branch], cwd=cwd)

    def status(self, *, cwd: Path) -> str:
        return self._git(["status", "--porcelain"], cwd=cwd)

    def is_dirty(self, *, cwd: Path) -> bool:
        return self.status(cwd=cwd) != ""

    def add(self, path: str, *, cwd: Path) -> None:
        self._git(["add", path], cwd=cwd)

    def commit(self, message: str, *, cwd: Path) -> None:
        self._git(["commit", "-m", message], cwd=cwd)

    def _git(self, args: list[str], *, cwd: Path) -> str:
        return run_process([self.executable, *args], cwd=cwd).stdout
