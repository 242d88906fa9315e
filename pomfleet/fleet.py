"""pomfleet.fleet

This module defines the fleet snapshot persisted at `.pomfleet/config.json`: one record per
repository checkout plus the single target every selected repository is reconciled toward.

On-disk shape
- Top-level object:
  - `repos` (array[object]): one entry per repository, see below.
  - `target` (object): desired state shared by every repository.
  - plus any unknown top-level keys captured in `FleetSnapshot.extra`
- Repository entry (`RepoRecord`):
  - `name` (string, required): directory name under the fleet root; the primary key.
  - `branch` (string): branch seen by the last collection pass.
  - `dirty` (bool): working tree had uncommitted changes at the last status query.
  - `selected` (bool): operator opt-in; unselected repositories are skipped by every pass.
  - `version` / `version_line`: declared project version and its 1-based line number.
  - `parent_version` / `parent_version_line`: same for the `<parent>` declaration.
  - plus unknown keys captured in `RepoRecord.extra`
- Target (`FleetTarget`):
  - `branch`, `version`, `parent_version` (string): empty means "leave this field alone".
  - `name_prefix` (string): display-only prefix stripped from repository names.
  - plus unknown keys captured in `FleetTarget.extra`

Parsing rules
- `FleetSnapshot.load(path)` requires a JSON object; `repos` and `target` are optional.
- Strings are coerced with `str()`, flags with `bool()`. Line numbers are kept only when they
  are positive integers (anything else becomes None, which forces a refresh before patching).
- `selected` defaults to true so hand-added entries take part in the next pass.

Serialization rules
- `FleetSnapshot.save(path)` writes UTF-8 JSON with `indent=2`, `ensure_ascii=True` and a
  trailing newline, creating the state directory when needed.
- `extra` dictionaries are merged last, so a colliding key in `extra` wins.

Line-number validity
`version_line` and `parent_version_line` describe the descriptor as it was during the most
recent collection. Nothing here notices later edits; the executor re-validates the line
before writing.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

_REPO_KEYS = {
    "name",
    "branch",
    "dirty",
    "selected",
    "version",
    "version_line",
    "parent_version",
    "parent_version_line",
}
_TARGET_KEYS = {"branch", "version", "parent_version", "name_prefix"}


@dataclass
class RepoRecord:
    name: str
    branch: str = ""
    dirty: bool = False
    selected: bool = True
    version: str = ""
    version_line: int | None = None
    parent_version: str = ""
    parent_version_line: int | None = None
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "RepoRecord":
        known = {k: v for k, v in d.items() if k in _REPO_KEYS}
        extra = {k: v for k, v in d.items() if k not in _REPO_KEYS}
        if not known.get("name"):
            raise ValueError("repository entry is missing required field: name")
        return RepoRecord(
            name=str(known["name"]),
            branch=str(known.get("branch") or ""),
            dirty=bool(known.get("dirty", False)),
            selected=bool(known.get("selected", True)),
            version=str(known.get("version") or ""),
            version_line=_line_number(known.get("version_line")),
            parent_version=str(known.get("parent_version") or ""),
            parent_version_line=_line_number(known.get("parent_version_line")),
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name,
            "branch": self.branch,
            "dirty": self.dirty,
            "selected": self.selected,
            "version": self.version,
            "version_line": self.version_line,
            "parent_version": self.parent_version,
            "parent_version_line": self.parent_version_line,
        }
        d.update(self.extra)
        return d


@dataclass
class FleetTarget:
    branch: str = ""
    version: str = ""
    parent_version: str = ""
    name_prefix: str = ""
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "FleetTarget":
        known = {k: v for k, v in d.items() if k in _TARGET_KEYS}
        extra = {k: v for k, v in d.items() if k not in _TARGET_KEYS}
        return FleetTarget(
            branch=str(known.get("branch") or ""),
            version=str(known.get("version") or ""),
            parent_version=str(known.get("parent_version") or ""),
            name_prefix=str(known.get("name_prefix") or ""),
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "branch": self.branch,
            "version": self.version,
            "parent_version": self.parent_version,
            "name_prefix": self.name_prefix,
        }
        d.update(self.extra)
        return d

    def display_name(self, name: str) -> str:
        if self.name_prefix and name.startswith(self.name_prefix):
            return name[len(self.name_prefix) :] or name
        return name


@dataclass
class FleetSnapshot:
    repos: list[RepoRecord] = field(default_factory=list)
    target: FleetTarget = field(default_factory=FleetTarget)
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @staticmethod
    def load(path: Path) -> "FleetSnapshot":
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"config.json must be a JSON object, got {type(raw)}")

        extra = {k: v for k, v in raw.items() if k not in {"repos", "target"}}
        repos_raw = raw.get("repos") or []
        if not isinstance(repos_raw, list):
            raise ValueError("config.json field 'repos' must be an array")
        for i, entry in enumerate(repos_raw):
            if not isinstance(entry, dict):
                raise ValueError(f"config.json repos[{i}] must be an object, got {type(entry).__name__}")
        repos = [RepoRecord.from_dict(x) for x in repos_raw]
        target_raw = raw.get("target") or {}
        if not isinstance(target_raw, dict):
            raise ValueError("config.json field 'target' must be an object")
        return FleetSnapshot(repos=repos, target=FleetTarget.from_dict(target_raw), extra=extra)

    @staticmethod
    def load_or_init(path: Path) -> "FleetSnapshot":
        if path.exists():
            return FleetSnapshot.load(path)
        snapshot = FleetSnapshot()
        snapshot.save(path)
        return snapshot

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        d: dict[str, Any] = {
            "repos": [r.to_dict() for r in self.repos],
            "target": self.target.to_dict(),
        }
        d.update(self.extra)
        path.write_text(json.dumps(d, indent=2, ensure_ascii=True) + "\n", encoding="utf-8")

    def selected(self) -> list[RepoRecord]:
        return [r for r in self.repos if r.selected]

    def get(self, name: str) -> RepoRecord:
        for repo in self.repos:
            if repo.name == name:
                return repo
        raise KeyError(f"Repository not found: {name}")

    def replace(self, record: RepoRecord) -> None:
        for i, repo in enumerate(self.repos):
            if repo.name == record.name:
                self.repos[i] = record
                return
        raise KeyError(f"Repository not found: {record.name}")

    def sort_by_name(self) -> None:
        self.repos.sort(key=lambda r: r.name)


def _line_number(raw: Any) -> int | None:
    if isinstance(raw, bool) or not isinstance(raw, int):
        return None
    return raw if raw > 0 else None
