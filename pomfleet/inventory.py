"""Repository discovery under a fleet root."""

from __future__ import annotations

import os
from pathlib import Path

from .errors import DiscoveryError
from .fleet import FleetSnapshot, RepoRecord


def discover(root: Path) -> list[str]:
    """Return names of immediate subdirectories of `root` that hold a `.git` directory.

    Order is whatever the directory listing yields; callers that need determinism sort.
    Worktrees and submodules (where `.git` is a file) are not fleet members.
    """
    try:
        entries = list(os.scandir(root))
    except OSError as exc:
        raise DiscoveryError(root, exc.strerror or str(exc)) from exc

    names: list[str] = []
    for entry in entries:
        if not entry.is_dir():
            continue
        if (Path(entry.path) / ".git").is_dir():
            names.append(entry.name)
    return names


def merge_discovered(snapshot: FleetSnapshot, names: list[str]) -> list[str]:
    """Append records for newly discovered repositories; return the names that were added.

    Existing records keep their state and selection. New ones start selected.
    """
    known = {r.name for r in snapshot.repos}
    added: list[str] = []
    for name in names:
        if name in known:
            continue
        snapshot.repos.append(RepoRecord(name=name, selected=True))
        known.add(name)
        added.append(name)
    return added
