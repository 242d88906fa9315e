"""pomfleet: keep a fleet of Maven checkouts on one branch and one version.

This package implements a "collect -> plan -> apply" loop as a CLI (`pomfleet.cli:main`,
runnable via `python -m pomfleet`). Given a root directory holding many git checkouts that
each carry a `pom.xml`, pomfleet records every repository's branch, dirty state and declared
versions in `.pomfleet/config.json`, lets the operator set a single target (branch, version,
parent version), and reconciles every selected repository toward it concurrently.

What pomfleet provides
- A CLI entrypoint (`pomfleet.cli:main`) with `status`, `refresh`, `target`, `select`,
  `deselect`, `plan`, `apply` and `commit` subcommands.
- An engine (`pomfleet.engine.FleetEngine`) that:
  - loads/initializes the fleet snapshot (default `.pomfleet/config.json` under the root),
  - discovers checkouts and collects their state with one worker per repository,
  - plans branch switches/creations and version-line patches against the target,
  - applies the plans concurrently, isolating failures per repository,
  - stages and commits the descriptor across the fleet.
- A line-addressed descriptor protocol (`pomfleet.descriptor`) that finds version
  declarations by numbered line search and rewrites exactly one line, refusing to write when
  the recorded line no longer holds the expected version element.

What pomfleet intentionally does not do
- Parse `pom.xml` as XML; the descriptor is treated as addressable text.
- Roll back partially applied changes, or coordinate across machines.
- Time out hung `git` processes; a stuck child blocks its phase.

Key exports from this module
- `__version__`: the package version string. (`__all__` is intentionally limited to this.)

Important invariants and conventions
- `.pomfleet/config.json` is the single source of truth for the fleet; unknown JSON fields
  are preserved round-trip.
- Recorded line numbers are only trusted after re-validation at write time.
- Every phase runs to completion and persists whatever state it managed to collect.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
