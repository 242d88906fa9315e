"""pomfleet.cli

Command-line entrypoint for pomfleet, a fleet reconciler that:
1) discovers git checkouts under a root directory,
2) collects each checkout's branch, dirty state and `pom.xml` versions concurrently,
3) plans branch switches/creations and version-line patches against one target,
4) applies those plans concurrently and records the result in `.pomfleet/config.json`.

Entry points
- `pomfleet.cli:main`
- `python3 -m pomfleet ...` (delegates to this module)

Subcommands
- `status`: print every repository (selection, dirty marker, branch, versions) and the target.
  Reads the snapshot only; runs no git commands.
- `refresh`: discover checkouts, merge new ones (selected by default), collect state, save.
- `target [--branch B] [--version V] [--parent-version P] [--prefix X]`: edit the target.
  An option given as an empty string clears that field ("no change requested").
- `select NAME...` / `deselect NAME...` (or `--all`): toggle operator opt-in.
- `plan`: print what `apply` would do. Runs branch existence checks, mutates nothing.
- `apply`: reconcile every selected repository toward the target, save.
- `commit [-m MESSAGE]`: stage `pom.xml` and commit in every dirty selected repository.

Global flags
- `--root <dir>`: fleet root (default: `$POMFLEET_ROOT`, else the current directory).
- `--max-workers <n>`: cap concurrent repository tasks (default: `$POMFLEET_MAX_WORKERS`,
  else 0, meaning one task per repository).
- `--descriptor <name>`: descriptor file name inside each checkout (default: `pom.xml`).
- `--git <exe>`: git executable (default: `git`).

Output
- Progress lines and the phase run log go to stderr (prefixed `[pomfleet]`).
- `status` and `plan` tables go to stdout.

Exit status
- 0 when the phase ran to completion, even if individual repositories failed (their errors
  are in the run log).
- 1 when the root cannot be listed, the snapshot is unreadable, or a named repository does
  not exist.
- 2 for usage errors (argparse).
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from .collector import DESCRIPTOR_NAME
from .engine import FleetConfig, FleetEngine, PhaseReport
from .errors import PomfleetError
from .executor import DEFAULT_COMMIT_MESSAGE
from .fleet import FleetSnapshot
from .git_ops import GitClient


def _env_max_workers() -> int:
    raw = os.environ.get("POMFLEET_MAX_WORKERS", "").strip()
    try:
        return int(raw) if raw else 0
    except ValueError:
        return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pomfleet", description="Reconcile branches and pom versions across a fleet of checkouts.")
    p.add_argument(
        "--root",
        default=None,
        help="Fleet root holding the checkouts (default: $POMFLEET_ROOT or the current directory).",
    )
    p.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Maximum concurrent repository tasks; 0 means one per repository (default: $POMFLEET_MAX_WORKERS or 0).",
    )
    p.add_argument(
        "--descriptor",
        default=DESCRIPTOR_NAME,
        help=f"Descriptor file inside each checkout (default: {DESCRIPTOR_NAME}).",
    )
    p.add_argument(
        "--git",
        default="git",
        help="Git executable (default: git).",
    )

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("status", help="Print the fleet snapshot and target.")
    sub.add_parser("refresh", help="Discover checkouts and collect their state.")

    target = sub.add_parser("target", help="Edit the fleet target.")
    target.add_argument("--branch", default=None, help="Target branch ('' clears).")
    target.add_argument("--version", dest="version", default=None, help="Target project version ('' clears).")
    target.add_argument("--parent-version", default=None, help="Target parent version ('' clears).")
    target.add_argument("--prefix", default=None, help="Display-only name prefix to hide ('' clears).")

    for name, verb in (("select", "Select"), ("deselect", "Deselect")):
        sel = sub.add_parser(name, help=f"{verb} repositories for the next passes.")
        sel.add_argument("names", nargs="*", help="Repository names.")
        sel.add_argument("--all", action="store_true", help=f"{verb} every repository.")

    sub.add_parser("plan", help="Show what apply would change.")
    sub.add_parser("apply", help="Reconcile selected repositories toward the target.")

    commit = sub.add_parser("commit", help="Commit the descriptor in dirty selected repositories.")
    commit.add_argument("-m", "--message", default=DEFAULT_COMMIT_MESSAGE, help="Commit message.")
    return p


def format_status(snapshot: FleetSnapshot) -> str:
    target = snapshot.target
    rows = [
        (
            "x" if r.selected else " ",
            "*" if r.dirty else " ",
            target.display_name(r.name),
            r.branch or "-",
            r.version or "-",
            r.parent_version or "-",
        )
        for r in snapshot.repos
    ]
    name_w = max([len(r[2]) for r in rows] + [4])
    branch_w = max([len(r[3]) for r in rows] + [6])
    lines = [f"    {'repo':<{name_w}}  {'branch':<{branch_w}}  version / parent"]
    for sel, dirty, name, branch, version, parent in rows:
        lines.append(f"[{sel}]{dirty} {name:<{name_w}}  {branch:<{branch_w}}  {version} / {parent}")
    lines.append("")
    lines.append(
        "target: "
        f"branch={target.branch or '-'} version={target.version or '-'} "
        f"parent={target.parent_version or '-'} prefix={target.name_prefix or '-'}"
    )
    return "\n".join(lines) + "\n"


def _print_run_log(report: PhaseReport) -> None:
    text = report.run_log.text()
    if text:
        sys.stderr.write(text)


def main(argv: list[str] | None = None) -> int:
    raw_argv = list(sys.argv[1:] if argv is None else argv)
    args = build_parser().parse_args(raw_argv)

    root_env = os.environ.get("POMFLEET_ROOT")
    root = Path(args.root) if args.root else (Path(root_env) if root_env else Path.cwd())
    max_workers = args.max_workers if args.max_workers is not None else _env_max_workers()

    cfg = FleetConfig(
        root=root.resolve(),
        git=GitClient(executable=args.git),
        descriptor_name=args.descriptor,
        max_workers=max_workers if max_workers > 0 else None,
    )
    engine = FleetEngine(cfg)

    try:
        return _dispatch(engine, args)
    except (PomfleetError, KeyError) as exc:
        print(f"[pomfleet] error: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"[pomfleet] unreadable snapshot {cfg.snapshot_path}: {exc}", file=sys.stderr)
        return 1


def _dispatch(engine: FleetEngine, args: argparse.Namespace) -> int:
    if args.command == "status":
        sys.stdout.write(format_status(engine.load()))
        return 0

    if args.command == "refresh":
        report = engine.refresh()
        _print_run_log(report)
        sys.stdout.write(format_status(report.snapshot))
        return 0

    if args.command == "target":
        snapshot = engine.set_target(
            branch=args.branch,
            version=args.version,
            parent_version=args.parent_version,
            name_prefix=args.prefix,
        )
        sys.stdout.write(format_status(snapshot))
        return 0

    if args.command in ("select", "deselect"):
        if not args.names and not args.all:
            print(f"[pomfleet] {args.command}: pass repository names or --all", file=sys.stderr)
            return 2
        engine.set_selected(args.names, selected=(args.command == "select"), all_repos=bool(args.all))
        return 0

    if args.command == "plan":
        snapshot, planned, run_log = engine.plan()
        for record, plan in planned:
            steps = plan.describe(record, snapshot.target) or ["up to date"]
            print(f"{snapshot.target.display_name(record.name)}: {'; '.join(steps)}")
        if len(run_log):
            sys.stderr.write(run_log.text())
        return 0

    if args.command == "apply":
        report = engine.apply()
        _print_run_log(report)
        return 0

    if args.command == "commit":
        report = engine.commit(message=args.message)
        _print_run_log(report)
        return 0

    raise AssertionError(f"unhandled command: {args.command}")
