"""Module entrypoint for ``python -m pomfleet``.

Running ``python -m pomfleet ...`` executes this module, a thin wrapper around
:func:`pomfleet.cli.main`. It raises ``SystemExit(main())`` so the CLI return code becomes the
process exit status. This is equivalent to the ``pomfleet`` console script configured in
``pyproject.toml``.
"""

from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
