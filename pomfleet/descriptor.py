"""Line-addressed reading and patching of the build descriptor (`pom.xml`).

The descriptor is never parsed as XML. It is treated as numbered text, matching what this shell
pipeline does:

    grep -A 5 '<artifactId>NAME</artifactId>' pom.xml | grep '<version>'
    grep -A 5 '<parent>' pom.xml | grep '<version>'
    sed -i 'Ns#^\\([ \\t]*\\).*#\\1<version>X</version>#' pom.xml

Reading
- `numbered_hits(lines, anchor, needle=..., context=5)` scans for every line containing
  `anchor`, takes that line plus the next `context` lines (windows of neighbouring anchors
  are merged, as grep does), and returns the window lines that contain `needle`, formatted
  `"<lineNumber>-<lineContent>"` with 1-based line numbers.
- `parse_numbered_hit(hit)` splits a hit on its first `-` only. Line numbers never contain a
  dash, so a version such as `1.0.0-SNAPSHOT` stays intact in the content part.
- `strip_tags(content)` removes every `<...>` run and trims whitespace, giving the bare value.
- `read_declarations(path, artifact_id)` applies the two searches and keeps the first hit of
  each; a search with no hit yields None for that declaration.

Writing
`patch_version_line(path, line_number, new_version, expected=...)` is a two-phase write:
1. Re-read the file and check that `line_number` is in range, still contains `<version>`,
   and (when `expected` is given) still strips to the value recorded at collection time.
   Any mismatch raises `PatchPositionStale` and the file is left untouched.
2. Replace that one line with its original leading spaces/tabs followed by
   `<version>{new_version}</version>`. A trailing `\\r` (CRLF files) is kept, and every
   other byte of the file is written back unchanged, including bytes that are not UTF-8
   (Latin-1 descriptors round-trip through `surrogateescape`). The new content goes to a
   sibling `.tmp` file that then replaces the descriptor, so a failed write never leaves a
   truncated `pom.xml`.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

from .errors import DescriptorError, PatchPositionStale

VERSION_TAG = "<version>"
PARENT_TAG = "<parent>"
CONTEXT_LINES = 5

_TAG_RE = re.compile(r"<[^>]*>")
_INDENT_RE = re.compile(r"^[ \t]*")

# Bytes that are not UTF-8 survive a read/write round trip as lone surrogates.
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


@dataclass(frozen=True)
class Declaration:
    line_number: int
    value: str


@dataclass(frozen=True)
class DeclaredVersions:
    version: Declaration | None
    parent_version: Declaration | None


def artifact_anchor(artifact_id: str) -> str:
    return f"<artifactId>{artifact_id}</artifactId>"


def numbered_hits(
    lines: list[str],
    anchor: str,
    *,
    needle: str = VERSION_TAG,
    context: int = CONTEXT_LINES,
) -> list[str]:
    window: list[int] = []
    seen: set[int] = set()
    for i, line in enumerate(lines):
        if anchor not in line:
            continue
        for j in range(i, min(i + context + 1, len(lines))):
            if j not in seen:
                seen.add(j)
                window.append(j)
    return [f"{j + 1}-{lines[j]}" for j in window if needle in lines[j]]


def parse_numbered_hit(hit: str) -> tuple[int, str]:
    number, sep, content = hit.partition("-")
    if not sep or not number.isdigit():
        raise DescriptorError(f"malformed numbered line: {hit!r}")
    return int(number), content


def strip_tags(content: str) -> str:
    return _TAG_RE.sub("", content).strip()


def first_declaration(lines: list[str], anchor: str, *, context: int = CONTEXT_LINES) -> Declaration | None:
    hits = numbered_hits(lines, anchor, context=context)
    if not hits:
        return None
    line_number, content = parse_numbered_hit(hits[0])
    return Declaration(line_number=line_number, value=strip_tags(content))


def read_lines(path: Path) -> list[str]:
    """Split the descriptor on `\\n` only, dropping a trailing `\\r` from each line."""
    try:
        text = path.read_text(encoding=_ENCODING, errors=_ERRORS)
    except OSError as exc:
        raise DescriptorError(f"cannot read {path}: {exc.strerror or exc}") from exc
    return [line.removesuffix("\r") for line in text.split("\n")]


def read_declarations(path: Path, artifact_id: str, *, context: int = CONTEXT_LINES) -> DeclaredVersions:
    lines = read_lines(path)
    return DeclaredVersions(
        version=first_declaration(lines, artifact_anchor(artifact_id), context=context),
        parent_version=first_declaration(lines, PARENT_TAG, context=context),
    )


def patch_version_line(
    path: Path,
    line_number: int | None,
    new_version: str,
    *,
    expected: str | None = None,
) -> None:
    try:
        with path.open("r", encoding=_ENCODING, errors=_ERRORS, newline="") as fh:
            text = fh.read()
    except OSError as exc:
        raise DescriptorError(f"cannot read {path}: {exc.strerror or exc}") from exc

    if line_number is None:
        raise PatchPositionStale(path, None, None)

    lines = text.split("\n")
    # A trailing newline leaves an empty sentinel that is not a real line.
    line_count = len(lines) - 1 if text.endswith("\n") else len(lines)
    if not 1 <= line_number <= line_count:
        raise PatchPositionStale(path, line_number, None)

    raw = lines[line_number - 1]
    cr = "\r" if raw.endswith("\r") else ""
    current = raw.removesuffix("\r")
    if VERSION_TAG not in current:
        raise PatchPositionStale(path, line_number, current)
    if expected is not None and strip_tags(current) != expected.strip():
        raise PatchPositionStale(path, line_number, current)

    indent = _INDENT_RE.match(current).group(0)  # type: ignore[union-attr]
    lines[line_number - 1] = f"{indent}<version>{new_version}</version>{cr}"

    temp_path = path.with_name(path.name + ".tmp")
    try:
        with temp_path.open("w", encoding=_ENCODING, errors=_ERRORS, newline="") as fh:
            fh.write("\n".join(lines))
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(temp_path, path)
    except OSError as exc:
        temp_path.unlink(missing_ok=True)
        raise DescriptorError(f"cannot write {path}: {exc.strerror or exc}") from exc
