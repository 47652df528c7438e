"""Conflict marker parsing.

Reads files git reports as unmerged and extracts each
``<<<<<<<`` / ``=======`` / ``>>>>>>>`` region with a little surrounding
context, so conflicts can be shown to whoever resolves them.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path

from kira.core.result import Err, Ok, Result

from .repository import Repository, RepositoryInfo, StatusEntry

__all__ = [
    "CONTEXT_LINES",
    "MAX_CONFLICT_FILE_SIZE",
    "ConflictRegion",
    "FileConflict",
    "RepositoryConflicts",
    "collect_repository_conflicts",
    "conflicting_files",
    "parse_conflict_markers",
    "read_conflicting_file",
]

START_MARKER = "<<<<<<<"
SEPARATOR_MARKER = "======="
END_MARKER = ">>>>>>>"

CONTEXT_LINES = 3
MAX_CONFLICT_FILE_SIZE = 1024 * 1024


@dataclass(frozen=True, slots=True)
class ConflictRegion:
    """One conflict region.

    Marker lines are kept verbatim, including the branch label after
    ``<<<<<<<`` / ``>>>>>>>``. ``start_line`` is 1-based.
    """

    start_marker: str
    ours: str
    separator: str
    theirs: str
    end_marker: str
    context_before: tuple[str, ...] = ()
    context_after: tuple[str, ...] = ()
    start_line: int = 1


@dataclass(frozen=True, slots=True)
class FileConflict:
    """Conflicts found in one file; ``error`` is set when it could not be read."""

    repo_name: str
    file_path: str
    regions: tuple[ConflictRegion, ...] = ()
    error: str | None = None


@dataclass(frozen=True, slots=True)
class RepositoryConflicts:
    repo: RepositoryInfo
    files: tuple[FileConflict, ...] = ()


class _Seeking(Enum):
    START = auto()
    SEPARATOR = auto()
    END = auto()


def _is_start(line: str) -> bool:
    return line.strip().startswith(START_MARKER)


def _is_separator(line: str) -> bool:
    return line.strip() == SEPARATOR_MARKER


def _is_end(line: str) -> bool:
    return line.strip().startswith(END_MARKER)


def _split_lines(content: str) -> list[str]:
    lines = content.split("\n")
    if content.endswith("\n"):
        lines.pop()
    return lines


def parse_conflict_markers(content: bytes) -> list[ConflictRegion]:
    """Extract conflict regions from raw file content.

    Markers must appear in start / separator / end order. An out-of-order
    marker drops the region being built; a new start marker begins the
    next one. Never raises: garbage in, fewer regions out.
    """
    lines = _split_lines(content.decode("utf-8", errors="replace"))
    regions: list[ConflictRegion] = []

    seeking = _Seeking.START
    start = separator = -1

    for index, line in enumerate(lines):
        if _is_start(line):
            # Also restarts a region left open by a missing separator/end.
            seeking = _Seeking.SEPARATOR
            start = index
            continue

        match seeking:
            case _Seeking.SEPARATOR:
                if _is_separator(line):
                    seeking = _Seeking.END
                    separator = index
                elif _is_end(line):
                    seeking = _Seeking.START
            case _Seeking.END:
                if _is_end(line):
                    regions.append(_build_region(lines, start, separator, index))
                    seeking = _Seeking.START
                elif _is_separator(line):
                    seeking = _Seeking.START
            case _Seeking.START:
                pass

    return regions


def _build_region(lines: list[str], start: int, separator: int, end: int) -> ConflictRegion:
    before_from = max(0, start - CONTEXT_LINES)
    after_to = min(len(lines), end + 1 + CONTEXT_LINES)
    return ConflictRegion(
        start_marker=lines[start],
        ours="\n".join(lines[start + 1 : separator]),
        separator=lines[separator],
        theirs="\n".join(lines[separator + 1 : end]),
        end_marker=lines[end],
        context_before=tuple(lines[before_from:start]),
        context_after=tuple(lines[end + 1 : after_to]),
        start_line=start + 1,
    )


def read_conflicting_file(repo_path: Path, file_path: str) -> Result[bytes, str]:
    """Read a conflicting file, refusing binary and oversized files.

    Binary detection is the usual NUL-byte heuristic.
    """
    path = Path(file_path)
    if not path.is_absolute():
        path = repo_path / path

    try:
        size = path.stat().st_size
    except FileNotFoundError:
        return Err(f"file not found: {file_path}")
    except OSError as e:
        return Err(f"cannot access {file_path}: {e}")

    if size > MAX_CONFLICT_FILE_SIZE:
        return Err(f"file too large to display ({size} bytes, limit {MAX_CONFLICT_FILE_SIZE})")

    try:
        content = path.read_bytes()
    except OSError as e:
        return Err(f"cannot read {file_path}: {e}")

    if b"\x00" in content:
        return Err("binary file, conflict markers not shown")
    return Ok(content)


def conflicting_files(entries: Iterable[StatusEntry]) -> list[str]:
    """Unmerged paths among status entries, in order."""
    return [entry.path for entry in entries if entry.is_conflicted]


def collect_repository_conflicts(
    repo: RepositoryInfo,
    git: Repository | None = None,
) -> Result[RepositoryConflicts, str]:
    """Read and parse every conflicting file of ``repo``.

    Files that cannot be read are listed with their error; files without
    markers (e.g. delete/modify conflicts) are listed with no regions.
    """
    git = git or Repository(repo.path)
    match git.status_entries():
        case Err(e):
            return Err(f"failed to list conflicting files: {e.message}")
        case Ok(entries):
            pass

    files: list[FileConflict] = []
    for file_path in conflicting_files(entries):
        match read_conflicting_file(repo.path, file_path):
            case Err(message):
                files.append(FileConflict(repo.name, file_path, error=message))
            case Ok(content):
                regions = tuple(parse_conflict_markers(content))
                files.append(FileConflict(repo.name, file_path, regions=regions))

    return Ok(RepositoryConflicts(repo=repo, files=tuple(files)))
