"""Copy-paste friendly rendering of merge conflicts.

Marker lines and both sides are emitted exactly as they appear in the file
so the whole block can be pasted into an editor or assistant for resolution.
"""

from __future__ import annotations

from collections.abc import Sequence

from kira.git.conflicts import ConflictRegion, FileConflict, RepositoryConflicts

from .console import ConsoleProtocol

__all__ = [
    "format_all_conflicts",
    "format_file_conflicts",
    "format_region",
    "format_repository_conflicts",
    "print_conflicts",
]

THICK_RULE = "═" * 63
THIN_RULE = "─" * 63

RESOLUTION_INSTRUCTIONS = """\
To resolve conflicts:
1. Copy the conflict sections above
2. Paste into your editor or LLM tool
3. Resolve each region and save the file
4. Stage the result with 'git add'
5. Run 'kira latest' again to continue

To abort an in-progress rebase in a repository, run 'git rebase --abort' in that repository.
"""


def _block(text: str) -> str:
    return text if text.endswith("\n") else text + "\n"


def format_region(region: ConflictRegion, file_path: str) -> str:
    parts = [f"File: {file_path} (line {region.start_line})\n\n"]

    if region.context_before:
        parts.append(f"Context ({len(region.context_before)} lines before):\n")
        parts.extend(f"  {line}\n" for line in region.context_before)
        parts.append("\n")

    parts.append(f"{region.start_marker}\n")
    if region.ours:
        parts.append(_block(region.ours))
    parts.append(f"{region.separator}\n")
    if region.theirs:
        parts.append(_block(region.theirs))
    parts.append(f"{region.end_marker}\n")

    if region.context_after:
        parts.append(f"\nContext ({len(region.context_after)} lines after):\n")
        parts.extend(f"  {line}\n" for line in region.context_after)

    return "".join(parts)


def format_file_conflicts(conflict: FileConflict) -> str:
    if conflict.error is not None:
        return f"File: {conflict.file_path}\n  [Error: {conflict.error}]\n"
    if not conflict.regions:
        return (
            f"File: {conflict.file_path}\n"
            "  [No conflict markers found: the file may be resolved, deleted on one side, or binary]\n"
        )

    separator = f"\n{THIN_RULE}\n\n"
    return separator.join(format_region(r, conflict.file_path) for r in conflict.regions)


def format_repository_conflicts(conflicts: RepositoryConflicts) -> str:
    if not conflicts.files:
        return ""
    header = f"Repository: {conflicts.repo.name}\n{THIN_RULE}\n\n"
    return header + "\n".join(format_file_conflicts(f) for f in conflicts.files)


def format_all_conflicts(all_conflicts: Sequence[RepositoryConflicts]) -> str:
    """Render every repository's conflicts followed by resolution instructions.

    Returns an empty string when there is nothing to show.
    """
    sections = [s for s in (format_repository_conflicts(c) for c in all_conflicts) if s]
    if not sections:
        return ""

    header = f"{THICK_RULE}\nMerge Conflicts Detected\n{THICK_RULE}\n\n"
    footer = f"\n{THIN_RULE}\n{RESOLUTION_INSTRUCTIONS}"
    return header + "\n\n".join(sections) + footer


def print_conflicts(console: ConsoleProtocol, all_conflicts: Sequence[RepositoryConflicts]) -> bool:
    """Print conflicts verbatim. Returns False if there was nothing to print."""
    text = format_all_conflicts(all_conflicts)
    if not text:
        return False
    console.newline()
    console.verbatim(text.rstrip("\n"))
    return True
