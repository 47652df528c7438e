"""Tests for kira.output.conflicts."""

from __future__ import annotations

from pathlib import Path

from kira.git.conflicts import ConflictRegion, FileConflict, RepositoryConflicts
from kira.git.repository import RepositoryInfo
from kira.output.conflicts import (
    RESOLUTION_INSTRUCTIONS,
    format_all_conflicts,
    format_file_conflicts,
    format_region,
    format_repository_conflicts,
    print_conflicts,
)
from kira.output.console import MockConsole, Style

REGION = ConflictRegion(
    start_marker="<<<<<<< HEAD",
    ours="mine",
    separator="=======",
    theirs="theirs",
    end_marker=">>>>>>> 1a2b3c4 (feature work)",
    context_before=("line one",),
    context_after=("line three",),
    start_line=2,
)


def _repo(name: str = "api") -> RepositoryInfo:
    return RepositoryInfo(name=name, path=Path("/work") / name, trunk_branch="main")


class TestFormatRegion:
    def test_markers_and_sides_are_verbatim(self) -> None:
        assert format_region(REGION, "README.md") == (
            "File: README.md (line 2)\n"
            "\n"
            "Context (1 lines before):\n"
            "  line one\n"
            "\n"
            "<<<<<<< HEAD\n"
            "mine\n"
            "=======\n"
            "theirs\n"
            ">>>>>>> 1a2b3c4 (feature work)\n"
            "\n"
            "Context (1 lines after):\n"
            "  line three\n"
        )

    def test_empty_side_has_no_blank_line(self) -> None:
        region = ConflictRegion("<<<<<<< HEAD", "", "=======", "added", ">>>>>>> x")
        text = format_region(region, "a.txt")
        assert "<<<<<<< HEAD\n=======\nadded\n>>>>>>> x\n" in text
        assert "Context" not in text


class TestFormatFileConflicts:
    def test_read_error(self) -> None:
        conflict = FileConflict("api", "logo.png", error="binary file")
        assert format_file_conflicts(conflict) == "File: logo.png\n  [Error: binary file]\n"

    def test_no_markers(self) -> None:
        text = format_file_conflicts(FileConflict("api", "gone.txt"))
        assert text.startswith("File: gone.txt\n")
        assert "No conflict markers found" in text

    def test_regions_are_separated(self) -> None:
        text = format_file_conflicts(FileConflict("api", "a.txt", regions=(REGION, REGION)))
        assert text.count("<<<<<<< HEAD") == 2
        assert "\n" + "─" * 63 + "\n" in text


class TestFormatAll:
    def test_nothing_to_show(self) -> None:
        assert format_all_conflicts([]) == ""
        assert format_repository_conflicts(RepositoryConflicts(_repo())) == ""
        assert format_all_conflicts([RepositoryConflicts(_repo())]) == ""

    def test_sections_and_instructions(self) -> None:
        conflicts = [
            RepositoryConflicts(_repo("api"), (FileConflict("api", "a.txt", regions=(REGION,)),)),
            RepositoryConflicts(_repo("web"), (FileConflict("web", "b.txt", error="file too large"),)),
        ]
        text = format_all_conflicts(conflicts)

        assert text.startswith("═" * 63 + "\nMerge Conflicts Detected\n")
        assert text.index("Repository: api") < text.index("Repository: web")
        assert "File: a.txt (line 2)" in text
        assert "[Error: file too large]" in text
        assert text.endswith(RESOLUTION_INSTRUCTIONS)
        assert "git rebase --abort" in text


class TestPrintConflicts:
    def test_prints_one_verbatim_block(self) -> None:
        console = MockConsole()
        conflicts = [RepositoryConflicts(_repo(), (FileConflict("api", "a.txt", regions=(REGION,)),))]

        assert print_conflicts(console, conflicts) is True
        assert console.outputs[0].message == ""
        block = console.outputs[1]
        assert block.style is Style.VERBATIM
        assert not block.message.endswith("\n")
        assert ">>>>>>> 1a2b3c4 (feature work)" in block.message

    def test_nothing_printed(self) -> None:
        console = MockConsole()
        assert print_conflicts(console, []) is False
        assert console.outputs == []
