"""Tests for kira.core.work_item."""

from __future__ import annotations

from pathlib import Path

from kira.core.config import Config
from kira.core.result import Err, Ok
from kira.core.work_item import extract_front_matter, find_current_work_item, load_work_item


def _doing(tmp_path: Path) -> Path:
    doing = tmp_path / ".work" / "2_doing"
    doing.mkdir(parents=True)
    return doing


class TestFindCurrentWorkItem:
    def test_missing_folder(self, tmp_path: Path) -> None:
        result = find_current_work_item(Config(config_dir=tmp_path))
        assert isinstance(result, Err)
        assert result.error.kind == "no_doing_folder"

    def test_empty_folder(self, tmp_path: Path) -> None:
        _doing(tmp_path)
        result = find_current_work_item(Config(config_dir=tmp_path))
        assert isinstance(result, Err)
        assert result.error.kind == "no_work_item"

    def test_single_item(self, tmp_path: Path) -> None:
        doing = _doing(tmp_path)
        (doing / "001-task.md").write_text("---\nid: 001\n---\n", encoding="utf-8")
        (doing / "notes.txt").write_text("ignored", encoding="utf-8")
        result = find_current_work_item(Config(config_dir=tmp_path))
        assert result == Ok(doing / "001-task.md")

    def test_several_items_are_ambiguous(self, tmp_path: Path) -> None:
        doing = _doing(tmp_path)
        (doing / "001-a.md").write_text("", encoding="utf-8")
        (doing / "002-b.md").write_text("", encoding="utf-8")
        result = find_current_work_item(Config(config_dir=tmp_path))
        assert isinstance(result, Err)
        assert result.error.kind == "ambiguous"
        assert "001-a.md" in result.error.message
        assert "002-b.md" in result.error.message

    def test_custom_doing_folder(self, tmp_path: Path) -> None:
        config = Config.from_dict({"status_folders": {"doing": "wip"}}, config_dir=tmp_path)
        (tmp_path / ".work" / "wip").mkdir(parents=True)
        (tmp_path / ".work" / "wip" / "x.md").write_text("", encoding="utf-8")
        assert isinstance(find_current_work_item(config), Ok)


class TestFrontMatter:
    def test_ids_stay_strings(self) -> None:
        result = extract_front_matter("---\nid: 001\ntitle: Fix it\n---\n# Body\n")
        assert result == Ok({"id": "001", "title": "Fix it"})

    def test_no_front_matter(self) -> None:
        assert extract_front_matter("# Just a heading\n") == Ok({})

    def test_malformed_yaml(self) -> None:
        result = extract_front_matter("---\nid: [001\n---\n")
        assert isinstance(result, Err)
        assert "failed to parse front matter" in result.error

    def test_non_mapping(self) -> None:
        assert isinstance(extract_front_matter("---\n- a\n---\n"), Err)


class TestLoadWorkItem:
    def test_fields(self, tmp_path: Path) -> None:
        path = tmp_path / "item.md"
        path.write_text(
            "---\nid: 042\ntitle: Add latest\nstatus: doing\nkind: task\n---\nbody\n",
            encoding="utf-8",
        )
        result = load_work_item(path)
        assert isinstance(result, Ok)
        item = result.value
        assert (item.id, item.title, item.status, item.kind) == ("042", "Add latest", "doing", "task")

    def test_invalid(self, tmp_path: Path) -> None:
        path = tmp_path / "item.md"
        path.write_text("---\nid: [\n---\n", encoding="utf-8")
        result = load_work_item(path)
        assert isinstance(result, Err)
        assert result.error.kind == "invalid"

    def test_unreadable(self, tmp_path: Path) -> None:
        result = load_work_item(tmp_path / "missing.md")
        assert isinstance(result, Err)
        assert result.error.kind == "unreadable"
