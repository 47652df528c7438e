"""Work item lookup for the current unit of work.

Work items are markdown files with YAML front matter, stored in status
folders under the work folder. The item being worked on lives in the
"doing" folder, and only one item may be in progress at a time.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .config import Config
from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str

__all__ = [
    "WorkItem",
    "WorkItemError",
    "extract_front_matter",
    "find_current_work_item",
    "load_work_item",
]

FRONT_MATTER_DELIMITER = "---"


@dataclass(frozen=True, slots=True)
class WorkItemError:
    kind: Literal["no_doing_folder", "no_work_item", "ambiguous", "unreadable", "invalid"]
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class WorkItem:
    """Front matter fields of a work item."""

    path: Path
    id: str | None = None
    title: str | None = None
    status: str | None = None
    kind: str | None = None


def find_current_work_item(config: Config) -> Result[Path, WorkItemError]:
    """Return the single work item file in the doing folder.

    Zero or several ``*.md`` files are errors: the workflow tracks exactly
    one active item.
    """
    doing = config.doing_path
    if not doing.is_dir():
        return Err(
            WorkItemError(
                kind="no_doing_folder",
                message=f"doing folder not found at {doing}: no work item in progress",
                hint="Start a work item first",
            )
        )

    try:
        files = sorted(p for p in doing.iterdir() if p.is_file() and p.suffix == ".md")
    except OSError as e:
        return Err(WorkItemError(kind="unreadable", message=f"failed to read doing folder: {e}"))

    if not files:
        return Err(
            WorkItemError(
                kind="no_work_item",
                message=f"no work item found in doing folder ({doing})",
                hint="Start a work item first",
            )
        )
    if len(files) > 1:
        names = ", ".join(p.name for p in files)
        return Err(
            WorkItemError(
                kind="ambiguous",
                message=f"multiple work items in doing folder ({doing}): {names}",
                hint="Only one work item can be in progress; move the others out of the doing folder",
            )
        )
    return Ok(files[0])


def extract_front_matter(content: str) -> Result[StrDict, str]:
    """Parse the YAML block between the first pair of ``---`` lines.

    All scalars are loaded as strings so ids like ``001`` keep their
    leading zeros. A file without front matter yields an empty mapping.
    """
    lines = content.splitlines()
    if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
        return Ok({})

    body: list[str] = []
    for line in lines[1:]:
        if line.strip() == FRONT_MATTER_DELIMITER:
            break
        body.append(line)

    if not body:
        return Ok({})

    from ruamel.yaml import YAML
    from ruamel.yaml.error import YAMLError

    yaml = YAML(typ="base")
    try:
        data_obj: object = yaml.load("\n".join(body))
    except YAMLError as e:
        return Err(f"failed to parse front matter: {e}")

    if data_obj is None:
        return Ok({})
    data = as_str_dict(data_obj)
    if data is None:
        return Err("front matter must be a YAML mapping")
    return Ok(data)


def load_work_item(path: Path) -> Result[WorkItem, WorkItemError]:
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return Err(WorkItemError(kind="unreadable", message=f"failed to read work item file: {e}"))

    match extract_front_matter(content):
        case Err(message):
            return Err(WorkItemError(kind="invalid", message=f"{path.name}: {message}"))
        case Ok(fields):
            return Ok(
                WorkItem(
                    path=path,
                    id=get_str(fields, "id"),
                    title=get_str(fields, "title"),
                    status=get_str(fields, "status"),
                    kind=get_str(fields, "kind"),
                )
            )
