"""Workspace detection.

A kira workspace is the directory holding ``kira.yml`` and/or the ``.work/``
folder with the work-item status folders. Commands run from anywhere inside
it; the root is found by searching upward.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .config import CONFIG_FILENAME, DEFAULT_WORK_FOLDER
from .result import Err, Ok, Result

__all__ = [
    "WORKSPACE_ENV_VAR",
    "Workspace",
    "WorkspaceError",
    "WorkspaceSource",
    "detect_workspace",
    "find_workspace_upward",
    "is_workspace_root",
]

WORKSPACE_ENV_VAR = "KIRA_WORKSPACE"

WorkspaceSource = Literal["env", "cwd"]


@dataclass(frozen=True)
class WorkspaceError:
    """Error when no kira workspace can be found."""

    message: str
    searched_from: Path | None = None
    hint: str | None = "Run 'kira init' first, or pass --workspace"


@dataclass(frozen=True, slots=True)
class Workspace:
    """A detected kira workspace."""

    root: Path
    source: WorkspaceSource = "cwd"

    @property
    def config_path(self) -> Path:
        return self.root / CONFIG_FILENAME

    @property
    def work_dir(self) -> Path:
        """Default work folder; kira.yml may point elsewhere (Config.work_folder_path)."""
        return self.root / DEFAULT_WORK_FOLDER

    def __str__(self) -> str:
        return str(self.root)


def is_workspace_root(path: Path) -> bool:
    """A workspace root has kira.yml or a .work/ directory."""
    return (path / CONFIG_FILENAME).is_file() or (path / DEFAULT_WORK_FOLDER).is_dir()


def find_workspace_upward(start: Path) -> Path | None:
    """Search upward from start for a workspace root."""
    for parent in (start, *start.parents):
        if is_workspace_root(parent):
            return parent
    return None


def detect_workspace(
    *,
    start_dir: Path | None = None,
    env_var: str = WORKSPACE_ENV_VAR,
) -> Result[Workspace, WorkspaceError]:
    """Detect the workspace root.

    Detection order:
    1. ``$KIRA_WORKSPACE`` (if set it must be valid)
    2. Search upward from start_dir (or cwd)
    """
    env_value = os.environ.get(env_var)
    if env_value:
        env_path = Path(env_value).expanduser().resolve()
        if env_path.is_dir() and is_workspace_root(env_path):
            return Ok(Workspace(root=env_path, source="env"))
        return Err(
            WorkspaceError(
                message=f"${env_var} is set to '{env_value}' but it is not a kira workspace",
                searched_from=env_path if env_path.is_dir() else None,
            )
        )

    search_start = (start_dir or Path.cwd()).resolve()
    found = find_workspace_upward(search_start)
    if found is None:
        return Err(
            WorkspaceError(
                message=(
                    f"not a kira workspace (no {CONFIG_FILENAME} or "
                    f"{DEFAULT_WORK_FOLDER} directory found)"
                ),
                searched_from=search_start,
            )
        )
    return Ok(Workspace(root=found, source="cwd"))
