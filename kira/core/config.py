"""Typed kira.yml loading.

Only the settings the ``latest`` engine consumes are modelled: git defaults,
status folders, and the workspace topology (project list). Unknown keys are
ignored so a full kira.yml written by other kira commands loads fine.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_float, get_list, get_str, get_table

__all__ = [
    "Config",
    "ConfigError",
    "GitConfig",
    "ProjectConfig",
    "WorkspaceConfig",
    "CONFIG_FILENAME",
    "DEFAULT_STATUS_FOLDERS",
    "find_config_path",
    "load_config",
]

CONFIG_FILENAME = "kira.yml"
DEFAULT_WORK_FOLDER = ".work"
DEFAULT_REMOTE = "origin"
DEFAULT_COMMAND_TIMEOUT = 30.0
DEFAULT_NETWORK_TIMEOUT = 3 * 60.0

DEFAULT_STATUS_FOLDERS: dict[str, str] = {
    "backlog": "0_backlog",
    "todo": "1_todo",
    "doing": "2_doing",
    "review": "3_review",
    "done": "4_done",
    "archived": "z_archive",
}


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when kira.yml cannot be loaded or is invalid."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class GitConfig:
    """Global git settings.

    Attributes:
        trunk_branch: Trunk branch for every repo; None means auto-detect main/master
        remote: Remote name used when a project does not override it
        command_timeout: Seconds allowed for local git commands
        network_timeout: Seconds allowed for git fetch
    """

    trunk_branch: str | None = None
    remote: str = DEFAULT_REMOTE
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    network_timeout: float = DEFAULT_NETWORK_TIMEOUT


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """One entry of ``workspace.projects``.

    Attributes:
        name: Project identifier
        path: Path to the project's repository (relative to the main repo root)
        mount: Folder name in worktrees; defaults to name
        repo_root: Shared physical root when several projects live in one repository
        trunk_branch: Per-project trunk override
        remote: Per-project remote override
    """

    name: str
    path: str | None = None
    mount: str | None = None
    repo_root: str | None = None
    trunk_branch: str | None = None
    remote: str | None = None


@dataclass(frozen=True, slots=True)
class WorkspaceConfig:
    work_folder: str = DEFAULT_WORK_FOLDER
    projects: tuple[ProjectConfig, ...] = ()


def _default_status_folders() -> dict[str, str]:
    return dict(DEFAULT_STATUS_FOLDERS)


@dataclass(frozen=True, slots=True)
class Config:
    """Resolved kira configuration.

    ``workspace`` is None when kira.yml has no workspace section (standalone).
    ``config_dir`` is the directory paths are resolved against.
    """

    git: GitConfig = field(default_factory=GitConfig)
    status_folders: dict[str, str] = field(default_factory=_default_status_folders)
    workspace: WorkspaceConfig | None = None
    config_dir: Path = field(default_factory=Path.cwd)

    @property
    def work_folder(self) -> str:
        if self.workspace is not None:
            return self.workspace.work_folder
        return DEFAULT_WORK_FOLDER

    @property
    def work_folder_path(self) -> Path:
        return self.config_dir / self.work_folder

    @property
    def doing_folder(self) -> str:
        return self.status_folders.get("doing") or DEFAULT_STATUS_FOLDERS["doing"]

    @property
    def doing_path(self) -> Path:
        return self.work_folder_path / self.doing_folder

    @property
    def projects(self) -> tuple[ProjectConfig, ...]:
        if self.workspace is None:
            return ()
        return self.workspace.projects

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, config_dir: Path) -> Config:
        """Create Config from a parsed kira.yml mapping.

        Raises:
            ValueError: If the workspace section is malformed.
        """
        git: StrDict = get_table(data, "git") or {}
        folders: StrDict = get_table(data, "status_folders") or {}

        status_folders = _default_status_folders()
        for key, value in folders.items():
            folder = get_str(folders, key)
            if folder is not None:
                status_folders[key] = folder
            elif value is not None:
                raise ValueError(f"status_folders.{key} must be a non-empty string")

        return cls(
            git=GitConfig(
                trunk_branch=get_str(git, "trunk_branch"),
                remote=get_str(git, "remote") or DEFAULT_REMOTE,
                command_timeout=get_float(git, "command_timeout") or DEFAULT_COMMAND_TIMEOUT,
                network_timeout=get_float(git, "network_timeout") or DEFAULT_NETWORK_TIMEOUT,
            ),
            status_folders=status_folders,
            workspace=_parse_workspace(data),
            config_dir=config_dir,
        )


def _parse_workspace(data: Mapping[str, object]) -> WorkspaceConfig | None:
    if data.get("workspace") is None:
        return None
    workspace = get_table(data, "workspace")
    if workspace is None:
        raise ValueError("workspace must be a mapping")

    raw_folder = workspace.get("work_folder")
    work_folder = get_str(workspace, "work_folder")
    if raw_folder is not None and work_folder is None:
        raise ValueError("workspace.work_folder cannot be empty or whitespace only")
    if work_folder is not None and "\x00" in work_folder:
        raise ValueError("workspace.work_folder cannot contain null byte")

    projects: list[ProjectConfig] = []
    raw_projects = workspace.get("projects")
    if raw_projects is not None:
        items = get_list(workspace, "projects")
        if items is None:
            raise ValueError("workspace.projects must be a list")
        for index, item in enumerate(items):
            entry = as_str_dict(item)
            if entry is None:
                raise ValueError(f"workspace.projects[{index}] must be a mapping")
            name = get_str(entry, "name")
            if name is None:
                raise ValueError(f"workspace.projects[{index}] is missing a name")
            projects.append(
                ProjectConfig(
                    name=name,
                    path=get_str(entry, "path"),
                    mount=get_str(entry, "mount") or name,
                    repo_root=get_str(entry, "repo_root"),
                    trunk_branch=get_str(entry, "trunk_branch"),
                    remote=get_str(entry, "remote"),
                )
            )

    return WorkspaceConfig(
        work_folder=work_folder or DEFAULT_WORK_FOLDER,
        projects=tuple(projects),
    )


def find_config_path(root: Path) -> Path | None:
    """Locate kira.yml in root, falling back to the legacy .work/kira.yml."""
    for candidate in (root / CONFIG_FILENAME, root / DEFAULT_WORK_FOLDER / CONFIG_FILENAME):
        if candidate.is_file():
            return candidate
    return None


def _parse_yaml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a YAML file, handling read and parse errors."""
    from ruamel.yaml import YAML
    from ruamel.yaml.error import YAMLError

    yaml = YAML(typ="safe")
    try:
        data_obj: object = yaml.load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))
    except YAMLError as e:
        return Err(ConfigError(f"Invalid YAML syntax: {e}", path=path))

    if data_obj is None:
        return Ok({})
    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a YAML mapping", path=path))
    return Ok(data)


def load_config(root: Path) -> Result[Config, ConfigError]:
    """Load kira.yml for the workspace rooted at ``root``.

    A missing kira.yml is not an error: defaults are returned, resolved
    against ``root``.

    Args:
        root: Workspace root directory

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    root = root.resolve()
    path = find_config_path(root)
    if path is None:
        return Ok(Config(config_dir=root))

    result = _parse_yaml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value, config_dir=root))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))
