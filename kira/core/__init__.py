"""Core domain types: results, exit codes, config, workspace, work items."""

from .config import Config, ConfigError, load_config
from .errors import ErrorCode
from .result import Err, Ok, Result
from .work_item import WorkItem, WorkItemError, find_current_work_item, load_work_item
from .workspace import Workspace, WorkspaceError, detect_workspace

__all__ = [
    # config
    "Config",
    "ConfigError",
    "load_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    # work items
    "WorkItem",
    "WorkItemError",
    "find_current_work_item",
    "load_work_item",
    # workspace
    "Workspace",
    "WorkspaceError",
    "detect_workspace",
]
