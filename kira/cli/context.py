from __future__ import annotations

from dataclasses import dataclass

import typer

from kira.core.config import Config, load_config
from kira.core.errors import ErrorCode
from kira.core.result import Err
from kira.core.workspace import Workspace, detect_workspace
from kira.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    workspace: Workspace
    config: Config
    console: ConsoleProtocol


def build_context() -> CLIContext:
    workspace_result = detect_workspace()
    if isinstance(workspace_result, Err):
        error = workspace_result.error
        typer.echo(f"error: {error.message}", err=True)
        if error.hint:
            typer.echo(f"hint: {error.hint}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    workspace = workspace_result.value

    config_result = load_config(workspace.root)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(
        workspace=workspace,
        config=config_result.value,
        console=RichConsole(),
    )
