from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from ruamel.yaml import YAML

from .client import PanelClient, PanelRequestError
from .config import ConfigError, Settings, load_settings
from .flash import FlashStore
from .form import VariableForm
from .logging_setup import setup_logging
from .prompts import run_variable_editor

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


def _load(config: Optional[Path]) -> Settings:
    try:
        settings = load_settings(config)
    except ConfigError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    setup_logging(settings.log_level)
    return settings


def _write_yaml(data: dict) -> None:
    yaml = YAML()
    yaml.default_flow_style = False
    yaml.indent(mapping=2, sequence=4, offset=2)
    yaml.dump(data, sys.stdout)


ConfigOption = typer.Option(None, "--config", "-c", help="Path to eggpanel YAML config")


@app.command()
def serve(config: Optional[Path] = ConfigOption) -> None:
    """Run the application API."""
    import uvicorn

    from . import api

    settings = _load(config)
    api.app.dependency_overrides[api.get_settings] = lambda: settings
    uvicorn.run(api.app, host=settings.host, port=settings.port)


@app.command()
def show(
    egg_id: int = typer.Argument(..., help="Egg id"),
    include: list[str] = typer.Option([], "--include", "-i", help="Relationship to include (repeatable)"),
    as_yaml: bool = typer.Option(False, "--yaml", help="Print YAML instead of JSON"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Print an egg with the requested relationships."""
    settings = _load(config)
    with PanelClient(settings.panel_url, settings.token) as client:
        try:
            data = client.get_egg_raw(egg_id, include)
        except PanelRequestError as exc:
            console.print(f"[red]{exc}[/red]")
            raise typer.Exit(code=1) from exc
    if as_yaml:
        _write_yaml(data)
    else:
        console.print_json(json.dumps(data))


@app.command()
def variables(
    egg_id: int = typer.Argument(..., help="Egg id"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Interactively edit the variables of an egg."""
    settings = _load(config)
    with PanelClient(settings.panel_url, settings.token) as client:
        form = VariableForm(client, egg_id, FlashStore())
        if not run_variable_editor(form):
            raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
