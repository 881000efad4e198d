"""Config command group."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console

from swaprpc.config.loader import convert_to_camel, get_config_path, load_config, save_config
from swaprpc.config.schema import Config


def register_config_commands(app: typer.Typer, console: Console) -> None:
    """Register config init/show commands."""
    config_app = typer.Typer(help="Config helpers (init/show)")
    app.add_typer(config_app, name="config")

    @config_app.command("init")
    def config_init(
        path: Path = typer.Option(None, "--path", help="Config file path (default ~/.swaprpc/config.json)"),
        force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
    ) -> None:
        """Write a config file with default values."""
        target = path or get_config_path()
        if target.exists() and not force:
            console.print(f"[yellow]Config already exists:[/yellow] {target} (use --force to overwrite)")
            raise typer.Exit(1)
        saved = save_config(Config(), target)
        console.print(f"[green]✓[/green] Wrote {saved}")

    @config_app.command("show")
    def config_show(
        path: Path = typer.Option(None, "--path", help="Config file path (default ~/.swaprpc/config.json)"),
    ) -> None:
        """Print the effective configuration (file + SWAPRPC_* environment)."""
        try:
            config = load_config(path)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        console.print(json.dumps(convert_to_camel(config.model_dump()), indent=2, ensure_ascii=False))
