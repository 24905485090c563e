"""CLI interface for the data product generator.

The Typer app and shared helpers live here; each module registers its commands.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from dpgen.config import Settings

app = typer.Typer(
    name="dpgen",
    help="Data product scaffolding generator. SQL schema extraction + lens and project templates.",
    no_args_is_help=True,
)
console = Console()


def _load_settings(project_dir: Path | None = None) -> Settings:
    """Load dpgen.yml, exiting with a readable message when it is broken."""
    from dpgen.config import ConfigError, load_config

    try:
        return load_config(project_dir or Path.cwd())
    except ConfigError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)


def _print_errors(title: str, errors: list[str]) -> None:
    console.print(f"[red]{title}[/red]")
    for error in errors:
        console.print(f"  [red]-[/red] {escape(error)}")


# Import submodules so they register their commands on `app`.
from dpgen.cli import admin  # noqa: E402, F401
from dpgen.cli import lens  # noqa: E402, F401
from dpgen.cli import project  # noqa: E402, F401
