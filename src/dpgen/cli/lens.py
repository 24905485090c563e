"""Lens commands: extract, lens."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml
from rich.markup import escape

from dpgen.cli import _load_settings, _print_errors, app, console
from dpgen.engine.extract import ExtractionResult, extract_schema


def _extract_file(sql_file: Path, settings) -> ExtractionResult:
    if not sql_file.exists():
        console.print(f"[red]File not found: {sql_file}[/red]")
        raise typer.Exit(1)
    result = extract_schema(
        sql_file.read_text(),
        default_source=settings.defaults.source,
        default_schema=settings.defaults.schema,
    )
    for warning in result.warnings:
        console.print(f"[yellow]{sql_file.name}: {warning}[/yellow]")
    if not result.ok:
        console.print(f"[red]{sql_file.name}: {result.error.message}[/red]")
        console.print(f"[dim]{result.error.hint}[/dim]")
        raise typer.Exit(1)
    return result


@app.command()
def extract(
    sql_file: Annotated[Path, typer.Argument(help="File containing a SELECT statement")],
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON instead of YAML")] = False,
) -> None:
    """Extract a table definition (dimensions + count measure) from SQL."""
    settings = _load_settings()
    result = _extract_file(sql_file, settings)
    data = result.table.model_dump(by_alias=True)
    if as_json:
        typer.echo(json.dumps(data, indent=2))
    else:
        typer.echo(yaml.safe_dump(data, sort_keys=False), nl=False)


@app.command()
def lens(
    project_name: Annotated[str, typer.Argument(help="Lens project name (lowercase, digits, hyphens)")],
    sql_files: Annotated[list[Path], typer.Argument(help="One SELECT statement per file, one table each")],
    out: Annotated[Optional[Path], typer.Option("--out", "-o", help="Output directory (default: current dir)")] = None,
    as_zip: Annotated[bool, typer.Option("--zip", help="Write <project>-lens.zip instead of a directory tree")] = False,
    overwrite: Annotated[bool, typer.Option("--overwrite", help="Replace existing files")] = False,
) -> None:
    """Build a lens semantic model from SQL files.

    Examples:
      dpgen lens sales-lens customers.sql orders.sql
      dpgen lens sales-lens customers.sql --zip --out dist
    """
    from dpgen.engine.archive import ArchiveError, write_files
    from dpgen.engine.editing import add_extracted_table
    from dpgen.engine.lens import build_lens_files, build_lens_package, lens_archive_name
    from dpgen.engine.models import LensConfig
    from dpgen.engine.validation import validate_lens_config

    settings = _load_settings()
    config = LensConfig(project_name=project_name, source=settings.defaults.source)
    for sql_file in sql_files:
        config = add_extracted_table(config, _extract_file(sql_file, settings))

    report = validate_lens_config(config)
    for warning in report.warnings:
        console.print(f"[yellow]{escape(warning)}[/yellow]")
    if not report.valid:
        _print_errors("Lens project is invalid:", report.errors)
        raise typer.Exit(1)

    out_dir = out or Path.cwd()
    if as_zip:
        target = out_dir / lens_archive_name(config)
        if target.exists() and not overwrite:
            console.print(f"[red]{target} already exists. Use --overwrite to replace it.[/red]")
            raise typer.Exit(1)
        out_dir.mkdir(parents=True, exist_ok=True)
        target.write_bytes(build_lens_package(config, settings))
        console.print(f"[green]Wrote[/green] {target}")
        return

    try:
        written = write_files(build_lens_files(config, settings), out_dir, overwrite=overwrite)
    except ArchiveError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)
    for path in written:
        console.print(f"  [green]created[/green] {path}")
    console.print(f"\n[bold]Lens '{project_name}' written with {len(config.tables)} table(s).[/bold]")
