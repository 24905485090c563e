"""Project commands: init, scaffold, templates."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml
from rich.markup import escape
from rich.table import Table

from dpgen.cli import _load_settings, _print_errors, app, console


@app.command()
def init(
    name: Annotated[str, typer.Argument(help="Project name")] = "my-data-product",
    directory: Annotated[Optional[Path], typer.Option("--dir", "-d", help="Target directory")] = None,
) -> None:
    """Write a starter dpgen.yml and project spec."""
    from dpgen.config import CONFIG_FILENAME
    from dpgen.templates import DPGEN_YML_TEMPLATE, PROJECT_SPEC_TEMPLATE

    target = directory or Path.cwd() / name
    target.mkdir(parents=True, exist_ok=True)

    for filename, content in (
        (CONFIG_FILENAME, DPGEN_YML_TEMPLATE.format()),
        ("project.yml", PROJECT_SPEC_TEMPLATE.format(name=name)),
    ):
        path = target / filename
        if path.exists():
            console.print(f"  [yellow]skipped[/yellow] {path} (exists)")
            continue
        path.write_text(content)
        console.print(f"  [green]created[/green] {path}")

    console.print(f"\n[bold]Next:[/bold] edit project.yml, then run [bold]dpgen scaffold {target / 'project.yml'}[/bold]")


@app.command()
def scaffold(
    spec_file: Annotated[Path, typer.Argument(help="Project spec YAML (see `dpgen init`)")],
    out: Annotated[Optional[Path], typer.Option("--out", "-o", help="Output directory (default: ./<project>)")] = None,
    as_zip: Annotated[bool, typer.Option("--zip", help="Write <project>-project.zip instead of a directory tree")] = False,
    overwrite: Annotated[bool, typer.Option("--overwrite", help="Replace existing files")] = False,
) -> None:
    """Generate source-aligned, consumer-aligned, and infra files for a project."""
    from pydantic import ValidationError

    from dpgen.engine.archive import ArchiveError, build_zip, write_files
    from dpgen.engine.scaffold import ProjectSpec, ProjectSpecError, generate_project_files, project_archive_name

    if not spec_file.exists():
        console.print(f"[red]File not found: {spec_file}[/red]")
        raise typer.Exit(1)
    try:
        raw = yaml.safe_load(spec_file.read_text()) or {}
        spec = ProjectSpec.model_validate(raw)
    except (yaml.YAMLError, ValidationError) as e:
        console.print(f"[red]Invalid project spec {spec_file}: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    settings = _load_settings()
    try:
        files = generate_project_files(spec, settings)
    except ProjectSpecError as e:
        _print_errors("Project spec is incomplete:", e.errors)
        raise typer.Exit(1)

    if as_zip:
        out_dir = out or Path.cwd()
        target = out_dir / project_archive_name(spec)
        if target.exists() and not overwrite:
            console.print(f"[red]{target} already exists. Use --overwrite to replace it.[/red]")
            raise typer.Exit(1)
        try:
            data = build_zip(files)
        except ArchiveError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(1)
        out_dir.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        console.print(f"[green]Wrote[/green] {target} ({len(files)} files)")
        return

    out_dir = out or Path.cwd() / spec.project_name
    try:
        write_files(files, out_dir, overwrite=overwrite)
    except ArchiveError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    summary = Table(title=f"Project {spec.project_name}")
    summary.add_column("Directory", style="bold")
    summary.add_column("Files", justify="right")
    counts: dict[str, int] = {}
    for f in files:
        top = f.path.split("/", 1)[0]
        counts[top] = counts.get(top, 0) + 1
    for top, count in counts.items():
        summary.add_row(top, str(count))
    console.print(summary)
    console.print(f"[green]{len(files)} files written to {out_dir}[/green]")


@app.command()
def templates(
    template_type: Annotated[Optional[str], typer.Option("--type", "-t", help="Show one template: config, sodp, model")] = None,
) -> None:
    """List the template catalog, or print one template's example."""
    from dpgen.templates import TEMPLATE_CATALOG

    if template_type is None:
        table = Table(title="Templates")
        table.add_column("Type", style="bold")
        table.add_column("Description")
        for key, entry in TEMPLATE_CATALOG.items():
            table.add_row(key, entry["description"])
        console.print(table)
        return

    entry = TEMPLATE_CATALOG.get(template_type)
    if entry is None:
        console.print(f"[red]Unknown template type: {template_type}[/red]")
        console.print(f"Available: {', '.join(TEMPLATE_CATALOG)}")
        raise typer.Exit(1)
    typer.echo(yaml.safe_dump(entry["example"], sort_keys=False), nl=False)
