"""Admin commands: serve."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer

from dpgen.cli import _load_settings, app, console


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Host to bind to")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to bind to")] = 8000,
    project_dir: Annotated[Optional[Path], typer.Option("--project", "-p", help="Directory holding dpgen.yml (default: current dir)")] = None,
) -> None:
    """Start the HTTP API."""
    import uvicorn

    from dpgen import setup_logging

    project_dir = project_dir or Path.cwd()
    settings = _load_settings(project_dir)
    setup_logging(settings.log_level)

    import dpgen.server.app as server_app

    server_app.configure(project_dir, settings)

    console.print(f"[bold]Starting dpgen server at http://{host}:{port}[/bold]")
    uvicorn.run(server_app.app, host=host, port=port)
