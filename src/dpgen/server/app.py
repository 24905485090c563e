"""FastAPI backend for the generator UI."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dpgen import __version__
from dpgen.config import Settings

logger = logging.getLogger("dpgen.server")

# Set by CLI before starting uvicorn
PROJECT_DIR: Path = Path.cwd()

app = FastAPI(title="dpgen", version=__version__)


def configure(project_dir: Path, settings: Settings) -> None:
    """Point the app at a project directory and enable CORS for the UI origins."""
    global PROJECT_DIR
    from dpgen.server.deps import invalidate_settings_cache

    PROJECT_DIR = project_dir
    invalidate_settings_cache()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )
    logger.info("Serving project %s", project_dir)


@app.get("/api/health")
def health() -> dict:
    return {"status": "ok", "version": __version__}


# Routers register their endpoints on import.
from dpgen.server.routes.data_product import router as data_product_router  # noqa: E402
from dpgen.server.routes.lens import router as lens_router  # noqa: E402
from dpgen.server.routes.templates import router as templates_router  # noqa: E402

app.include_router(lens_router)
app.include_router(data_product_router)
app.include_router(templates_router)
