"""Shared dependencies and helpers for the server routes."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import HTTPException
from fastapi.responses import Response

from dpgen.config import CONFIG_FILENAME, ConfigError, Settings, load_config
from dpgen.engine.archive import ArchiveError, GeneratedFile, build_file_tree, build_zip

logger = logging.getLogger("dpgen.server")


# ---------------------------------------------------------------------------
# State accessors (globals live in app.py, set by the CLI)
# ---------------------------------------------------------------------------


def _get_project_dir() -> Path:
    from dpgen.server.app import PROJECT_DIR

    return PROJECT_DIR


# ---------------------------------------------------------------------------
# Settings cache
# ---------------------------------------------------------------------------

_settings_cache: dict[str, Any] = {"settings": None, "mtime": 0.0, "path": None}


def _get_settings() -> Settings:
    """Load dpgen.yml with file-mtime-based caching."""
    project_dir = _get_project_dir()
    config_path = project_dir / CONFIG_FILENAME
    try:
        mtime = config_path.stat().st_mtime
    except FileNotFoundError:
        return Settings(project_dir=project_dir)

    if (
        _settings_cache["settings"] is not None
        and _settings_cache["path"] == str(config_path)
        and _settings_cache["mtime"] == mtime
    ):
        return _settings_cache["settings"]

    try:
        settings = load_config(project_dir)
    except ConfigError as e:
        logger.error("Invalid %s: %s", CONFIG_FILENAME, e)
        raise HTTPException(500, str(e))
    _settings_cache["settings"] = settings
    _settings_cache["mtime"] = mtime
    _settings_cache["path"] = str(config_path)
    return settings


def invalidate_settings_cache() -> None:
    _settings_cache["settings"] = None


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------


def _files_payload(files: list[GeneratedFile]) -> dict:
    """Preview body: every file with its content, plus the nested tree."""
    return {
        "files": [{"path": f.path, "content": f.content} for f in files],
        "tree": [node.to_dict() for node in build_file_tree(f.path for f in files)],
    }


def _zip_response(files: list[GeneratedFile], filename: str) -> Response:
    try:
        data = build_zip(files)
    except ArchiveError as e:
        raise HTTPException(400, str(e))
    return Response(
        content=data,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
