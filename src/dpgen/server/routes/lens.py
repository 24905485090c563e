"""Lens generator endpoints: SQL extraction, validation, preview, and download."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel

from dpgen.engine.extract import extract_schema
from dpgen.engine.lens import build_lens_files, lens_archive_name
from dpgen.engine.models import LensConfig
from dpgen.engine.validation import validate_lens_config
from dpgen.server.deps import _files_payload, _get_settings, _zip_response

logger = logging.getLogger("dpgen.server")

router = APIRouter()


# --- Pydantic models ---


class ExtractRequest(BaseModel):
    sql: str = ""


# --- Endpoints ---


@router.post("/api/lens/extract")
def extract_endpoint(req: ExtractRequest) -> dict:
    """Derive a table definition from a pasted SELECT statement."""
    settings = _get_settings()
    if len(req.sql) > settings.server.max_sql_length:
        raise HTTPException(400, f"SQL is too long (max {settings.server.max_sql_length} characters)")

    result = extract_schema(
        req.sql,
        default_source=settings.defaults.source,
        default_schema=settings.defaults.schema,
    )
    if not result.ok:
        raise HTTPException(
            400,
            detail={
                "kind": result.error.kind.value,
                "message": result.error.message,
                "hint": result.error.hint,
                "warnings": result.warnings,
            },
        )
    return {"table": result.table.model_dump(by_alias=True), "warnings": result.warnings}


@router.post("/api/lens/validate")
def validate_endpoint(config: LensConfig) -> dict:
    report = validate_lens_config(config)
    return {"valid": report.valid, "errors": report.errors, "warnings": report.warnings}


@router.post("/api/lens/preview")
def preview_endpoint(config: LensConfig) -> dict:
    """Render the lens bundle without validating it."""
    files = build_lens_files(config, _get_settings())
    return _files_payload(files)


@router.post("/api/lens/download")
def download_endpoint(config: LensConfig) -> Response:
    report = validate_lens_config(config)
    if not report.valid:
        raise HTTPException(422, detail={"errors": report.errors, "warnings": report.warnings})
    files = build_lens_files(config, _get_settings())
    logger.info("Lens download %r: %d file(s)", config.project_name, len(files))
    return _zip_response(files, lens_archive_name(config))
