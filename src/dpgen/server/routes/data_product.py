"""Data product project endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from dpgen.engine.scaffold import ProjectSpec, ProjectSpecError, generate_project_files, project_archive_name
from dpgen.server.deps import _files_payload, _get_settings, _zip_response

router = APIRouter()


def _render(spec: ProjectSpec):
    try:
        return generate_project_files(spec, _get_settings())
    except ProjectSpecError as e:
        raise HTTPException(422, detail={"errors": e.errors})


@router.post("/api/data-product/preview")
def preview_endpoint(spec: ProjectSpec) -> dict:
    return _files_payload(_render(spec))


@router.post("/api/data-product/download")
def download_endpoint(spec: ProjectSpec) -> Response:
    return _zip_response(_render(spec), project_archive_name(spec))
