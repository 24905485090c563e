"""Template catalog endpoint."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException

from dpgen.templates import TEMPLATE_CATALOG

router = APIRouter()


@router.get("/api/templates")
def list_templates(type: Optional[str] = None) -> dict:
    """All templates, or a single one with ``?type=config|sodp|model``."""
    if type is None:
        return {"templates": TEMPLATE_CATALOG}
    if type not in TEMPLATE_CATALOG:
        raise HTTPException(404, f"Unknown template type: {type}. Available: {', '.join(TEMPLATE_CATALOG)}")
    return {"type": type, **TEMPLATE_CATALOG[type]}
