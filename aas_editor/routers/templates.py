"""
Template listing and discovery endpoints.

Provides API endpoints for browsing available submodel templates and
previewing the skeleton a template name seeds.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from aas_editor.dependencies import get_catalog
from aas_editor.schemas.environment import Submodel
from aas_editor.schemas.requests import TemplateInfo, TemplateListResponse
from aas_editor.services.catalog import TemplateCatalogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("", response_model=TemplateListResponse)
async def list_templates(
    catalog: Annotated[TemplateCatalogService, Depends(get_catalog)],
    search: Annotated[str | None, Query(description="Search filter")] = None,
    idta_number: Annotated[
        str | None, Query(description="Filter by IDTA number")
    ] = None,
) -> TemplateListResponse:
    """
    List all available submodel templates.

    Templates are fetched from the admin-shell-io/submodel-templates
    GitHub repository; the built-in skeletons are listed when it is
    unreachable.
    """
    try:
        templates = await catalog.list_templates()

        if search:
            search_lower = search.lower()
            templates = [
                t
                for t in templates
                if search_lower in t["name"].lower()
                or search_lower in (t.get("title") or "").lower()
            ]

        if idta_number:
            templates = [t for t in templates if t.get("idta_number") == idta_number]

        return TemplateListResponse(
            templates=[TemplateInfo(**t) for t in templates],
            total=len(templates),
        )
    except Exception as e:
        logger.exception("Failed to list templates")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{template_name}", response_model=Submodel)
async def get_template_skeleton(
    template_name: str,
    catalog: Annotated[TemplateCatalogService, Depends(get_catalog)],
) -> Submodel:
    """
    Get the submodel a template name seeds.

    Unknown names yield the default single-property structure.
    """
    return catalog.build_submodel(template_name)


@router.post("/refresh")
async def refresh_template_cache(
    catalog: Annotated[TemplateCatalogService, Depends(get_catalog)],
) -> dict[str, int]:
    """
    Clear the template index cache.

    Returns the number of cached entries that were cleared.
    """
    return {"cleared": catalog.clear_cache()}
