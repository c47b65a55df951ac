"""
Session endpoints for creating, loading and discarding editable records.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from aas_editor.config import get_settings
from aas_editor.dependencies import (
    get_catalog,
    get_decoder,
    get_editor_session,
    get_session_store,
    get_tree_service,
)
from aas_editor.schemas.environment import AASRecord
from aas_editor.schemas.requests import AddSubmodelRequest, NewSessionRequest, SessionResponse
from aas_editor.services.catalog import TemplateCatalogService
from aas_editor.services.decoder import AASXDecoder
from aas_editor.services.session import EditorSession, SessionStore
from aas_editor.services.tree import ElementNotFoundError, ElementTreeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def session_response(session: EditorSession) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        revision=session.revision,
        validated=session.validated,
        record=session.record,
        lastReport=session.last_report,
    )


@router.post("", response_model=SessionResponse, status_code=201)
async def create_session(
    request: NewSessionRequest,
    store: Annotated[SessionStore, Depends(get_session_store)],
    catalog: Annotated[TemplateCatalogService, Depends(get_catalog)],
) -> SessionResponse:
    """
    Start a new record.

    Every requested template name becomes one submodel seeded from the
    matching built-in skeleton.
    """
    try:
        submodels = [catalog.build_submodel(name) for name in request.templates]
        record = AASRecord(
            **request.model_dump(exclude={"templates"}),
            submodels=submodels,
        )
        return session_response(store.create(record))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Failed to create session")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/upload", response_model=SessionResponse, status_code=201)
async def upload_environment(
    file: Annotated[UploadFile, File(...)],
    store: Annotated[SessionStore, Depends(get_session_store)],
    decoder: Annotated[AASXDecoder, Depends(get_decoder)],
) -> SessionResponse:
    """
    Upload an AASX archive (or a bare AAS XML document) and open it for editing.
    """
    settings = get_settings()
    filename = (file.filename or "").lower()
    if not filename.endswith((".aasx", ".xml")):
        raise HTTPException(status_code=400, detail="Only AASX or AAS XML files are accepted")

    contents = await file.read()
    max_size = settings.max_upload_size_mb * 1024 * 1024
    if len(contents) > max_size:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.max_upload_size_mb}MB",
        )

    try:
        if filename.endswith(".aasx"):
            decoded = decoder.decode_archive(contents)
        else:
            decoded = decoder.decode_markup(contents)
        return session_response(store.create(decoded.to_record()))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Failed to load uploaded file %s", file.filename)
        raise HTTPException(status_code=500, detail="Failed to parse uploaded file")


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session: Annotated[EditorSession, Depends(get_editor_session)],
) -> SessionResponse:
    return session_response(session)


@router.delete("/{session_id}", status_code=204)
async def delete_session(
    session: Annotated[EditorSession, Depends(get_editor_session)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> None:
    store.delete(session.id)


@router.post("/{session_id}/submodels", response_model=SessionResponse, status_code=201)
async def add_submodel(
    request: AddSubmodelRequest,
    session: Annotated[EditorSession, Depends(get_editor_session)],
    catalog: Annotated[TemplateCatalogService, Depends(get_catalog)],
    tree: Annotated[ElementTreeService, Depends(get_tree_service)],
) -> SessionResponse:
    """Append a submodel seeded from a template skeleton."""
    try:
        submodel = catalog.build_submodel(request.template, id_short=request.idShort)
        session.apply(tree.add_submodel(session.record, submodel, request.index))
        return session_response(session)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{session_id}/submodels/{submodel}", response_model=SessionResponse)
async def remove_submodel(
    submodel: str,
    session: Annotated[EditorSession, Depends(get_editor_session)],
    tree: Annotated[ElementTreeService, Depends(get_tree_service)],
) -> SessionResponse:
    try:
        session.apply(tree.remove_submodel(session.record, submodel))
        return session_response(session)
    except ElementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
