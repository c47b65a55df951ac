"""
Editor endpoints for element tree operations.

Element paths in query parameters are idShort chains joined with "/",
relative to the submodel.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query

from aas_editor.dependencies import get_editor_session, get_tree_service
from aas_editor.routers.sessions import session_response
from aas_editor.schemas.requests import (
    CreateElementRequest,
    DeletableResponse,
    ReorderRequest,
    SessionResponse,
    UpdateElementRequest,
)
from aas_editor.services.session import EditorSession
from aas_editor.services.tree import ElementNotFoundError, ElementTreeService, TreeOperationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions/{session_id}/submodels/{submodel}", tags=["editor"])


def _split_path(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


@router.get("/elements")
async def get_elements(
    submodel: str,
    session: Annotated[EditorSession, Depends(get_editor_session)],
    tree: Annotated[ElementTreeService, Depends(get_tree_service)],
    path: Annotated[str, Query(description="Element path; empty for the submodel root")] = "",
) -> Any:
    """
    Get one element, or every root element of the submodel when no path is given.
    """
    try:
        segments = _split_path(path)
        if not segments:
            return session.record.get_submodel(submodel).elements
        return tree.get_element(session.record, submodel, segments)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Submodel '{submodel}' not found")
    except ElementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TreeOperationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/elements", response_model=SessionResponse, status_code=201)
async def create_element(
    submodel: str,
    request: CreateElementRequest,
    session: Annotated[EditorSession, Depends(get_editor_session)],
    tree: Annotated[ElementTreeService, Depends(get_tree_service)],
) -> SessionResponse:
    try:
        record = tree.create_element(
            session.record, submodel, request.parentPath, request.element, request.index
        )
        session.apply(record)
        return session_response(session)
    except ElementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TreeOperationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/elements", response_model=SessionResponse)
async def update_element(
    submodel: str,
    request: UpdateElementRequest,
    session: Annotated[EditorSession, Depends(get_editor_session)],
    tree: Annotated[ElementTreeService, Depends(get_tree_service)],
) -> SessionResponse:
    """
    Change fields of one element.

    The element type cannot be changed and idShorts stay unique among siblings.
    """
    try:
        session.apply(tree.update_element(session.record, submodel, request.path, request.changes))
        return session_response(session)
    except ElementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TreeOperationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/elements", response_model=SessionResponse)
async def delete_element(
    submodel: str,
    path: Annotated[str, Query(min_length=1)],
    session: Annotated[EditorSession, Depends(get_editor_session)],
    tree: Annotated[ElementTreeService, Depends(get_tree_service)],
) -> SessionResponse:
    """Remove an optional element; required elements are refused."""
    try:
        session.apply(tree.delete_element(session.record, submodel, _split_path(path)))
        return session_response(session)
    except ElementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TreeOperationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/elements/reorder", response_model=SessionResponse)
async def reorder_element(
    submodel: str,
    request: ReorderRequest,
    session: Annotated[EditorSession, Depends(get_editor_session)],
    tree: Annotated[ElementTreeService, Depends(get_tree_service)],
) -> SessionResponse:
    try:
        record = tree.reorder_element(
            session.record, submodel, request.sourcePath, request.targetPath
        )
        session.apply(record)
        return session_response(session)
    except ElementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TreeOperationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/elements/deletable", response_model=DeletableResponse)
async def is_deletable(
    submodel: str,
    path: Annotated[str, Query(min_length=1)],
    session: Annotated[EditorSession, Depends(get_editor_session)],
    tree: Annotated[ElementTreeService, Depends(get_tree_service)],
) -> DeletableResponse:
    segments = _split_path(path)
    try:
        element = tree.get_element(session.record, submodel, segments)
    except ElementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TreeOperationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DeletableResponse(path=segments, deletable=tree.is_deletable(element))
