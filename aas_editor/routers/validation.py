"""
Validation and auto-repair endpoints.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from aas_editor.dependencies import (
    get_editor_session,
    get_markup_encoder,
    get_repair_engine,
    get_synchronizer,
    get_validation_service,
)
from aas_editor.schemas.validation import RemediationResponse, ValidationReport
from aas_editor.services.repair import RepairEngine
from aas_editor.services.session import EditorSession
from aas_editor.services.synchronizer import TreeSynchronizer
from aas_editor.services.validator import ValidationInProgressError, ValidationService
from aas_editor.services.xml_encoder import MarkupEncoder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions/{session_id}", tags=["validation"])


@router.post("/validate", response_model=ValidationReport)
async def validate_session(
    session: Annotated[EditorSession, Depends(get_editor_session)],
    validator: Annotated[ValidationService, Depends(get_validation_service)],
) -> ValidationReport:
    """
    Run local checks plus both remote schema checks.

    A second request while a run is in flight is refused with 409.
    """
    try:
        return await validator.validate(session)
    except ValidationInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Validation failed for session %s", session.id)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/repair", response_model=RemediationResponse)
async def repair_session(
    session: Annotated[EditorSession, Depends(get_editor_session)],
    encoder: Annotated[MarkupEncoder, Depends(get_markup_encoder)],
    engine: Annotated[RepairEngine, Depends(get_repair_engine)],
    synchronizer: Annotated[TreeSynchronizer, Depends(get_synchronizer)],
    validator: Annotated[ValidationService, Depends(get_validation_service)],
) -> RemediationResponse:
    """
    Repair the current markup, bring the tree in line with it, then validate once.
    """
    if session.validating:
        raise HTTPException(status_code=409, detail="Validation already in progress")

    try:
        result = engine.repair(session.ensure_markup(encoder))
        record = synchronizer.resync(session.record, result.markup)
        session.apply_repair(record, result.markup)
        report = await validator.validate(session)
        return RemediationResponse(repair=result, report=report)
    except ValidationInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Repair failed for session %s", session.id)
        raise HTTPException(status_code=500, detail=str(e))
