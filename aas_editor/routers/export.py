"""
Export endpoints for generating output formats.

Supports AAS XML, AAS JSON and AASX. Every export requires the current
revision of the session to have passed validation.
"""

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from aas_editor.dependencies import (
    get_editor_session,
    get_markup_encoder,
    get_packager,
    get_record_encoder,
)
from aas_editor.services.json_encoder import RecordEncoder
from aas_editor.services.packager import AASX_MEDIA_TYPE, AASXPackager
from aas_editor.services.session import EditorSession
from aas_editor.services.xml_encoder import MarkupEncoder
from aas_editor.utils.id_short import sanitize_id_short

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions/{session_id}/export", tags=["export"])


@router.get("/{format}")
async def export_session(
    format: Literal["xml", "json", "aasx"],
    session: Annotated[EditorSession, Depends(get_editor_session)],
    markup_encoder: Annotated[MarkupEncoder, Depends(get_markup_encoder)],
    record_encoder: Annotated[RecordEncoder, Depends(get_record_encoder)],
    packager: Annotated[AASXPackager, Depends(get_packager)],
) -> Response:
    """
    Export the validated record in the specified format.

    Formats:
    - xml: AAS XML environment
    - json: AAS JSON environment
    - aasx: AASX package holding both forms and all attachments
    """
    if not session.validated:
        raise HTTPException(
            status_code=409,
            detail="The current revision has not passed validation",
        )

    filename = sanitize_id_short(session.record.idShort)
    try:
        if format == "xml":
            content = session.ensure_markup(markup_encoder).encode("utf-8")
            media_type = "application/xml"
        elif format == "json":
            content = record_encoder.dumps(session.record).encode("utf-8")
            media_type = "application/json"
        else:
            content = packager.build(
                session.record,
                session.ensure_markup(markup_encoder),
                record_encoder.dumps(session.record),
            )
            media_type = AASX_MEDIA_TYPE

        return Response(
            content=content,
            media_type=media_type,
            headers={"Content-Disposition": f'attachment; filename="{filename}.{format}"'},
        )
    except Exception as e:
        logger.exception("Failed to export session %s as %s", session.id, format)
        raise HTTPException(status_code=500, detail=str(e))
