"""
AASX archive writer.

Packs the markup document, the record form and binary attachments into an
Open Packaging Conventions archive with the AASX relationship layout. The
OPC container is written with pyecma376_2, the package library basyx's own
AASXWriter sits on; the markup is packed as the text that was validated
rather than re-serialized from basyx objects.
"""

import logging
import posixpath
from io import BytesIO
from urllib.parse import quote

import pyecma376_2
from basyx.aas.adapter.aasx import (
    RELATIONSHIP_TYPE_AAS_SPEC,
    RELATIONSHIP_TYPE_AAS_SUPL,
    RELATIONSHIP_TYPE_AASX_ORIGIN,
)
from pyecma376_2.package_model import check_part_name

from aas_editor.schemas.elements import CONTAINER_TYPES, File
from aas_editor.schemas.environment import AASRecord
from aas_editor.utils.id_short import sanitize_id_short
from aas_editor.utils.mime import guess_content_type

logger = logging.getLogger(__name__)

AASX_MEDIA_TYPE = "application/asset-administration-shell-package+xml"
AASX_ORIGIN_PART = "/aasx/aasx-origin"

DEFAULT_CONTENT_TYPES = {
    "rels": "application/vnd.openxmlformats-package.relationships+xml",
    "xml": "text/xml",
    "json": "application/json",
}


def _relationships(rel_type: str, targets: list[str]) -> list[pyecma376_2.OPCRelationship]:
    return [
        pyecma376_2.OPCRelationship(
            f"r{number}", rel_type, target, pyecma376_2.OPCTargetMode.INTERNAL
        )
        for number, target in enumerate(targets, start=1)
    ]


def _part_name(path: str, fallback_name: str) -> str:
    """Absolute OPC part name for a File value."""
    if "://" not in path and path.strip():
        part = "/" + path.strip().lstrip("/")
        try:
            check_part_name(part)
            return part
        except ValueError:
            logger.warning("'%s' is not a valid package part name, storing it under /aasx/files", path)
    return f"/aasx/files/{quote(fallback_name)}"


class AASXPackager:
    """Build AASX archives from an encoded record."""

    def build(self, record: AASRecord, markup: str, record_json: str | None = None) -> bytes:
        """
        Write the archive.

        Args:
            record: Tree providing attachments and the thumbnail
            markup: Encoded (and validated) AAS XML
            record_json: Optional record form stored next to the markup

        Returns:
            AASX archive bytes

        Raises:
            ValueError: If an attachment file name cannot form a part name
        """
        name = sanitize_id_short(record.idShort)
        spec_part = f"/aasx/{name}/{name}.aas.xml"
        supplementary: dict[str, bytes] = {}

        def collect(elements):
            for element in elements:
                if isinstance(element, File) and element.attachment is not None:
                    part = _part_name(element.value, element.attachment.fileName)
                    supplementary[part] = element.attachment.content
                elif isinstance(element, CONTAINER_TYPES):
                    collect(element.children)

        for submodel in record.submodels:
            collect(submodel.elements)

        thumbnail_part = None
        if record.thumbnail is not None and record.thumbnail.attachment is not None:
            thumbnail_part = _part_name(record.thumbnail.path, record.thumbnail.attachment.fileName)

        buffer = BytesIO()
        with pyecma376_2.ZipPackageWriter(buffer) as writer:
            writer.content_types.default_types.update(DEFAULT_CONTENT_TYPES)
            for part in list(supplementary) + ([thumbnail_part] if thumbnail_part else []):
                extension = posixpath.splitext(part)[1].lstrip(".").lower()
                if extension and extension not in writer.content_types.default_types:
                    writer.content_types.default_types[extension] = guess_content_type(part)

            with writer.open_part(AASX_ORIGIN_PART, "text/plain") as part:
                part.write(b"Intentionally empty.")
            with writer.open_part(spec_part, "text/xml") as part:
                part.write(markup.encode("utf-8"))
            if record_json is not None:
                with writer.open_part(f"/aasx/{name}/model.json", "application/json") as part:
                    part.write(record_json.encode("utf-8"))

            for part_name, content in supplementary.items():
                with writer.open_part(part_name, guess_content_type(part_name)) as part:
                    part.write(content)
            if supplementary:
                writer.write_relationships(
                    _relationships(RELATIONSHIP_TYPE_AAS_SUPL, list(supplementary)), spec_part
                )

            root_relationships = _relationships(RELATIONSHIP_TYPE_AASX_ORIGIN, [AASX_ORIGIN_PART])
            if thumbnail_part is not None:
                # a File may already carry the same part
                if thumbnail_part not in supplementary:
                    content_type = record.thumbnail.contentType.strip() or guess_content_type(thumbnail_part)
                    with writer.open_part(thumbnail_part, content_type) as part:
                        part.write(record.thumbnail.attachment.content)
                root_relationships.append(
                    pyecma376_2.OPCRelationship(
                        "r2",
                        pyecma376_2.RELATIONSHIP_TYPE_THUMBNAIL,
                        thumbnail_part,
                        pyecma376_2.OPCTargetMode.INTERNAL,
                    )
                )

            writer.write_relationships(
                _relationships(RELATIONSHIP_TYPE_AAS_SPEC, [spec_part]), AASX_ORIGIN_PART
            )
            writer.write_relationships(root_relationships)

        logger.info(
            "Packed %s with %d attachment(s)", name, len(supplementary) + (1 if thumbnail_part else 0)
        )
        return buffer.getvalue()
