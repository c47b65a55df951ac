"""
Decoder for AASX archives and AAS XML documents.

Rebuilds the element tree from the primary markup document of an uploaded
archive. Lookups always use direct children (never a depth-first search) so
a nested child's ``value`` or metadata is never mistaken for its parent's.
"""

import logging
import posixpath
import zipfile
from io import BytesIO
from typing import Any

from lxml import etree
from pydantic import BaseModel, Field

from aas_editor.schemas.elements import (
    ELEMENT_ADAPTER,
    Cardinality,
    FileAttachment,
    Key,
    Reference,
)
from aas_editor.schemas.environment import (
    AASRecord,
    SpecificAssetId,
    Submodel,
    Thumbnail,
)
from aas_editor.utils.xml_utils import (
    child,
    child_text,
    children,
    find_path,
    local_name,
    parse_document,
)

logger = logging.getLogger(__name__)

SUPPORTED_MODEL_TYPES = {
    "Property",
    "MultiLanguageProperty",
    "SubmodelElementCollection",
    "SubmodelElementList",
    "File",
    "ReferenceElement",
}

CARDINALITY_QUALIFIER_TYPES = ("Multiplicity", "cardinality", "Cardinality", "SMT/Cardinality")

CARDINALITY_VALUES: dict[str, Cardinality] = {
    "one": Cardinality.ONE,
    "[1]": Cardinality.ONE,
    "zerotoone": Cardinality.ZERO_TO_ONE,
    "[0..1]": Cardinality.ZERO_TO_ONE,
    "zerotomany": Cardinality.ZERO_TO_MANY,
    "[0..*]": Cardinality.ZERO_TO_MANY,
    "onetomany": Cardinality.ONE_TO_MANY,
    "[1..*]": Cardinality.ONE_TO_MANY,
}


class AASXDecodeError(ValueError):
    """Raised when an archive or markup document cannot be decoded."""


class DecodedEnvironment(BaseModel):
    """Shell header and submodels recovered from one markup document."""

    idShort: str
    id: str | None = None
    assetKind: str | None = None
    globalAssetId: str | None = None
    assetType: str | None = None
    specificAssetId: SpecificAssetId | None = None
    thumbnail: Thumbnail | None = None
    submodels: list[Submodel] = Field(default_factory=list)
    markupEntry: str | None = None
    recordEntry: str | None = None

    def to_record(self) -> AASRecord:
        """Build an editable record, filling identifiers the document lacked."""
        shell_id = self.id or f"https://example.com/aas/{self.idShort}"
        asset_kind = self.assetKind if self.assetKind in ("Instance", "Type", "NotApplicable") else "Instance"
        return AASRecord(
            idShort=self.idShort,
            id=shell_id,
            assetKind=asset_kind,
            globalAssetId=self.globalAssetId or f"{shell_id}/asset",
            assetType=self.assetType,
            specificAssetId=self.specificAssetId,
            thumbnail=self.thumbnail,
            submodels=self.submodels,
        )


def _score_markup_entry(name: str) -> int:
    lowered = name.lower()
    score = 0
    if lowered.endswith(".aas.xml"):
        score += 3
    if "aasenv" in lowered:
        score += 2
    if "environment" in lowered:
        score += 1
    return score


def _is_package_descriptor(name: str) -> bool:
    return "[Content_Types]" in name or "_rels/" in name or name.startswith("_rels")


def select_markup_entry(names: list[str]) -> str | None:
    """
    Pick the primary markup document of an archive.

    Names signalling the main AAS document win; otherwise the
    first XML entry that is not a package descriptor is used.
    """
    candidates = [
        name
        for name in names
        if name.lower().endswith(".xml") and not _is_package_descriptor(name)
    ]
    if not candidates:
        return None
    # max() keeps the first of equally scored entries
    return max(candidates, key=_score_markup_entry)


def select_record_entry(names: list[str]) -> str | None:
    candidates = [
        name
        for name in names
        if name.lower().endswith(".json") and not _is_package_descriptor(name)
    ]
    for name in candidates:
        if posixpath.basename(name).lower() == "model.json":
            return name
    return candidates[0] if candidates else None


def parse_cardinality(value: str | None) -> Cardinality | None:
    if value is None:
        return None
    return CARDINALITY_VALUES.get(value.strip().lower())


class AASXDecoder:
    """Decode uploaded archives and markup documents into the element tree."""

    def decode_archive(self, data: bytes) -> DecodedEnvironment:
        """
        Decode an AASX archive.

        Args:
            data: Raw archive bytes

        Returns:
            The decoded environment, with File and thumbnail payloads attached

        Raises:
            AASXDecodeError: If the archive or its markup document is invalid
        """
        try:
            archive = zipfile.ZipFile(BytesIO(data))
        except zipfile.BadZipFile as e:
            raise AASXDecodeError(f"Not a valid AASX archive: {e}") from e

        with archive:
            names = archive.namelist()
            markup_entry = select_markup_entry(names)
            if markup_entry is None:
                raise AASXDecodeError("No AAS XML document found in archive")

            logger.info("Decoding AAS markup from archive entry %s", markup_entry)
            try:
                markup = archive.read(markup_entry)
            except (KeyError, zipfile.BadZipFile) as e:
                raise AASXDecodeError(f"Cannot read {markup_entry}: {e}") from e
            decoded = self.decode_markup(markup)
            decoded.markupEntry = markup_entry
            decoded.recordEntry = select_record_entry(names)

            self._attach_payloads(archive, set(names), decoded)
        return decoded

    def decode_markup(self, text: str | bytes) -> DecodedEnvironment:
        """
        Decode an AAS XML environment document.

        Raises:
            AASXDecodeError: If the text is not well-formed or not an environment
        """
        try:
            root = parse_document(text)
        except etree.XMLSyntaxError as e:
            raise AASXDecodeError(f"Malformed AAS XML: {e}") from e

        root_name = local_name(root)
        if root_name != "environment":
            raise AASXDecodeError(f"Unrecognized root element <{root_name}>")

        decoded = DecodedEnvironment(idShort="Unknown")
        shell = find_path(root, "assetAdministrationShells", "assetAdministrationShell")
        if shell is not None:
            self._read_shell(shell, decoded)
        else:
            logger.warning("AAS XML contains no assetAdministrationShell")

        submodels = child(root, "submodels")
        if submodels is not None:
            for node in children(submodels, "submodel"):
                submodel = self._parse_submodel(node)
                if submodel is not None:
                    decoded.submodels.append(submodel)

        logger.info(
            "Decoded shell %s with %d submodel(s)", decoded.idShort, len(decoded.submodels)
        )
        return decoded

    def _read_shell(self, shell: etree._Element, decoded: DecodedEnvironment) -> None:
        decoded.idShort = (child_text(shell, "idShort") or "").strip() or "Unknown"
        decoded.id = (child_text(shell, "id") or "").strip() or None

        asset = child(shell, "assetInformation")
        if asset is None:
            return
        decoded.assetKind = (child_text(asset, "assetKind") or "").strip() or None
        decoded.globalAssetId = (child_text(asset, "globalAssetId") or "").strip() or None
        decoded.assetType = child_text(asset, "assetType")

        entry = find_path(asset, "specificAssetIds", "specificAssetId")
        if entry is not None:
            name = (child_text(entry, "name") or "").strip()
            value = (child_text(entry, "value") or "").strip()
            if name and value:
                decoded.specificAssetId = SpecificAssetId(name=name, value=value)

        thumbnail = child(asset, "defaultThumbnail")
        if thumbnail is not None:
            path = (child_text(thumbnail, "path") or "").strip()
            if path:
                decoded.thumbnail = Thumbnail(
                    path=path,
                    contentType=(child_text(thumbnail, "contentType") or "").strip(),
                )

    def _parse_submodel(self, node: etree._Element) -> Submodel | None:
        id_short = (child_text(node, "idShort") or "").strip()
        if not id_short:
            logger.warning("Skipping submodel without idShort")
            return None

        elements = []
        container = child(node, "submodelElements")
        if container is not None:
            elements = self._parse_elements(container)

        return Submodel(
            idShort=id_short,
            semanticId=self._reference_value(child(node, "semanticId")),
            elements=elements,
        )

    def _parse_elements(self, container: etree._Element) -> list:
        elements = []
        for node in children(container):
            element = self._parse_element(node)
            if element is not None:
                elements.append(element)
        return elements

    def _parse_element(self, node: etree._Element):
        """Parse one submodel element; unsupported variants are skipped."""
        tag = local_name(node)
        model_type = tag[:1].upper() + tag[1:]
        if model_type not in SUPPORTED_MODEL_TYPES:
            logger.warning("Skipping unsupported element type %s", model_type)
            return None

        id_short = (child_text(node, "idShort") or "").strip()
        if not id_short:
            logger.warning("Skipping %s without idShort", model_type)
            return None

        data: dict[str, Any] = {
            "modelType": model_type,
            "idShort": id_short,
            "cardinality": self._extract_cardinality(node),
            "category": (child_text(node, "category") or "").strip() or None,
            "semanticId": self._reference_value(child(node, "semanticId")),
        }
        data.update(self._extract_semantic_metadata(node))
        if not data.get("description"):
            data["description"] = self._preferred_text(child(node, "description"))

        value_node = child(node, "value")

        if model_type == "Property":
            data["valueType"] = (child_text(node, "valueType") or "").strip() or None
            data["value"] = (value_node.text or "") if value_node is not None else ""

        elif model_type == "MultiLanguageProperty":
            data["value"] = self._lang_strings(value_node)

        elif model_type == "File":
            data["value"] = (value_node.text or "").strip() if value_node is not None else ""
            data["contentType"] = (child_text(node, "contentType") or "").strip() or None

        elif model_type == "ReferenceElement":
            data["value"] = self._parse_reference(value_node)

        else:
            data["children"] = self._parse_elements(value_node) if value_node is not None else []
            if model_type == "SubmodelElementList":
                data["typeValueListElement"] = (
                    child_text(node, "typeValueListElement") or ""
                ).strip() or None

        return ELEMENT_ADAPTER.validate_python(data)

    def _extract_cardinality(self, node: etree._Element) -> Cardinality:
        """Cardinality from template qualifiers; optional when none is declared."""
        qualifiers = child(node, "qualifiers")
        if qualifiers is not None:
            for qualifier in children(qualifiers, "qualifier"):
                if (child_text(qualifier, "type") or "").strip() in CARDINALITY_QUALIFIER_TYPES:
                    cardinality = parse_cardinality(child_text(qualifier, "value"))
                    if cardinality is not None:
                        return cardinality
        return Cardinality.ZERO_TO_ONE

    def _extract_semantic_metadata(self, node: etree._Element) -> dict[str, Any]:
        """IEC 61360 fields from the element's own embedded data specification."""
        specifications = child(node, "embeddedDataSpecifications")
        if specifications is None:
            return {}

        for specification in children(specifications, "embeddedDataSpecification"):
            content = find_path(specification, "dataSpecificationContent", "dataSpecificationIec61360")
            if content is None:
                continue
            metadata: dict[str, Any] = {
                "preferredName": self._lang_strings(child(content, "preferredName")),
                "shortName": self._lang_strings(child(content, "shortName")),
            }
            for field in ("dataType", "unit", "sourceOfDefinition"):
                text = (child_text(content, field) or "").strip()
                if text:
                    metadata[field] = text
            definition = self._preferred_text(child(content, "definition"))
            if definition:
                metadata["description"] = definition
            return metadata
        return {}

    def _lang_strings(self, container: etree._Element | None) -> dict[str, str]:
        entries: dict[str, str] = {}
        if container is None:
            return entries
        for item in children(container):
            language = (child_text(item, "language") or "").strip()
            text = child_text(item, "text") or ""
            if language and text:
                entries[language] = text
        return entries

    def _preferred_text(self, container: etree._Element | None) -> str | None:
        """English entry of a language-tagged block, else the first one."""
        entries = self._lang_strings(container)
        if not entries:
            return None
        for language, text in entries.items():
            if language.lower().startswith("en"):
                return text
        return next(iter(entries.values()))

    def _reference_value(self, reference: etree._Element | None) -> str | None:
        """Value of the first key, never the reference type marker."""
        if reference is None:
            return None
        key = find_path(reference, "keys", "key")
        if key is None:
            return None
        return (child_text(key, "value") or "").strip() or None

    def _parse_reference(self, reference: etree._Element | None) -> Reference | None:
        if reference is None:
            return None
        reference_type = (child_text(reference, "type") or "").strip()
        keys = []
        container = child(reference, "keys")
        if container is not None:
            for key in children(container, "key"):
                value = (child_text(key, "value") or "").strip()
                if value:
                    keys.append(
                        Key(type=(child_text(key, "type") or "").strip() or "GlobalReference", value=value)
                    )
        if reference_type not in ("ExternalReference", "ModelReference"):
            reference_type = "ExternalReference"
        return Reference(type=reference_type, keys=keys)

    def _attach_payloads(
        self, archive: zipfile.ZipFile, names: set[str], decoded: DecodedEnvironment
    ) -> None:
        """Attach archive entries referenced by File values and the thumbnail."""

        def read(path: str) -> FileAttachment | None:
            entry = path.lstrip("/")
            if entry not in names:
                return None
            return FileAttachment(fileName=posixpath.basename(entry), content=archive.read(entry))

        def walk(elements):
            for element in elements:
                if element.modelType == "File" and element.value:
                    element.attachment = read(element.value)
                elif element.modelType in ("SubmodelElementCollection", "SubmodelElementList"):
                    walk(element.children)

        for submodel in decoded.submodels:
            walk(submodel.elements)
        if decoded.thumbnail is not None:
            decoded.thumbnail.attachment = read(decoded.thumbnail.path)
