"""
Markup Encoder.

Serializes an AASRecord into AAS V3 XML. Child elements are emitted in the
sequence order of the AAS XML schema; empty-but-present ``<value/>`` markers
are written for blank Property and MultiLanguageProperty values so the
repair engine can later fill required slots in place.
"""

import logging
import re

from lxml import etree

from aas_editor.schemas.elements import (
    File,
    MultiLanguageProperty,
    Property,
    ReferenceElement,
    SubmodelElementCollection,
    SubmodelElementList,
)
from aas_editor.schemas.environment import AASRecord, ConceptDescription, SpecificAssetId, Submodel
from aas_editor.services.concepts import ConceptDescriptionCollector
from aas_editor.utils.xml_utils import AAS_NAMESPACE, to_string
from aas_editor.utils.xsd_types import resolve_value_type

logger = logging.getLogger(__name__)

IEC61360_DATA_SPECIFICATION = (
    "https://admin-shell.io/DataSpecificationTemplates/DataSpecificationIEC61360"
)
CARDINALITY_QUALIFIER_TYPE = "SMT/Cardinality"

ELEMENT_TAGS: dict[str, str] = {
    "Property": "property",
    "MultiLanguageProperty": "multiLanguageProperty",
    "SubmodelElementCollection": "submodelElementCollection",
    "SubmodelElementList": "submodelElementList",
    "File": "file",
    "ReferenceElement": "referenceElement",
}

ASSET_IDENTIFIER_NAMES = re.compile(
    r"^(manufacturer)?(serial(number|no)|assetid(entifier)?|productinstanceid)$"
)


def find_asset_identifier(record: AASRecord) -> SpecificAssetId | None:
    """First non-blank Property named like an asset identifier, depth-first."""

    def walk(elements):
        for element in elements:
            if isinstance(element, Property) and element.value.strip():
                normalized = re.sub(r"[^a-z]", "", element.idShort.lower())
                if ASSET_IDENTIFIER_NAMES.match(normalized):
                    return SpecificAssetId(name=element.idShort, value=element.value.strip())
            if isinstance(element, (SubmodelElementCollection, SubmodelElementList)):
                found = walk(element.children)
                if found is not None:
                    return found
        return None

    for submodel in record.submodels:
        found = walk(submodel.elements)
        if found is not None:
            return found
    return None


class MarkupEncoder:
    """Encode the element tree into the AAS XML environment format."""

    def __init__(
        self,
        namespace: str = AAS_NAMESPACE,
        default_specific_asset_id: SpecificAssetId | None = None,
    ):
        self.namespace = namespace
        self.default_specific_asset_id = default_specific_asset_id

    def encode(self, record: AASRecord) -> str:
        """
        Serialize a record to XML text.

        Args:
            record: Record to encode

        Returns:
            Pretty-printed XML document with one element per line
        """
        collector = ConceptDescriptionCollector()
        root = etree.Element(self._tag("environment"), nsmap={None: self.namespace})

        shells = self._sub(root, "assetAdministrationShells")
        self._write_shell(shells, record)

        if record.submodels:
            submodels = self._sub(root, "submodels")
            for submodel in record.submodels:
                self._write_submodel(submodels, record, submodel, collector)

        concepts = collector.concept_descriptions()
        if concepts:
            container = self._sub(root, "conceptDescriptions")
            for concept in concepts:
                self._write_concept_description(container, concept)

        logger.debug(
            "Encoded %s with %d submodel(s) and %d concept description(s)",
            record.idShort,
            len(record.submodels),
            len(concepts),
        )
        return to_string(root)

    def specific_asset_id(self, record: AASRecord) -> SpecificAssetId | None:
        return (
            record.specificAssetId
            or self.default_specific_asset_id
            or find_asset_identifier(record)
        )

    def _tag(self, name: str) -> str:
        return f"{{{self.namespace}}}{name}"

    def _sub(self, parent: etree._Element, name: str, text: str | None = None) -> etree._Element:
        element = etree.SubElement(parent, self._tag(name))
        if text is not None:
            element.text = text
        return element

    def _write_shell(self, parent: etree._Element, record: AASRecord) -> None:
        shell = self._sub(parent, "assetAdministrationShell")
        self._sub(shell, "idShort", record.idShort)
        self._sub(shell, "id", record.id)

        asset = self._sub(shell, "assetInformation")
        self._sub(asset, "assetKind", record.assetKind)
        self._sub(asset, "globalAssetId", record.globalAssetId)

        specific = self.specific_asset_id(record)
        if specific is not None:
            entry = self._sub(self._sub(asset, "specificAssetIds"), "specificAssetId")
            self._sub(entry, "name", specific.name)
            self._sub(entry, "value", specific.value)

        if record.assetType is not None:
            self._sub(asset, "assetType", record.assetType)

        if record.thumbnail is not None:
            thumbnail = self._sub(asset, "defaultThumbnail")
            self._sub(thumbnail, "path", record.thumbnail.path)
            self._sub(thumbnail, "contentType", record.thumbnail.contentType)

        if record.submodels:
            references = self._sub(shell, "submodels")
            for submodel in record.submodels:
                reference = self._sub(references, "reference")
                self._write_keys(
                    reference, "ModelReference", [("Submodel", record.submodel_id(submodel))]
                )

    def _write_submodel(
        self,
        parent: etree._Element,
        record: AASRecord,
        submodel: Submodel,
        collector: ConceptDescriptionCollector,
    ) -> None:
        node = self._sub(parent, "submodel")
        self._sub(node, "idShort", submodel.idShort)
        self._sub(node, "id", record.submodel_id(submodel))
        self._sub(node, "kind", "Instance")
        self._write_external_reference(node, "semanticId", submodel.template_semantic_id())

        if submodel.elements:
            container = self._sub(node, "submodelElements")
            for element in submodel.elements:
                self._write_element(container, element, collector)

    def _write_element(self, parent: etree._Element, element, collector) -> None:
        collector.collect(element)
        node = self._sub(parent, ELEMENT_TAGS[element.modelType])

        if element.category:
            self._sub(node, "category", element.category)
        self._sub(node, "idShort", element.idShort)
        if element.description and element.description.strip():
            self._write_lang_strings(node, "description", "langStringTextType", {"en": element.description})

        is_reference = isinstance(element, ReferenceElement)
        if element.semanticId and element.semanticId.strip() and not is_reference:
            self._write_external_reference(node, "semanticId", element.semanticId.strip())

        self._write_cardinality(node, element.cardinality.value)

        if not is_reference and element.has_semantic_metadata():
            self._write_data_specification(node, element)

        self._write_body(node, element, collector)

    def _write_body(self, node: etree._Element, element, collector) -> None:
        if isinstance(element, Property):
            value_type = resolve_value_type(element.valueType, element.dataType)
            if value_type:
                self._sub(node, "valueType", value_type)
            self._sub(node, "value", element.value if element.value.strip() else None)

        elif isinstance(element, MultiLanguageProperty):
            entries = {lang: text for lang, text in element.value.items() if text.strip()}
            if entries:
                self._write_lang_strings(node, "value", "langStringTextType", entries)
            else:
                self._sub(node, "value")

        elif isinstance(element, File):
            self._sub(node, "value", element.value if element.value.strip() else None)
            if element.contentType:
                self._sub(node, "contentType", element.contentType)

        elif isinstance(element, ReferenceElement):
            if element.value is not None:
                reference = self._sub(node, "value")
                self._write_keys(
                    reference,
                    element.value.type,
                    [(key.type, key.value) for key in element.value.keys],
                )
            elif element.cardinality.required:
                # empty reference skeleton; repair adds the key
                self._write_keys(self._sub(node, "value"), "ExternalReference", [])

        elif isinstance(element, SubmodelElementList):
            self._sub(node, "typeValueListElement", element.item_type())
            if element.item_type() == "Property":
                first = element.children[0] if element.children else None
                value_type = resolve_value_type(
                    getattr(first, "valueType", None), getattr(first, "dataType", None)
                )
                if value_type:
                    self._sub(node, "valueTypeListElement", value_type)
            self._write_children(node, element.children, collector)

        elif isinstance(element, SubmodelElementCollection):
            self._write_children(node, element.children, collector)

    def _write_children(self, node: etree._Element, children: list, collector) -> None:
        if not children:
            return
        wrapper = self._sub(node, "value")
        for child in children:
            self._write_element(wrapper, child, collector)

    def _write_cardinality(self, node: etree._Element, cardinality: str) -> None:
        qualifier = self._sub(self._sub(node, "qualifiers"), "qualifier")
        self._sub(qualifier, "kind", "TemplateQualifier")
        self._sub(qualifier, "type", CARDINALITY_QUALIFIER_TYPE)
        self._sub(qualifier, "valueType", "xs:string")
        self._sub(qualifier, "value", cardinality)

    def _write_keys(self, parent: etree._Element, reference_type: str, keys: list[tuple[str, str]]) -> None:
        self._sub(parent, "type", reference_type)
        container = self._sub(parent, "keys")
        for key_type, key_value in keys:
            key = self._sub(container, "key")
            self._sub(key, "type", key_type)
            self._sub(key, "value", key_value)

    def _write_external_reference(self, parent: etree._Element, name: str, value: str) -> None:
        reference = self._sub(parent, name)
        self._write_keys(reference, "ExternalReference", [("GlobalReference", value)])

    def _write_lang_strings(
        self, parent: etree._Element, name: str, item_tag: str, entries: dict[str, str]
    ) -> etree._Element:
        container = self._sub(parent, name)
        for language, text in entries.items():
            item = self._sub(container, item_tag)
            self._sub(item, "language", language)
            self._sub(item, "text", text)
        return container

    def _write_data_specification(self, node: etree._Element, source) -> None:
        """Embedded IEC 61360 block for an element or concept description."""
        specification = self._sub(
            self._sub(node, "embeddedDataSpecifications"), "embeddedDataSpecification"
        )
        self._write_external_reference(specification, "dataSpecification", IEC61360_DATA_SPECIFICATION)
        content = self._sub(
            self._sub(specification, "dataSpecificationContent"), "dataSpecificationIec61360"
        )

        preferred = {lang: text for lang, text in source.preferredName.items() if text.strip()}
        self._write_lang_strings(
            content,
            "preferredName",
            "langStringPreferredNameTypeIec61360",
            preferred or {"en": source.idShort},
        )
        short = {lang: text for lang, text in source.shortName.items() if text.strip()}
        if short:
            self._write_lang_strings(content, "shortName", "langStringShortNameTypeIec61360", short)
        if source.unit and source.unit.strip():
            self._sub(content, "unit", source.unit)
        source_of_definition = getattr(source, "sourceOfDefinition", None)
        if source_of_definition and source_of_definition.strip():
            self._sub(content, "sourceOfDefinition", source_of_definition)
        if source.dataType and source.dataType.strip():
            self._sub(content, "dataType", source.dataType)
        if source.description and source.description.strip():
            self._write_lang_strings(
                content,
                "definition",
                "langStringDefinitionTypeIec61360",
                {"en": source.description},
            )

    def _write_concept_description(self, parent: etree._Element, concept: ConceptDescription) -> None:
        node = self._sub(parent, "conceptDescription")
        self._sub(node, "idShort", concept.idShort)
        self._sub(node, "id", concept.id)
        self._write_data_specification(node, concept)
