"""
Record Encoder.

Serializes an AASRecord into the AAS V3 JSON environment format. Every
idShort written here is sanitized and made unique among its siblings, so
the record form never fails the identifier rules even while the markup
form still awaits repair.
"""

import json
import logging
from typing import Any

from aas_editor.schemas.elements import (
    File,
    MultiLanguageProperty,
    Property,
    ReferenceElement,
    SubmodelElementCollection,
    SubmodelElementList,
)
from aas_editor.schemas.environment import AASRecord, ConceptDescription, SpecificAssetId
from aas_editor.services.concepts import ConceptDescriptionCollector
from aas_editor.services.xml_encoder import (
    CARDINALITY_QUALIFIER_TYPE,
    IEC61360_DATA_SPECIFICATION,
    find_asset_identifier,
)
from aas_editor.utils.id_short import sanitize_id_short, unique_id_shorts
from aas_editor.utils.xsd_types import resolve_value_type

logger = logging.getLogger(__name__)


def _lang_strings(entries: dict[str, str]) -> list[dict[str, str]]:
    return [
        {"language": language, "text": text}
        for language, text in entries.items()
        if text.strip()
    ]


def _external_reference(value: str) -> dict[str, Any]:
    return {
        "type": "ExternalReference",
        "keys": [{"type": "GlobalReference", "value": value}],
    }


class RecordEncoder:
    """Encode the element tree into the AAS JSON environment format."""

    def __init__(self, default_specific_asset_id: SpecificAssetId | None = None):
        self.default_specific_asset_id = default_specific_asset_id

    def encode(self, record: AASRecord) -> dict[str, Any]:
        """
        Serialize a record to a JSON-compatible dictionary.

        Args:
            record: Record to encode

        Returns:
            Environment dictionary with assetAdministrationShells,
            submodels and (when any were collected) conceptDescriptions
        """
        collector = ConceptDescriptionCollector()
        submodel_names = unique_id_shorts([submodel.idShort for submodel in record.submodels])
        environment: dict[str, Any] = {
            "assetAdministrationShells": [self._encode_shell(record)],
            "submodels": [
                {
                    "idShort": name,
                    "id": record.submodel_id(submodel),
                    "kind": "Instance",
                    "semanticId": _external_reference(submodel.template_semantic_id()),
                    **(
                        {"submodelElements": self._encode_elements(submodel.elements, collector)}
                        if submodel.elements
                        else {}
                    ),
                    "modelType": "Submodel",
                }
                for submodel, name in zip(record.submodels, submodel_names)
            ],
        }

        concepts = collector.concept_descriptions()
        if concepts:
            names = unique_id_shorts([concept.idShort for concept in concepts])
            environment["conceptDescriptions"] = [
                self._encode_concept_description(concept, name)
                for concept, name in zip(concepts, names)
            ]
        return environment

    def dumps(self, record: AASRecord) -> str:
        return json.dumps(self.encode(record), indent=2, ensure_ascii=False)

    def _encode_shell(self, record: AASRecord) -> dict[str, Any]:
        asset_information: dict[str, Any] = {
            "assetKind": record.assetKind,
            "globalAssetId": record.globalAssetId,
        }

        specific = (
            record.specificAssetId
            or self.default_specific_asset_id
            or find_asset_identifier(record)
        )
        if specific is not None:
            asset_information["specificAssetIds"] = [
                {"name": specific.name, "value": specific.value}
            ]
        if record.assetType:
            asset_information["assetType"] = record.assetType
        if record.thumbnail is not None and record.thumbnail.is_complete():
            asset_information["defaultThumbnail"] = {
                "path": record.thumbnail.path,
                "contentType": record.thumbnail.contentType,
            }

        shell: dict[str, Any] = {
            "idShort": sanitize_id_short(record.idShort),
            "id": record.id,
            "assetInformation": asset_information,
        }
        if record.submodels:
            shell["submodels"] = [
                {
                    "type": "ModelReference",
                    "keys": [{"type": "Submodel", "value": record.submodel_id(submodel)}],
                }
                for submodel in record.submodels
            ]
        shell["modelType"] = "AssetAdministrationShell"
        return shell

    def _encode_elements(self, elements: list, collector: ConceptDescriptionCollector) -> list[dict[str, Any]]:
        names = unique_id_shorts([element.idShort for element in elements])
        return [
            self._encode_element(element, name, collector)
            for element, name in zip(elements, names)
        ]

    def _encode_element(
        self, element, id_short: str, collector: ConceptDescriptionCollector
    ) -> dict[str, Any]:
        collector.collect(element)
        data: dict[str, Any] = {}

        if element.category:
            data["category"] = element.category
        data["idShort"] = id_short
        if element.description and element.description.strip():
            data["description"] = [{"language": "en", "text": element.description}]

        is_reference = isinstance(element, ReferenceElement)
        if element.semanticId and element.semanticId.strip() and not is_reference:
            data["semanticId"] = _external_reference(element.semanticId.strip())

        data["qualifiers"] = [
            {
                "kind": "TemplateQualifier",
                "type": CARDINALITY_QUALIFIER_TYPE,
                "valueType": "xs:string",
                "value": element.cardinality.value,
            }
        ]

        if not is_reference and element.has_semantic_metadata():
            data["embeddedDataSpecifications"] = [self._data_specification(element)]

        if isinstance(element, Property):
            data["valueType"] = resolve_value_type(element.valueType, element.dataType) or "xs:string"
            if element.value.strip():
                data["value"] = element.value

        elif isinstance(element, MultiLanguageProperty):
            entries = _lang_strings(element.value)
            if entries:
                data["value"] = entries

        elif isinstance(element, File):
            if element.value.strip():
                data["value"] = element.value
            data["contentType"] = element.contentType or "application/octet-stream"

        elif isinstance(element, ReferenceElement):
            if element.value is not None and element.value.keys:
                data["value"] = {
                    "type": element.value.type,
                    "keys": [{"type": key.type, "value": key.value} for key in element.value.keys],
                }

        elif isinstance(element, (SubmodelElementCollection, SubmodelElementList)):
            if isinstance(element, SubmodelElementList):
                data["typeValueListElement"] = element.item_type()
                if element.item_type() == "Property" and element.children:
                    first = element.children[0]
                    data["valueTypeListElement"] = (
                        resolve_value_type(getattr(first, "valueType", None), first.dataType)
                        or "xs:string"
                    )
            if element.children:
                data["value"] = self._encode_elements(element.children, collector)

        data["modelType"] = element.modelType
        return data

    def _data_specification(self, source) -> dict[str, Any]:
        content: dict[str, Any] = {
            "preferredName": _lang_strings(source.preferredName)
            or [{"language": "en", "text": source.idShort}],
        }
        short = _lang_strings(source.shortName)
        if short:
            content["shortName"] = short
        if source.unit and source.unit.strip():
            content["unit"] = source.unit
        source_of_definition = getattr(source, "sourceOfDefinition", None)
        if source_of_definition and source_of_definition.strip():
            content["sourceOfDefinition"] = source_of_definition
        if source.dataType and source.dataType.strip():
            content["dataType"] = source.dataType
        if source.description and source.description.strip():
            content["definition"] = [{"language": "en", "text": source.description}]
        content["modelType"] = "DataSpecificationIec61360"

        return {
            "dataSpecification": _external_reference(IEC61360_DATA_SPECIFICATION),
            "dataSpecificationContent": content,
        }

    def _encode_concept_description(self, concept: ConceptDescription, id_short: str) -> dict[str, Any]:
        return {
            "idShort": id_short,
            "id": concept.id,
            "embeddedDataSpecifications": [self._data_specification(concept)],
            "modelType": "ConceptDescription",
        }
