"""
Tests for the markup and record encoders and the concept description collector.
"""

import json

from lxml import etree

from conftest import ECLASS_MANUFACTURER, ECLASS_SERIAL, single_element_record

from aas_editor.schemas.elements import (
    Cardinality,
    File,
    MultiLanguageProperty,
    Property,
    ReferenceElement,
    SubmodelElementCollection,
)
from aas_editor.schemas.environment import SpecificAssetId
from aas_editor.services.concepts import ConceptDescriptionCollector
from aas_editor.services.xml_encoder import MarkupEncoder

NS = {"aas": "https://admin-shell.io/aas/3/0"}


def _parse(markup: str) -> etree._Element:
    return etree.fromstring(markup.encode("utf-8"))


def _element(root: etree._Element, id_short: str) -> etree._Element:
    matches = root.xpath(
        "//aas:submodelElements//*[aas:idShort=$name]", namespaces=NS, name=id_short
    )
    assert matches, f"{id_short} not encoded"
    return matches[0]


def _local_children(node: etree._Element) -> list[str]:
    return [etree.QName(child).localname for child in node]


class TestConceptDescriptionCollector:
    """Tests for concept description synthesis."""

    def test_first_seen_wins(self):
        """Test that later elements with the same semanticId do not override."""
        collector = ConceptDescriptionCollector()
        collector.collect(Property(idShort="First", semanticId="urn:x", unit="V"))
        collector.collect(Property(idShort="Second", semanticId="urn:x", unit="A"))
        concepts = collector.concept_descriptions()
        assert len(concepts) == 1
        assert concepts[0].idShort == "First"
        assert concepts[0].unit == "V"

    def test_reference_elements_excluded(self):
        """Test that ReferenceElements never produce concept descriptions."""
        collector = ConceptDescriptionCollector()
        collector.collect(ReferenceElement(idShort="Link", semanticId="urn:ref"))
        assert len(collector) == 0

    def test_recurses_into_containers(self, record):
        """Test that nested elements are collected."""
        concepts = ConceptDescriptionCollector().collect_record(record)
        assert [concept.id for concept in concepts] == [ECLASS_MANUFACTURER, ECLASS_SERIAL]


class TestMarkupEncoder:
    """Tests for the AAS XML encoder."""

    def test_document_structure(self, markup_encoder, record):
        """Test environment layout and submodel references."""
        root = _parse(markup_encoder.encode(record))
        assert etree.QName(root).localname == "environment"
        assert _local_children(root) == [
            "assetAdministrationShells",
            "submodels",
            "conceptDescriptions",
        ]
        key_values = root.xpath(
            "//aas:assetAdministrationShell/aas:submodels/aas:reference/aas:keys/aas:key/aas:value/text()",
            namespaces=NS,
        )
        assert key_values == ["https://example.com/aas/pump4711/submodels/Nameplate"]

    def test_element_child_order(self, markup_encoder, record):
        """Test that element children follow schema sequence order."""
        root = _parse(markup_encoder.encode(record))
        manufacturer = _element(root, "ManufacturerName")
        assert _local_children(manufacturer) == [
            "idShort",
            "description",
            "semanticId",
            "qualifiers",
            "embeddedDataSpecifications",
            "value",
        ]
        serial = _element(root, "SerialNumber")
        assert _local_children(serial)[-2:] == ["valueType", "value"]
        logo = _element(root, "CompanyLogo")
        assert _local_children(logo)[-2:] == ["value", "contentType"]

    def test_cardinality_qualifier(self, markup_encoder, record):
        """Test that the cardinality is carried as a template qualifier."""
        root = _parse(markup_encoder.encode(record))
        street = _element(root, "Street")
        assert street.xpath("aas:qualifiers/aas:qualifier/aas:type/text()", namespaces=NS) == [
            "SMT/Cardinality"
        ]
        assert street.xpath("aas:qualifiers/aas:qualifier/aas:value/text()", namespaces=NS) == ["One"]

    def test_empty_markers(self, markup_encoder):
        """Test that blank Property and MLP values keep an empty value node."""
        record = single_element_record(
            Property(idShort="Blank", cardinality=Cardinality.ONE, valueType="xs:string"),
            MultiLanguageProperty(idShort="NoText", value={"en": "  "}),
        )
        root = _parse(markup_encoder.encode(record))
        blank_value = _element(root, "Blank").find("aas:value", NS)
        assert blank_value is not None and not blank_value.text
        mlp_value = _element(root, "NoText").find("aas:value", NS)
        assert mlp_value is not None and len(mlp_value) == 0

    def test_unresolvable_value_type_omitted(self, markup_encoder):
        """Test that a Property without a resolvable type gets no valueType node."""
        root = _parse(markup_encoder.encode(single_element_record(Property(idShort="Untyped"))))
        assert "valueType" not in _local_children(_element(root, "Untyped"))

    def test_value_type_derived_from_data_type(self, markup_encoder):
        """Test that the IEC data type fills in a missing value type."""
        record = single_element_record(
            Property(idShort="Voltage", dataType="REAL_MEASURE", unit="V", value="230")
        )
        root = _parse(markup_encoder.encode(record))
        assert _element(root, "Voltage").findtext("aas:valueType", namespaces=NS) == "xs:double"

    def test_empty_collection_has_no_wrapper(self, markup_encoder):
        """Test that containers without children omit the value wrapper."""
        record = single_element_record(SubmodelElementCollection(idShort="Empty"))
        root = _parse(markup_encoder.encode(record))
        assert "value" not in _local_children(_element(root, "Empty"))

    def test_reference_element_body(self, markup_encoder, record):
        """Test that ReferenceElements carry only their reference block."""
        root = _parse(markup_encoder.encode(record))
        link = _element(root, "ProductLink")
        children = _local_children(link)
        assert "semanticId" not in children
        assert "embeddedDataSpecifications" not in children
        assert link.xpath("aas:value/aas:keys/aas:key/aas:value/text()", namespaces=NS) == [
            "https://example.com/product"
        ]

    def test_required_reference_without_value_gets_skeleton(self, markup_encoder):
        """Test that a required ReferenceElement without keys still writes its value node."""
        record = single_element_record(
            ReferenceElement(idShort="Ref", cardinality=Cardinality.ONE),
            ReferenceElement(idShort="Optional"),
        )
        root = _parse(markup_encoder.encode(record))
        value = _element(root, "Ref").find("aas:value", NS)
        assert value is not None
        assert _local_children(value) == ["type", "keys"]
        assert value.findtext("aas:type", namespaces=NS) == "ExternalReference"
        assert len(value.find("aas:keys", NS)) == 0
        assert _element(root, "Optional").find("aas:value", NS) is None

    def test_concept_descriptions_omitted_without_semantic_ids(self, markup_encoder):
        """Test that no conceptDescriptions block is written when nothing was collected."""
        root = _parse(markup_encoder.encode(single_element_record(Property(idShort="Plain"))))
        assert "conceptDescriptions" not in _local_children(root)

    def test_preferred_name_falls_back_to_id_short(self, markup_encoder):
        """Test the metadata block falls back to idShort as preferred name."""
        record = single_element_record(Property(idShort="Rated", unit="W", valueType="xs:int"))
        root = _parse(markup_encoder.encode(record))
        texts = _element(root, "Rated").xpath(".//aas:preferredName//aas:text/text()", namespaces=NS)
        assert texts == ["Rated"]

    def test_specific_asset_id_from_serial_number(self, markup_encoder, record):
        """Test the specific asset id is derived from an identifier-like Property."""
        root = _parse(markup_encoder.encode(record))
        entry = root.find(".//aas:specificAssetIds/aas:specificAssetId", NS)
        assert entry.findtext("aas:name", namespaces=NS) == "SerialNumber"
        assert entry.findtext("aas:value", namespaces=NS) == "SN-0042"

    def test_configured_specific_asset_id(self, record):
        """Test that a configured specific asset id takes precedence."""
        encoder = MarkupEncoder(default_specific_asset_id=SpecificAssetId(name="Customer", value="C-1"))
        root = _parse(encoder.encode(record))
        assert root.findtext(".//aas:specificAssetId/aas:name", namespaces=NS) == "Customer"

    def test_one_element_per_line(self, markup_encoder, record):
        """Test that output is pretty printed."""
        markup = markup_encoder.encode(record)
        assert markup.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')
        assert "\n    <assetAdministrationShell>" in markup


class TestRecordEncoder:
    """Tests for the AAS JSON encoder."""

    def test_sanitizes_id_shorts(self, record_encoder):
        """Test that every emitted idShort matches the identifier pattern."""
        record = single_element_record(
            Property(idShort="My Sensor!!", valueType="xs:string", value="1"),
            submodel="2nd Section",
        )
        record.idShort = "shell #1"
        document = record_encoder.encode(record)
        assert document["assetAdministrationShells"][0]["idShort"] == "shell1"
        assert document["submodels"][0]["idShort"] == "X2ndSection"
        assert document["submodels"][0]["submodelElements"][0]["idShort"] == "MySensor"

    def test_colliding_id_shorts_made_unique(self, record_encoder):
        """Test that siblings sanitizing to the same idShort stay distinct."""
        record = single_element_record(
            Property(idShort="Temp!", valueType="xs:string", value="a"),
            Property(idShort="Temp", valueType="xs:string", value="b"),
            SubmodelElementCollection(
                idShort="Group",
                children=[
                    Property(idShort="Temp?", value="c"),
                    Property(idShort="Temp#", value="d"),
                ],
            ),
        )
        elements = record_encoder.encode(record)["submodels"][0]["submodelElements"]
        assert [(e["idShort"], e.get("value")) for e in elements[:2]] == [
            ("Temp_2", "a"),
            ("Temp", "b"),
        ]
        assert [child["idShort"] for child in elements[2]["value"]] == ["Temp", "Temp_2"]

    def test_model_types_and_defaults(self, record_encoder, record):
        """Test modelType keys and record-form fallbacks."""
        document = record_encoder.encode(record)
        elements = document["submodels"][0]["submodelElements"]
        by_id = {element["idShort"]: element for element in elements}
        assert by_id["ManufacturerName"]["modelType"] == "MultiLanguageProperty"
        assert by_id["YearOfConstruction"]["valueType"] == "xs:integer"
        assert by_id["Markings"]["typeValueListElement"] == "Property"
        assert by_id["Markings"]["valueTypeListElement"] == "xs:string"
        assert document["conceptDescriptions"][0]["modelType"] == "ConceptDescription"

    def test_omits_empty_collections_and_values(self, record_encoder):
        """Test that empty arrays and blank strings are left out."""
        record = single_element_record(
            Property(idShort="Untyped"),
            MultiLanguageProperty(idShort="Empty"),
            File(idShort="Manual"),
            SubmodelElementCollection(idShort="Group"),
        )
        document = record_encoder.encode(record)
        by_id = {e["idShort"]: e for e in document["submodels"][0]["submodelElements"]}
        assert by_id["Untyped"]["valueType"] == "xs:string"
        assert "value" not in by_id["Untyped"]
        assert "value" not in by_id["Empty"]
        assert "value" not in by_id["Manual"]
        assert by_id["Manual"]["contentType"] == "application/octet-stream"
        assert "value" not in by_id["Group"]
        assert "conceptDescriptions" not in document

    def test_dumps_is_json(self, record_encoder, record):
        """Test the text form parses back to the same document."""
        assert json.loads(record_encoder.dumps(record)) == record_encoder.encode(record)
