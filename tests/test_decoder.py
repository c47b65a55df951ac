"""
Tests for the AASX / AAS XML decoder.
"""

import zipfile
from io import BytesIO

import pytest

from aas_editor.schemas.elements import Cardinality
from aas_editor.services.decoder import (
    AASXDecodeError,
    parse_cardinality,
    select_markup_entry,
    select_record_entry,
)

NS = "https://admin-shell.io/aas/3/0"


def _archive(entries: dict[str, bytes | str]) -> bytes:
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


class TestEntrySelection:
    """Tests for choosing the primary documents of an archive."""

    def test_prefers_aas_xml(self):
        """Test that the .aas.xml document wins over other XML entries."""
        names = [
            "[Content_Types].xml",
            "aasx/_rels/aasx-origin.rels",
            "aasx/other.xml",
            "aasx/Pump/Pump.aas.xml",
        ]
        assert select_markup_entry(names) == "aasx/Pump/Pump.aas.xml"

    def test_scoring_keywords(self):
        """Test the aasenv and environment keywords."""
        assert select_markup_entry(["a.xml", "environment.xml", "aasenv.xml"]) == "aasenv.xml"
        assert select_markup_entry(["a.xml", "my-environment.xml"]) == "my-environment.xml"

    def test_ties_keep_archive_order(self):
        """Test that the first of equally scored entries is used."""
        assert select_markup_entry(["first.xml", "second.xml"]) == "first.xml"

    def test_no_candidates(self):
        """Test that descriptors alone yield no markup entry."""
        assert select_markup_entry(["[Content_Types].xml", "_rels/.rels"]) is None

    def test_record_entry(self):
        """Test that model.json is preferred for the record form."""
        assert select_record_entry(["aasx/a.json", "aasx/Pump/model.json"]) == "aasx/Pump/model.json"
        assert select_record_entry(["aasx/a.json"]) == "aasx/a.json"
        assert select_record_entry(["aasx/a.xml"]) is None

    def test_parse_cardinality(self):
        """Test both naming styles of cardinality values."""
        assert parse_cardinality("One") is Cardinality.ONE
        assert parse_cardinality("[0..*]") is Cardinality.ZERO_TO_MANY
        assert parse_cardinality(" OneToMany ") is Cardinality.ONE_TO_MANY
        assert parse_cardinality("sometimes") is None


class TestDecodeMarkup:
    """Tests for decoding AAS XML."""

    def test_round_trip(self, markup_encoder, decoder, record):
        """Test that encode then decode preserves structure and values."""
        decoded = decoder.decode_markup(markup_encoder.encode(record))
        assert decoded.idShort == "Pump4711"
        assert decoded.globalAssetId == record.globalAssetId
        assert decoded.assetType == "Pump"

        original = record.submodels[0]
        restored = decoded.submodels[0]
        assert restored.idShort == original.idShort
        assert restored.semanticId == original.semanticId
        assert [(e.idShort, e.modelType) for e in restored.elements] == [
            (e.idShort, e.modelType) for e in original.elements
        ]

        by_id = {element.idShort: element for element in restored.elements}
        assert by_id["ManufacturerName"].value == {"en": "ACME Pumps", "de": "ACME Pumpen"}
        assert by_id["ManufacturerName"].cardinality is Cardinality.ONE
        assert by_id["ManufacturerName"].preferredName["de"] == "Herstellername"
        assert by_id["SerialNumber"].value == "SN-0042"
        assert by_id["YearOfConstruction"].valueType == "xs:integer"
        assert by_id["CompanyLogo"].contentType == "image/png"
        assert [child.idShort for child in by_id["AddressInformation"].children] == [
            "Street",
            "CityTown",
        ]
        assert by_id["ProductLink"].value.keys[0].value == "https://example.com/product"
        assert by_id["Markings"].typeValueListElement == "Property"

    def test_nested_value_not_mistaken_for_parent(self, decoder):
        """Test that a collection's own value lookup uses direct children only."""
        markup = f"""<environment xmlns="{NS}">
          <submodels><submodel><idShort>S</idShort><submodelElements>
            <submodelElementCollection>
              <idShort>Outer</idShort>
              <value>
                <property><idShort>Inner</idShort><valueType>xs:string</valueType><value>x</value></property>
              </value>
            </submodelElementCollection>
            <property><idShort>Empty</idShort><valueType>xs:string</valueType></property>
          </submodelElements></submodel></submodels>
        </environment>"""
        decoded = decoder.decode_markup(markup)
        outer, empty = decoded.submodels[0].elements
        assert outer.children[0].value == "x"
        assert empty.value == ""
        assert empty.cardinality is Cardinality.ZERO_TO_ONE

    def test_unsupported_variants_skipped(self, decoder):
        """Test that element types outside the editor's vocabulary are ignored."""
        markup = f"""<environment xmlns="{NS}"><submodels><submodel>
          <idShort>S</idShort><submodelElements>
            <range><idShort>R</idShort></range>
            <property><idShort>P</idShort></property>
          </submodelElements></submodel></submodels></environment>"""
        decoded = decoder.decode_markup(markup)
        assert [element.idShort for element in decoded.submodels[0].elements] == ["P"]

    def test_malformed_markup(self, decoder):
        """Test that malformed XML raises AASXDecodeError."""
        with pytest.raises(AASXDecodeError):
            decoder.decode_markup("<environment><submodels>")

    def test_wrong_root(self, decoder):
        """Test that documents other than an environment are rejected."""
        with pytest.raises(AASXDecodeError):
            decoder.decode_markup(f'<submodel xmlns="{NS}"/>')

    def test_to_record_fills_identifiers(self, decoder):
        """Test that missing shell identifiers are synthesized."""
        decoded = decoder.decode_markup(
            f'<environment xmlns="{NS}"><assetAdministrationShells><assetAdministrationShell>'
            "<idShort>Bare</idShort></assetAdministrationShell></assetAdministrationShells></environment>"
        )
        record = decoded.to_record()
        assert record.idShort == "Bare"
        assert record.id
        assert record.globalAssetId


class TestDecodeArchive:
    """Tests for decoding AASX archives."""

    def test_invalid_zip(self, decoder):
        """Test that non-zip bytes are rejected."""
        with pytest.raises(AASXDecodeError):
            decoder.decode_archive(b"not a valid aasx file")

    def test_archive_without_markup(self, decoder):
        """Test that an archive without an XML document is rejected."""
        with pytest.raises(AASXDecodeError):
            decoder.decode_archive(_archive({"[Content_Types].xml": "<Types/>", "readme.txt": "x"}))

    def test_attaches_payloads(self, markup_encoder, decoder, record):
        """Test that files referenced by File values are attached."""
        data = _archive(
            {
                "[Content_Types].xml": "<Types/>",
                "aasx/Pump4711/Pump4711.aas.xml": markup_encoder.encode(record),
                "aasx/files/logo.png": b"\x89PNG",
            }
        )
        decoded = decoder.decode_archive(data)
        assert decoded.markupEntry == "aasx/Pump4711/Pump4711.aas.xml"
        logo = next(e for e in decoded.submodels[0].elements if e.idShort == "CompanyLogo")
        assert logo.attachment.fileName == "logo.png"
        assert logo.attachment.content == b"\x89PNG"
