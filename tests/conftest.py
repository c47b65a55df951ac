"""
Shared fixtures for the editor tests.
"""

import pytest

from aas_editor.schemas.elements import (
    Cardinality,
    File,
    Key,
    MultiLanguageProperty,
    Property,
    Reference,
    ReferenceElement,
    SubmodelElementCollection,
    SubmodelElementList,
)
from aas_editor.schemas.environment import AASRecord, Submodel
from aas_editor.services.decoder import AASXDecoder
from aas_editor.services.json_encoder import RecordEncoder
from aas_editor.services.xml_encoder import MarkupEncoder

ECLASS_MANUFACTURER = "0173-1#02-AAO677#002"
ECLASS_SERIAL = "0173-1#02-AAM556#002"


def build_record() -> AASRecord:
    """A small nameplate-like record touching every element variant."""
    return AASRecord(
        idShort="Pump4711",
        id="https://example.com/aas/pump4711",
        globalAssetId="https://example.com/asset/pump4711",
        assetType="Pump",
        submodels=[
            Submodel(
                idShort="Nameplate",
                semanticId="https://admin-shell.io/zvei/nameplate/2/0/Nameplate",
                elements=[
                    MultiLanguageProperty(
                        idShort="ManufacturerName",
                        cardinality=Cardinality.ONE,
                        semanticId=ECLASS_MANUFACTURER,
                        preferredName={"en": "Manufacturer name", "de": "Herstellername"},
                        description="Legally valid designation of the manufacturer",
                        value={"en": "ACME Pumps", "de": "ACME Pumpen"},
                    ),
                    Property(
                        idShort="SerialNumber",
                        semanticId=ECLASS_SERIAL,
                        valueType="xs:string",
                        value="SN-0042",
                    ),
                    Property(
                        idShort="YearOfConstruction",
                        valueType="integer",
                        value="2024",
                    ),
                    SubmodelElementCollection(
                        idShort="AddressInformation",
                        cardinality=Cardinality.ONE,
                        children=[
                            Property(
                                idShort="Street",
                                cardinality=Cardinality.ONE,
                                valueType="xs:string",
                                value="Main Street 1",
                            ),
                            Property(
                                idShort="CityTown",
                                cardinality=Cardinality.ONE,
                                valueType="xs:string",
                                value="Springfield",
                            ),
                        ],
                    ),
                    File(
                        idShort="CompanyLogo",
                        value="/aasx/files/logo.png",
                        contentType="image/png",
                    ),
                    ReferenceElement(
                        idShort="ProductLink",
                        semanticId="https://example.com/semantics/link",
                        value=Reference(
                            type="ExternalReference",
                            keys=[Key(type="GlobalReference", value="https://example.com/product")],
                        ),
                    ),
                    SubmodelElementList(
                        idShort="Markings",
                        typeValueListElement="Property",
                        children=[
                            Property(idShort="Marking1", valueType="xs:string", value="CE"),
                        ],
                    ),
                ],
            )
        ],
    )


@pytest.fixture
def record() -> AASRecord:
    return build_record()


@pytest.fixture
def markup_encoder() -> MarkupEncoder:
    return MarkupEncoder()


@pytest.fixture
def record_encoder() -> RecordEncoder:
    return RecordEncoder()


@pytest.fixture
def decoder() -> AASXDecoder:
    return AASXDecoder()


def single_element_record(*elements, submodel: str = "Section") -> AASRecord:
    """Record with one submodel holding the given root elements."""
    return AASRecord(
        idShort="Shell",
        id="https://example.com/aas/shell",
        globalAssetId="https://example.com/asset/shell",
        submodels=[Submodel(idShort=submodel, elements=list(elements))],
    )
