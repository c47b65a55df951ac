"""
Pydantic models for the AAS environment record.

A record is one shell with its asset information and an ordered list of
submodels. Concept descriptions are never stored here; the encoders derive
them from the element tree on every run.
"""

from typing import Literal

from pydantic import BaseModel, Field

from aas_editor.schemas.elements import Element, FileAttachment

SUBMODEL_SEMANTIC_ID_BASE = "https://admin-shell.io/submodels"


class SpecificAssetId(BaseModel):
    """Name/value pair identifying the asset (e.g. a serial number)."""

    name: str
    value: str


class Thumbnail(BaseModel):
    """Default thumbnail of the asset."""

    path: str
    contentType: str
    attachment: FileAttachment | None = None

    def is_complete(self) -> bool:
        return bool(self.path.strip() and self.contentType.strip())


class Submodel(BaseModel):
    """A named section of the record."""

    idShort: str
    semanticId: str | None = None
    elements: list[Element] = Field(default_factory=list)

    def template_semantic_id(self) -> str:
        return self.semanticId or f"{SUBMODEL_SEMANTIC_ID_BASE}/{self.idShort}"


class AASRecord(BaseModel):
    """The complete editable unit: shell header plus submodels."""

    idShort: str
    id: str
    assetKind: Literal["Instance", "Type", "NotApplicable"] = "Instance"
    globalAssetId: str
    assetType: str | None = None
    specificAssetId: SpecificAssetId | None = None
    thumbnail: Thumbnail | None = None
    submodels: list[Submodel] = Field(default_factory=list)

    def submodel_id(self, submodel: Submodel) -> str:
        """Stable submodel id derived from the shell id."""
        return f"{self.id}/submodels/{submodel.idShort}"

    def get_submodel(self, id_short: str) -> Submodel:
        for submodel in self.submodels:
            if submodel.idShort == id_short:
                return submodel
        raise KeyError(id_short)


class ConceptDescription(BaseModel):
    """Semantic metadata shared by every element with the same semanticId."""

    id: str
    idShort: str
    preferredName: dict[str, str] = Field(default_factory=dict)
    shortName: dict[str, str] = Field(default_factory=dict)
    unit: str | None = None
    dataType: str | None = None
    description: str | None = None
