"""
Pydantic models for editor API requests and responses.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from aas_editor.schemas.elements import Element
from aas_editor.schemas.environment import AASRecord, SpecificAssetId
from aas_editor.schemas.validation import ValidationReport


class NewSessionRequest(BaseModel):
    """Shell header and template names for a fresh record."""

    idShort: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1)
    globalAssetId: str = Field(..., min_length=1)
    assetKind: Literal["Instance", "Type", "NotApplicable"] = "Instance"
    assetType: str | None = None
    specificAssetId: SpecificAssetId | None = None
    templates: list[str] = Field(default_factory=list)

    @field_validator("templates")
    @classmethod
    def unique_templates(cls, v: list[str]) -> list[str]:
        seen = []
        for name in v:
            if name not in seen:
                seen.append(name)
        return seen


class AddSubmodelRequest(BaseModel):
    template: str = Field(..., min_length=1)
    idShort: str | None = None
    index: int | None = None


class CreateElementRequest(BaseModel):
    """Insert an element below parentPath (empty for the submodel root)."""

    parentPath: list[str] = Field(default_factory=list)
    element: Element
    index: int | None = None


class UpdateElementRequest(BaseModel):
    path: list[str] = Field(..., min_length=1)
    changes: dict[str, Any]


class ReorderRequest(BaseModel):
    sourcePath: list[str] = Field(..., min_length=1)
    targetPath: list[str] = Field(..., min_length=1)


class DeletableResponse(BaseModel):
    path: list[str]
    deletable: bool


class SessionResponse(BaseModel):
    """Current state of an editor session."""

    id: str
    revision: int
    validated: bool
    record: AASRecord
    lastReport: ValidationReport | None = None


class TemplateInfo(BaseModel):
    """Information about an available template."""

    name: str
    path: str | None = None
    idta_number: str | None = None
    title: str | None = None
    source: Literal["github", "builtin"] = "github"


class TemplateListResponse(BaseModel):
    """Response for template listing endpoint."""

    templates: list[TemplateInfo]
    total: int
