"""
Pydantic schemas for the element tree and API request/response models.
"""

from aas_editor.schemas.elements import (
    Cardinality,
    Element,
    File,
    MultiLanguageProperty,
    Property,
    ReferenceElement,
    SubmodelElementCollection,
    SubmodelElementList,
)
from aas_editor.schemas.environment import AASRecord, ConceptDescription, Submodel
from aas_editor.schemas.validation import RepairResult, ValidationReport

__all__ = [
    "Cardinality",
    "Element",
    "Property",
    "MultiLanguageProperty",
    "File",
    "ReferenceElement",
    "SubmodelElementCollection",
    "SubmodelElementList",
    "AASRecord",
    "Submodel",
    "ConceptDescription",
    "ValidationReport",
    "RepairResult",
]
