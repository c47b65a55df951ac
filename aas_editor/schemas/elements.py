"""
Pydantic models for the element tree.

Every SubmodelElement variant the editor supports is a separate model keyed
by ``modelType``. ``Element`` is the discriminated union over all of them, so
a payload that a variant does not carry (e.g. ``children`` on a Property)
simply does not exist on that class.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class Cardinality(str, Enum):
    """Declared optionality/multiplicity of an element."""

    ONE = "One"
    ZERO_TO_ONE = "ZeroToOne"
    ZERO_TO_MANY = "ZeroToMany"
    ONE_TO_MANY = "OneToMany"

    @property
    def required(self) -> bool:
        return self in (Cardinality.ONE, Cardinality.ONE_TO_MANY)


class Key(BaseModel):
    """A single key of a reference."""

    type: str = "GlobalReference"
    value: str


class Reference(BaseModel):
    """An ordered list of keys, as carried by a ReferenceElement."""

    type: Literal["ExternalReference", "ModelReference"] = "ExternalReference"
    keys: list[Key] = Field(default_factory=list)


class FileAttachment(BaseModel):
    """Binary payload shipped inside the archive next to a File element."""

    fileName: str
    content: bytes = b""

    model_config = {"ser_json_bytes": "base64", "val_json_bytes": "base64"}


class ElementBase(BaseModel):
    """Fields shared by every element variant."""

    idShort: str
    cardinality: Cardinality = Cardinality.ZERO_TO_ONE
    description: str | None = None
    semanticId: str | None = None
    preferredName: dict[str, str] = Field(default_factory=dict)
    shortName: dict[str, str] = Field(default_factory=dict)
    dataType: str | None = None
    unit: str | None = None
    category: str | None = None
    sourceOfDefinition: str | None = None

    model_config = {
        "extra": "forbid",
        "validate_assignment": True,
    }

    def has_semantic_metadata(self) -> bool:
        """True when at least one IEC 61360 field carries text."""
        if any(text.strip() for text in self.preferredName.values()):
            return True
        if any(text.strip() for text in self.shortName.values()):
            return True
        return any(
            (field or "").strip()
            for field in (self.unit, self.dataType, self.description)
        )


class Property(ElementBase):
    modelType: Literal["Property"] = "Property"
    valueType: str | None = None
    value: str = ""

    def is_empty(self) -> bool:
        return not self.value.strip()


class MultiLanguageProperty(ElementBase):
    modelType: Literal["MultiLanguageProperty"] = "MultiLanguageProperty"
    value: dict[str, str] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        return not any(text.strip() for text in self.value.values())


class File(ElementBase):
    modelType: Literal["File"] = "File"
    value: str = ""
    contentType: str | None = None
    attachment: FileAttachment | None = None

    def is_empty(self) -> bool:
        return not self.value.strip()


class ReferenceElement(ElementBase):
    modelType: Literal["ReferenceElement"] = "ReferenceElement"
    value: Reference | None = None

    def is_empty(self) -> bool:
        if self.value is None:
            return True
        return not any(key.value.strip() for key in self.value.keys)


class SubmodelElementCollection(ElementBase):
    modelType: Literal["SubmodelElementCollection"] = "SubmodelElementCollection"
    children: list["Element"] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.children


class SubmodelElementList(ElementBase):
    modelType: Literal["SubmodelElementList"] = "SubmodelElementList"
    children: list["Element"] = Field(default_factory=list)
    typeValueListElement: str | None = None

    def is_empty(self) -> bool:
        return not self.children

    def item_type(self) -> str:
        """Model type of the list items, falling back to the first child."""
        if self.typeValueListElement:
            return self.typeValueListElement
        if self.children:
            return self.children[0].modelType
        return "SubmodelElement"


Element = Annotated[
    Union[
        Property,
        MultiLanguageProperty,
        File,
        ReferenceElement,
        SubmodelElementCollection,
        SubmodelElementList,
    ],
    Field(discriminator="modelType"),
]

CONTAINER_TYPES = (SubmodelElementCollection, SubmodelElementList)

SubmodelElementCollection.model_rebuild()
SubmodelElementList.model_rebuild()

ELEMENT_ADAPTER: TypeAdapter[Element] = TypeAdapter(Element)
