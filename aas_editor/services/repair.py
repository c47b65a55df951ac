"""
Auto-Repair Engine.

Turns a non-compliant AAS XML document into a schema-compliant one. The
engine is a pure function from text to text: the input is parsed into a
private tree and run through a fixed, ordered list of passes. Each pass
scans the whole document, is total (never fails on unexpected shapes) and
idempotent (running it twice equals running it once).
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable

from lxml import etree

from aas_editor.schemas.elements import Cardinality
from aas_editor.services.decoder import CARDINALITY_QUALIFIER_TYPES, AASXDecodeError, parse_cardinality
from aas_editor.services.xml_encoder import IEC61360_DATA_SPECIFICATION
from aas_editor.schemas.validation import RepairResult
from aas_editor.utils.id_short import sanitize_id_short, unique_id_shorts
from aas_editor.utils.mime import guess_content_type, is_valid_content_type
from aas_editor.utils.xml_utils import (
    child,
    child_text,
    children,
    find_path,
    iter_named,
    local_name,
    nearest_id_short,
    new_child,
    parse_document,
    remove,
    to_string,
)
from aas_editor.utils.xsd_types import normalize_value_type, placeholder_value, value_type_from_data_type

logger = logging.getLogger(__name__)

SUBMODEL_ELEMENT_TAGS = {
    "property",
    "multiLanguageProperty",
    "range",
    "blob",
    "file",
    "referenceElement",
    "relationshipElement",
    "annotatedRelationshipElement",
    "submodelElementCollection",
    "submodelElementList",
    "entity",
    "basicEventElement",
    "operation",
    "capability",
}

LANG_STRING_TAGS = {
    "description": "langStringTextType",
    "displayName": "langStringNameType",
    "preferredName": "langStringPreferredNameTypeIec61360",
    "shortName": "langStringShortNameTypeIec61360",
    "definition": "langStringDefinitionTypeIec61360",
}

OPERATION_VARIABLE_CONTAINERS = ("inputVariables", "outputVariables", "inoutputVariables")

LANGUAGE_TAG_PATTERN = re.compile(r"^[a-zA-Z]{2,3}(-[a-zA-Z0-9]{1,8})*$")

DEFAULT_LANGUAGE = "en"


@dataclass(frozen=True)
class RepairContext:
    """Values synthesized content may draw from."""

    global_asset_id: str | None = None
    submodel_ids: tuple[str, ...] = ()
    placeholder_uri: str = "urn:placeholder"
    placeholder_asset_type: str = "Unspecified"

    @classmethod
    def from_document(cls, root: etree._Element, **defaults) -> "RepairContext":
        global_asset_id = None
        for node in iter_named(root, "globalAssetId"):
            if (node.text or "").strip():
                global_asset_id = node.text.strip()
                break
        submodel_ids = []
        submodels = child(root, "submodels")
        if submodels is not None:
            for submodel in children(submodels, "submodel"):
                submodel_id = (child_text(submodel, "id") or "").strip()
                if submodel_id:
                    submodel_ids.append(submodel_id)
        return cls(global_asset_id=global_asset_id, submodel_ids=tuple(submodel_ids), **defaults)


RepairPass = Callable[[etree._Element, RepairContext], None]


def _fallback_text(node: etree._Element) -> str:
    return nearest_id_short(node) or "n/a"


def _add_lang_string(container: etree._Element, text: str, language: str = DEFAULT_LANGUAGE) -> None:
    item_tag = LANG_STRING_TAGS.get(local_name(container), "langStringTextType")
    item = new_child(container, item_tag)
    new_child(item, "language", language)
    new_child(item, "text", text)


def _has_lang_strings(container: etree._Element) -> bool:
    return any(local_name(item).startswith("langString") for item in children(container))


def _cardinality_of(node: etree._Element) -> Cardinality | None:
    qualifiers = child(node, "qualifiers")
    if qualifiers is None:
        return None
    for qualifier in children(qualifiers, "qualifier"):
        if (child_text(qualifier, "type") or "").strip() in CARDINALITY_QUALIFIER_TYPES:
            return parse_cardinality(child_text(qualifier, "value"))
    return None


def _is_required(node: etree._Element) -> bool:
    cardinality = _cardinality_of(node)
    return cardinality is not None and cardinality.required


def _data_type_of(node: etree._Element) -> str | None:
    specifications = child(node, "embeddedDataSpecifications")
    if specifications is None:
        return None
    for specification in children(specifications, "embeddedDataSpecification"):
        content = find_path(specification, "dataSpecificationContent", "dataSpecificationIec61360")
        if content is not None:
            data_type = (child_text(content, "dataType") or "").strip()
            if data_type:
                return data_type
    return None


def _value_type_of(node: etree._Element) -> str:
    """Declared value type, else derived from the IEC data type, else string."""
    declared = normalize_value_type(child_text(node, "valueType"))
    return declared or value_type_from_data_type(_data_type_of(node)) or "xs:string"


def _insert_before(parent: etree._Element, name: str, anchors: tuple[str, ...], text: str | None = None) -> etree._Element:
    """Create a child right before the first existing anchor, else append."""
    for anchor in anchors:
        found = child(parent, anchor)
        if found is not None:
            return new_child(parent, name, text, index=parent.index(found))
    return new_child(parent, name, text)


def fill_required_values(root: etree._Element, context: RepairContext) -> None:
    """Put placeholders into empty required value slots."""
    for node in list(root.iter(etree.Element)):
        tag = local_name(node)
        if tag not in ("property", "multiLanguageProperty", "file", "referenceElement"):
            continue
        required = _is_required(node)
        value = child(node, "value")

        if tag == "referenceElement":
            # keys are filled by ensure_reference_keys
            if required and value is None:
                value = new_child(node, "value")
                new_child(value, "type", "ExternalReference")
                new_child(value, "keys")

        elif tag == "property":
            if required and (value is None or not (value.text or "").strip()):
                if value is None:
                    value = _insert_before(node, "value", ("valueId",))
                value.text = placeholder_value(_value_type_of(node))

        elif tag == "multiLanguageProperty":
            if value is not None and _has_lang_strings(value):
                continue
            if required:
                if value is None:
                    value = _insert_before(node, "value", ("valueId",))
                for stray in children(value):
                    value.remove(stray)
                value.text = None
                item = new_child(value, "langStringTextType")
                new_child(item, "language", DEFAULT_LANGUAGE)
                new_child(item, "text", _fallback_text(node))
            elif value is not None:
                remove(value)

        else:
            if value is not None and (value.text or "").strip():
                continue
            if required:
                if value is None:
                    value = _insert_before(node, "value", ("contentType",))
                value.text = context.placeholder_uri
            elif value is not None:
                remove(value)


def ensure_text_block_entries(root: etree._Element, context: RepairContext) -> None:
    """description/displayName blocks need at least one language entry."""
    for name in ("description", "displayName"):
        for block in list(iter_named(root, name)):
            if not _has_lang_strings(block):
                block.text = None
                _add_lang_string(block, _fallback_text(block.getparent()))


def remove_empty_data_specifications(root: etree._Element, context: RepairContext) -> None:
    for specification in list(iter_named(root, "embeddedDataSpecification")):
        if not children(specification):
            remove(specification)
    for wrapper in list(iter_named(root, "embeddedDataSpecifications")):
        if not children(wrapper, "embeddedDataSpecification"):
            remove(wrapper)


def ensure_definition_entries(root: etree._Element, context: RepairContext) -> None:
    for content in list(iter_named(root, "dataSpecificationIec61360")):
        definition = child(content, "definition")
        if definition is not None and not _has_lang_strings(definition):
            definition.text = None
            _add_lang_string(definition, _fallback_text(content))


def remove_empty_value_lists(root: etree._Element, context: RepairContext) -> None:
    """The schema rejects a valueList without value reference pairs."""
    for value_list in list(iter_named(root, "valueList")):
        pairs = child(value_list, "valueReferencePairs")
        if pairs is None or not children(pairs, "valueReferencePair"):
            remove(value_list)


def ensure_preferred_name(root: etree._Element, context: RepairContext) -> None:
    for content in list(iter_named(root, "dataSpecificationIec61360")):
        preferred = child(content, "preferredName")
        if preferred is None:
            preferred = new_child(content, "preferredName", index=0)
        if not _has_lang_strings(preferred):
            preferred.text = None
            _add_lang_string(preferred, _fallback_text(content))


def ensure_reference_keys(root: etree._Element, context: RepairContext) -> None:
    """Every reference needs a type and at least one key."""
    for keys in list(iter_named(root, "keys")):
        reference = keys.getparent()
        if reference is None:
            continue
        container = reference.getparent()
        is_submodel_reference = (
            container is not None
            and local_name(container) == "submodels"
            and local_name(container.getparent()) == "assetAdministrationShell"
        )

        if child(reference, "type") is None:
            reference_type = "ModelReference" if is_submodel_reference else "ExternalReference"
            new_child(reference, "type", reference_type, index=0)

        if children(keys, "key"):
            continue
        if is_submodel_reference:
            position = children(container).index(reference)
            if position < len(context.submodel_ids):
                key_value = context.submodel_ids[position]
            else:
                key_value = f"{context.global_asset_id or context.placeholder_uri}/submodels/{position}"
            key_type = "Submodel"
        else:
            key_value = context.global_asset_id or context.placeholder_uri
            key_type = "GlobalReference"
        key = new_child(keys, "key")
        new_child(key, "type", key_type)
        new_child(key, "value", key_value)


def ensure_specific_asset_ids(root: etree._Element, context: RepairContext) -> None:
    for container in list(iter_named(root, "specificAssetIds")):
        entries = children(container, "specificAssetId")
        if not entries:
            entries = [new_child(container, "specificAssetId")]
        for entry in entries:
            name = child(entry, "name")
            if name is None:
                name = _insert_before(entry, "name", ("value", "externalSubjectId"))
            if not (name.text or "").strip():
                name.text = sanitize_id_short(_fallback_text(container))
            value = child(entry, "value")
            if value is None:
                value = _insert_before(entry, "value", ("externalSubjectId",))
            if not (value.text or "").strip():
                value.text = context.global_asset_id or context.placeholder_uri


def ensure_asset_type(root: etree._Element, context: RepairContext) -> None:
    for asset_type in list(iter_named(root, "assetType")):
        if not (asset_type.text or "").strip():
            asset_type.text = context.placeholder_asset_type


def remove_empty_concept_descriptions(root: etree._Element, context: RepairContext) -> None:
    for container in list(iter_named(root, "conceptDescriptions")):
        if not children(container, "conceptDescription"):
            remove(container)


def sanitize_id_shorts(root: etree._Element, context: RepairContext) -> None:
    """idShorts must match the pattern and be unique within their container."""
    siblings: dict[etree._Element, list[etree._Element]] = {}
    for node in iter_named(root, "idShort"):
        owner = node.getparent()
        container = owner.getparent() if owner is not None else None
        siblings.setdefault(container if container is not None else owner, []).append(node)

    for nodes in siblings.values():
        names = unique_id_shorts([node.text for node in nodes])
        for node, name in zip(nodes, names):
            if node.text != name:
                node.text = name


def complete_data_specification_skeletons(root: etree._Element, context: RepairContext) -> None:
    """Partially filled embedded data specifications get their required parts."""
    for specification in list(iter_named(root, "embeddedDataSpecification")):
        reference = child(specification, "dataSpecification")
        if reference is None:
            reference = new_child(specification, "dataSpecification", index=0)
        elif specification.index(reference) != 0:
            specification.remove(reference)
            specification.insert(0, reference)
        if not children(reference):
            new_child(reference, "type", "ExternalReference")
            key = new_child(new_child(reference, "keys"), "key")
            new_child(key, "type", "GlobalReference")
            new_child(key, "value", IEC61360_DATA_SPECIFICATION)

        content = child(specification, "dataSpecificationContent")
        if content is None:
            content = new_child(specification, "dataSpecificationContent")
        if not children(content):
            iec = new_child(content, "dataSpecificationIec61360")
            preferred = new_child(iec, "preferredName")
            _add_lang_string(preferred, _fallback_text(specification))


def remove_empty_containers(root: etree._Element, context: RepairContext) -> None:
    """Drop wrappers that hold no recognized child."""
    for variable in list(iter_named(root, "operationVariable")):
        if not children(variable, "value") or not children(child(variable, "value")):
            remove(variable)
    for name in OPERATION_VARIABLE_CONTAINERS:
        for container in list(iter_named(root, name)):
            if not children(container, "operationVariable"):
                remove(container)

    for container in list(iter_named(root, "submodelElements")):
        if not any(local_name(node) in SUBMODEL_ELEMENT_TAGS for node in children(container)):
            remove(container)

    for owner_tag in ("submodelElementCollection", "submodelElementList"):
        for owner in list(iter_named(root, owner_tag)):
            value = child(owner, "value")
            if value is not None and not any(
                local_name(node) in SUBMODEL_ELEMENT_TAGS for node in children(value)
            ):
                remove(value)


def normalize_language_tag(tag: str | None) -> str:
    """
    Reduce a language tag to a minimal valid BCP 47 form.

    Examples:
        "EN" -> "en", "de_DE" -> "de-DE", "english" -> "en"
    """
    value = (tag or "").strip().replace("_", "-")
    if not LANGUAGE_TAG_PATTERN.match(value):
        return DEFAULT_LANGUAGE
    primary, *rest = value.split("-")
    return "-".join([primary.lower(), *rest])


def normalize_documents(root: etree._Element, context: RepairContext) -> None:
    """Language tags, language texts, thumbnail, Property and File bodies."""
    for item in list(root.iter(etree.Element)):
        if not local_name(item).startswith("langString"):
            continue
        language = child(item, "language")
        if language is None:
            language = new_child(item, "language", index=0)
        normalized = normalize_language_tag(language.text)
        if language.text != normalized:
            language.text = normalized
        text = child(item, "text")
        if text is None:
            text = new_child(item, "text")
        if not (text.text or "").strip():
            text.text = _fallback_text(item)

    for thumbnail in list(iter_named(root, "defaultThumbnail")):
        path = (child_text(thumbnail, "path") or "").strip()
        content_type = (child_text(thumbnail, "contentType") or "").strip()
        if not path or not content_type:
            remove(thumbnail)

    for node in list(iter_named(root, "property")):
        value_type = child(node, "valueType")
        canonical = _value_type_of(node)
        if value_type is None:
            value_type = _insert_before(node, "valueType", ("value", "valueId"))
        if value_type.text != canonical:
            value_type.text = canonical
        value = child(node, "value")
        if value is not None and node.index(value) < node.index(value_type):
            node.remove(value_type)
            node.insert(node.index(value), value_type)

    for node in list(iter_named(root, "file")):
        value = child(node, "value")
        content_type = child(node, "contentType")
        if content_type is None:
            content_type = new_child(node, "contentType")
        if not is_valid_content_type(content_type.text):
            content_type.text = guess_content_type(value.text if value is not None else None)
        if value is not None and node.index(content_type) < node.index(value):
            node.remove(content_type)
            node.insert(node.index(value) + 1, content_type)


REPAIR_PASSES: list[tuple[str, RepairPass]] = [
    ("fill_required_values", fill_required_values),
    ("ensure_text_block_entries", ensure_text_block_entries),
    ("remove_empty_data_specifications", remove_empty_data_specifications),
    ("ensure_definition_entries", ensure_definition_entries),
    ("remove_empty_value_lists", remove_empty_value_lists),
    ("ensure_preferred_name", ensure_preferred_name),
    ("ensure_reference_keys", ensure_reference_keys),
    ("ensure_specific_asset_ids", ensure_specific_asset_ids),
    ("ensure_asset_type", ensure_asset_type),
    ("remove_empty_concept_descriptions", remove_empty_concept_descriptions),
    ("sanitize_id_shorts", sanitize_id_shorts),
    ("complete_data_specification_skeletons", complete_data_specification_skeletons),
    ("remove_empty_containers", remove_empty_containers),
    ("normalize_documents", normalize_documents),
]


class RepairEngine:
    """Apply the ordered repair passes to an AAS XML document."""

    def __init__(
        self,
        placeholder_uri: str = "urn:placeholder",
        placeholder_asset_type: str = "Unspecified",
        passes: list[tuple[str, RepairPass]] | None = None,
    ):
        self.placeholder_uri = placeholder_uri
        self.placeholder_asset_type = placeholder_asset_type
        self.passes = passes if passes is not None else REPAIR_PASSES

    def repair(self, markup: str) -> RepairResult:
        """
        Repair a markup document.

        Args:
            markup: AAS XML text

        Returns:
            The repaired text and the names of the passes that changed it

        Raises:
            AASXDecodeError: If the markup is not well-formed
        """
        try:
            root = parse_document(markup)
        except etree.XMLSyntaxError as e:
            raise AASXDecodeError(f"Cannot repair malformed XML: {e}") from e

        context = RepairContext.from_document(
            root,
            placeholder_uri=self.placeholder_uri,
            placeholder_asset_type=self.placeholder_asset_type,
        )

        applied = []
        for name, repair_pass in self.passes:
            before = etree.tostring(root)
            repair_pass(root, context)
            if etree.tostring(root) != before:
                logger.debug("Repair pass %s changed the document", name)
                applied.append(name)

        repaired = to_string(root)
        logger.info("Repair applied %d pass(es): %s", len(applied), ", ".join(applied) or "none")
        return RepairResult(markup=repaired, changed=repaired != markup, appliedPasses=applied)
