"""
Tree re-synchronization after a repair.

The repair engine only rewrites markup. To keep the tree (and therefore the
record form) consistent with the repaired document, the repaired markup is
decoded and its idShorts, value types and values are copied back onto the
matching tree nodes. Fields the markup does not carry (cardinality set by
the user, attachments) are kept from the tree.
"""

import logging

from aas_editor.schemas.elements import (
    CONTAINER_TYPES,
    File,
    MultiLanguageProperty,
    Property,
    ReferenceElement,
)
from aas_editor.schemas.environment import AASRecord
from aas_editor.services.decoder import AASXDecoder
from aas_editor.utils.id_short import unique_id_shorts

logger = logging.getLogger(__name__)


class TreeSynchronizer:
    """Copy repaired markup content back onto an existing tree."""

    def __init__(self, decoder: AASXDecoder | None = None):
        self.decoder = decoder or AASXDecoder()

    def resync(self, record: AASRecord, markup: str) -> AASRecord:
        """
        Build an updated copy of the record from repaired markup.

        Args:
            record: Tree the markup was originally encoded from
            markup: Repaired AAS XML text

        Returns:
            Updated copy of the record
        """
        decoded = self.decoder.decode_markup(markup)
        updated = record.model_copy(deep=True)

        updated.idShort = decoded.idShort
        if decoded.assetType is not None:
            updated.assetType = decoded.assetType
        if updated.thumbnail is not None and decoded.thumbnail is None:
            logger.info("Dropping incomplete thumbnail of %s", updated.idShort)
            updated.thumbnail = None

        for submodel, decoded_submodel in zip(updated.submodels, decoded.submodels):
            submodel.idShort = decoded_submodel.idShort
            submodel.elements = self._merge(submodel.elements, decoded_submodel.elements)

        if len(updated.submodels) != len(decoded.submodels):
            logger.warning(
                "Submodel count differs after repair (%d in tree, %d in markup)",
                len(updated.submodels),
                len(decoded.submodels),
            )
        return updated

    def _merge(self, elements: list, decoded_elements: list) -> list:
        """
        Pair tree nodes with decoded nodes; each decoded node is used once.

        Candidates are tried in order: the node at the same position when
        its modelType and expected idShort agree, any unused node with the
        expected idShort, then the unused node at the same position with
        the same modelType.
        """
        expected = unique_id_shorts([element.idShort for element in elements])
        consumed: set[int] = set()
        merged = []
        for position, element in enumerate(elements):
            source_index = self._match(element, expected[position], position, decoded_elements, consumed)
            if source_index is None:
                merged.append(element)
                continue
            consumed.add(source_index)
            merged.append(self._apply(element, decoded_elements[source_index]))
        return merged

    def _match(
        self, element, id_short: str, position: int, decoded_elements: list, consumed: set[int]
    ) -> int | None:
        def usable(index: int) -> bool:
            return (
                index not in consumed
                and index < len(decoded_elements)
                and decoded_elements[index].modelType == element.modelType
            )

        if usable(position) and decoded_elements[position].idShort == id_short:
            return position
        for index, candidate in enumerate(decoded_elements):
            if usable(index) and candidate.idShort == id_short:
                return index
        if usable(position):
            return position
        return None

    def _apply(self, element, source):
        element.idShort = source.idShort
        if isinstance(element, Property):
            element.valueType = source.valueType
            element.value = source.value
        elif isinstance(element, MultiLanguageProperty):
            element.value = dict(source.value)
        elif isinstance(element, File):
            element.value = source.value
            element.contentType = source.contentType
        elif isinstance(element, ReferenceElement):
            if source.value is not None and source.value.keys:
                element.value = source.value.model_copy(deep=True)
        elif isinstance(element, CONTAINER_TYPES):
            element.children = self._merge(element.children, source.children)
        return element
