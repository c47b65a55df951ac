"""
Element Tree Service.

Path-based edit operations on an AASRecord. A path is the ordered list of
idShorts from a submodel root down to the element. Every operation returns
a fresh deep copy of the record; the input is never modified, so encoders
always see a stable snapshot.
"""

import logging
from typing import Any, Iterator

from pydantic import ValidationError

from aas_editor.schemas.elements import ELEMENT_ADAPTER, CONTAINER_TYPES, Cardinality
from aas_editor.schemas.environment import AASRecord, Submodel

logger = logging.getLogger(__name__)


class TreeOperationError(ValueError):
    """Raised when an edit operation is not permitted."""


class ElementNotFoundError(TreeOperationError):
    """Raised when a path does not resolve to an element."""


def iter_elements(elements: list, prefix: tuple[str, ...] = ()) -> Iterator[tuple[tuple[str, ...], Any]]:
    """Depth-first walk yielding (path, element) pairs."""
    for element in elements:
        path = prefix + (element.idShort,)
        yield path, element
        if isinstance(element, CONTAINER_TYPES):
            yield from iter_elements(element.children, path)


class ElementTreeService:
    """Create, update, delete and reorder elements by path."""

    @staticmethod
    def is_deletable(element) -> bool:
        """Only optional elements may be removed."""
        return element.cardinality in (Cardinality.ZERO_TO_ONE, Cardinality.ZERO_TO_MANY)

    def get_element(self, record: AASRecord, submodel: str, path: list[str]):
        return self._resolve(self._submodel(record, submodel), path)

    def add_submodel(self, record: AASRecord, submodel: Submodel, index: int | None = None) -> AASRecord:
        updated = record.model_copy(deep=True)
        if any(existing.idShort == submodel.idShort for existing in updated.submodels):
            raise TreeOperationError(f"Submodel '{submodel.idShort}' already exists")
        position = len(updated.submodels) if index is None else index
        updated.submodels.insert(position, submodel.model_copy(deep=True))
        return updated

    def remove_submodel(self, record: AASRecord, submodel: str) -> AASRecord:
        updated = record.model_copy(deep=True)
        target = self._submodel(updated, submodel)
        updated.submodels.remove(target)
        return updated

    def create_element(
        self,
        record: AASRecord,
        submodel: str,
        parent_path: list[str],
        element,
        index: int | None = None,
    ) -> AASRecord:
        """
        Insert an element below a parent.

        Args:
            record: Current record
            submodel: idShort of the submodel
            parent_path: Path of the parent container; empty for the submodel root
            element: Element to insert
            index: Position among siblings, appended when None

        Returns:
            Updated copy of the record
        """
        updated = record.model_copy(deep=True)
        siblings = self._children(self._submodel(updated, submodel), parent_path)
        if any(sibling.idShort == element.idShort for sibling in siblings):
            raise TreeOperationError(f"idShort '{element.idShort}' already exists at this level")

        position = len(siblings) if index is None else max(0, min(index, len(siblings)))
        siblings.insert(position, element.model_copy(deep=True))
        logger.debug("Created %s at %s/%s", element.idShort, submodel, "/".join(parent_path))
        return updated

    def update_element(
        self,
        record: AASRecord,
        submodel: str,
        path: list[str],
        changes: dict[str, Any],
    ) -> AASRecord:
        """Apply field changes to one element; the variant cannot change."""
        if not path:
            raise TreeOperationError("Path must not be empty")

        updated = record.model_copy(deep=True)
        root = self._submodel(updated, submodel)
        siblings = self._children(root, path[:-1])
        position = self._index_of(siblings, path[-1])
        current = siblings[position]

        if "modelType" in changes and changes["modelType"] != current.modelType:
            raise TreeOperationError("The element type cannot be changed")
        new_id_short = changes.get("idShort", current.idShort)
        if new_id_short != current.idShort and any(
            sibling.idShort == new_id_short for sibling in siblings
        ):
            raise TreeOperationError(f"idShort '{new_id_short}' already exists at this level")

        data = current.model_dump()
        data.update(changes)
        try:
            siblings[position] = ELEMENT_ADAPTER.validate_python(data)
        except ValidationError as e:
            raise TreeOperationError(f"Invalid element data: {e}") from e
        return updated

    def delete_element(self, record: AASRecord, submodel: str, path: list[str]) -> AASRecord:
        if not path:
            raise TreeOperationError("Path must not be empty")

        updated = record.model_copy(deep=True)
        siblings = self._children(self._submodel(updated, submodel), path[:-1])
        position = self._index_of(siblings, path[-1])
        if not self.is_deletable(siblings[position]):
            raise TreeOperationError(
                f"'{path[-1]}' is required ({siblings[position].cardinality.value}) and cannot be deleted"
            )
        del siblings[position]
        return updated

    def reorder_element(
        self,
        record: AASRecord,
        submodel: str,
        source_path: list[str],
        target_path: list[str],
    ) -> AASRecord:
        """Move the source element to the target's position within the same parent."""
        if not source_path or not target_path:
            raise TreeOperationError("Path must not be empty")
        if source_path[:-1] != target_path[:-1]:
            raise TreeOperationError("Elements can only be reordered within the same parent")

        updated = record.model_copy(deep=True)
        siblings = self._children(self._submodel(updated, submodel), source_path[:-1])
        source = self._index_of(siblings, source_path[-1])
        target = self._index_of(siblings, target_path[-1])
        siblings.insert(target, siblings.pop(source))
        return updated

    def _submodel(self, record: AASRecord, id_short: str) -> Submodel:
        try:
            return record.get_submodel(id_short)
        except KeyError:
            raise ElementNotFoundError(f"Submodel '{id_short}' not found") from None

    def _resolve(self, submodel: Submodel, path: list[str]):
        if not path:
            raise TreeOperationError("Path must not be empty")
        siblings = self._children(submodel, path[:-1])
        return siblings[self._index_of(siblings, path[-1])]

    def _children(self, submodel: Submodel, parent_path: list[str]) -> list:
        """Child list of the container at parent_path (submodel root when empty)."""
        siblings = submodel.elements
        for depth, segment in enumerate(parent_path):
            node = siblings[self._index_of(siblings, segment, parent_path[: depth + 1])]
            if not isinstance(node, CONTAINER_TYPES):
                raise TreeOperationError(f"'{segment}' ({node.modelType}) cannot contain elements")
            siblings = node.children
        return siblings

    @staticmethod
    def _index_of(siblings: list, id_short: str, path: list[str] | None = None) -> int:
        for position, sibling in enumerate(siblings):
            if sibling.idShort == id_short:
                return position
        raise ElementNotFoundError(f"Element '{'/'.join(path or [id_short])}' not found")
