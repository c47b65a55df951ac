"""
Concept Description Collector.

Walks the element tree once per encode and synthesizes one
ConceptDescription per unique semanticId. The first element seen for a
semanticId wins; later elements referring to the same id do not alter it.
"""

from aas_editor.schemas.elements import CONTAINER_TYPES, ReferenceElement
from aas_editor.schemas.environment import AASRecord, ConceptDescription


class ConceptDescriptionCollector:
    """Transient, per-encode map of semanticId to ConceptDescription."""

    def __init__(self):
        self._concepts: dict[str, ConceptDescription] = {}

    def __len__(self) -> int:
        return len(self._concepts)

    def collect(self, element) -> None:
        """Register an element (and its descendants)."""
        semantic_id = (element.semanticId or "").strip()
        if semantic_id and not isinstance(element, ReferenceElement):
            if semantic_id not in self._concepts:
                self._concepts[semantic_id] = ConceptDescription(
                    id=semantic_id,
                    idShort=element.idShort,
                    preferredName=dict(element.preferredName),
                    shortName=dict(element.shortName),
                    unit=element.unit,
                    dataType=element.dataType,
                    description=element.description,
                )

        if isinstance(element, CONTAINER_TYPES):
            for child in element.children:
                self.collect(child)

    def collect_record(self, record: AASRecord) -> list[ConceptDescription]:
        for submodel in record.submodels:
            for element in submodel.elements:
                self.collect(element)
        return self.concept_descriptions()

    def concept_descriptions(self) -> list[ConceptDescription]:
        """Collected descriptions in first-seen order."""
        return list(self._concepts.values())
