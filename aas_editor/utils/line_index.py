"""
Line number to element path index for markup documents.

Remote schema validation reports markup errors by source line only. A
LineIndex maps those lines back to the idShort path of the closest element
that starts at or before the line. The index is bound to the exact document
it was built from; resolving against any other text raises.
"""

import bisect
import hashlib
import logging
from dataclasses import dataclass, field

from lxml import etree

from aas_editor.utils.xml_utils import child_text, parse_document

logger = logging.getLogger(__name__)

PATH_SEPARATOR = " > "


class StaleLineIndexError(ValueError):
    """Raised when an index is used with a document it was not built from."""


def document_digest(document: str) -> str:
    return hashlib.sha256(document.encode("utf-8")).hexdigest()


def _id_short_chain(element: etree._Element) -> list[str]:
    chain = []
    current = element
    while current is not None:
        id_short = child_text(current, "idShort")
        if id_short and id_short.strip():
            chain.append(id_short.strip())
        current = current.getparent()
    chain.reverse()
    return chain


@dataclass(frozen=True)
class LineIndex:
    """Sorted (line, path) entries for one document version."""

    digest: str
    lines: tuple[int, ...] = field(default_factory=tuple)
    paths: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def build(cls, document: str) -> "LineIndex":
        digest = document_digest(document)
        try:
            root = parse_document(document)
        except etree.XMLSyntaxError:
            logger.warning("Cannot index unparseable markup document")
            return cls(digest=digest)

        entries: list[tuple[int, str]] = []
        for element in root.iter(etree.Element):
            if element.sourceline is None:
                continue
            id_short = child_text(element, "idShort")
            if not id_short or not id_short.strip():
                continue
            chain = _id_short_chain(element)
            entries.append((element.sourceline, PATH_SEPARATOR.join(chain)))

        entries.sort(key=lambda entry: entry[0])
        return cls(
            digest=digest,
            lines=tuple(line for line, _ in entries),
            paths=tuple(path for _, path in entries),
        )

    def matches(self, document: str) -> bool:
        return document_digest(document) == self.digest

    def resolve(self, document: str, line: int | None) -> str | None:
        """
        Best-effort path of the element enclosing a source line.

        Args:
            document: The document the line number refers to
            line: 1-based source line reported by the validator

        Returns:
            Path like "Nameplate > Address > Street", or None
        """
        if not self.matches(document):
            raise StaleLineIndexError("Line index was built from a different document")
        if line is None or not self.lines:
            return None

        position = bisect.bisect_right(self.lines, line) - 1
        if position < 0:
            return None
        return self.paths[position]
