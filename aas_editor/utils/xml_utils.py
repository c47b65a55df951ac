"""
Small lxml helpers shared by the encoder, decoder and repair engine.

All lookups work on local names so documents in the 3.0 and 3.1 AAS
namespaces (or without any namespace) are handled the same way.
"""

from typing import Iterator

from lxml import etree

AAS_NAMESPACE = "https://admin-shell.io/aas/3/0"


def make_parser() -> etree.XMLParser:
    """Parser that never resolves entities or touches the network."""
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_blank_text=True,
        huge_tree=False,
    )


def parse_document(text: str | bytes) -> etree._Element:
    """Parse markup text into a root element (raises etree.XMLSyntaxError)."""
    if isinstance(text, str):
        text = text.encode("utf-8")
    return etree.fromstring(text, parser=make_parser())


def to_string(root: etree._Element) -> str:
    etree.indent(root, space="  ")
    body = etree.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'


def local_name(element: etree._Element) -> str:
    if not isinstance(element.tag, str):
        return ""
    return etree.QName(element).localname


def namespace_of(element: etree._Element) -> str | None:
    return etree.QName(element).namespace


def children(element: etree._Element, name: str | None = None) -> list[etree._Element]:
    """Direct element children, optionally filtered by local name."""
    result = []
    for child in element:
        if not isinstance(child.tag, str):
            continue
        if name is None or local_name(child) == name:
            result.append(child)
    return result


def child(element: etree._Element, name: str) -> etree._Element | None:
    for candidate in children(element, name):
        return candidate
    return None


def child_text(element: etree._Element, name: str) -> str | None:
    found = child(element, name)
    if found is None:
        return None
    return found.text or ""


def find_path(element: etree._Element, *names: str) -> etree._Element | None:
    """Follow a chain of direct children by local name."""
    current = element
    for name in names:
        current = child(current, name)
        if current is None:
            return None
    return current


def iter_named(root: etree._Element, name: str) -> Iterator[etree._Element]:
    """All descendants (and root) with the given local name, document order."""
    for element in root.iter(etree.Element):
        if local_name(element) == name:
            yield element


def new_child(
    parent: etree._Element,
    name: str,
    text: str | None = None,
    index: int | None = None,
) -> etree._Element:
    """Create a child in the parent's namespace."""
    namespace = namespace_of(parent)
    tag = f"{{{namespace}}}{name}" if namespace else name
    element = etree.Element(tag)
    if text is not None:
        element.text = text
    if index is None:
        parent.append(element)
    else:
        parent.insert(index, element)
    return element


def is_blank(element: etree._Element | None) -> bool:
    """True when the element has neither child elements nor text."""
    if element is None:
        return True
    return not children(element) and not (element.text or "").strip()


def nearest_id_short(element: etree._Element) -> str | None:
    """idShort of the element itself or of the closest ancestor carrying one."""
    current = element
    while current is not None:
        id_short = child_text(current, "idShort")
        if id_short and id_short.strip():
            return id_short.strip()
        current = current.getparent()
    return None


def remove(element: etree._Element) -> None:
    parent = element.getparent()
    if parent is not None:
        parent.remove(element)
