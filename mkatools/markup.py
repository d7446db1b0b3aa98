"""Typed document tree for the chapter and tag listings.

Documents are built from immutable ``Element``/``Text`` nodes by pure
functions and rendered by a single serializer, so the chapter and tag writers
share all nesting and escaping logic. ``parse`` reads mkvextract output back
into the same node types.
"""

from __future__ import annotations

import io
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple, Union

from mkatools.errors import ParseError


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Element:
    tag: str
    children: Tuple["Node", ...] = ()
    attributes: Tuple[Tuple[str, str], ...] = field(default=())

    @property
    def text(self) -> str:
        """Concatenated direct text children.

        Indentation around nested elements is dropped; leaf text is kept verbatim.
        """
        value = "".join(c.value for c in self.children if isinstance(c, Text))
        if any(isinstance(c, Element) for c in self.children):
            return value.strip()
        return value

    def elements(self, tag: Optional[str] = None) -> Iterator["Element"]:
        for child in self.children:
            if isinstance(child, Element) and (tag is None or child.tag == tag):
                yield child

    def find(self, path: str) -> Optional["Element"]:
        """First element matching a ``/``-separated path of child tags."""
        found = self.findall(path)
        return found[0] if found else None

    def findall(self, path: str) -> List["Element"]:
        current: List[Element] = [self]
        for tag in path.split("/"):
            current = [child for node in current for child in node.elements(tag)]
        return current

    def findtext(self, path: str) -> Optional[str]:
        node = self.find(path)
        return node.text if node is not None else None


Node = Union[Element, Text]


def element(tag: str, *children: Node, **attributes: str) -> Element:
    return Element(tag, tuple(children), tuple(sorted(attributes.items())))


def leaf(tag: str, value) -> Element:
    """Element holding a single text value."""
    return Element(tag, (Text(str(value)),))


def _to_etree(node: Element) -> ET.Element:
    built = ET.Element(node.tag, dict(node.attributes))
    last: Optional[ET.Element] = None
    for child in node.children:
        if isinstance(child, Text):
            if last is None:
                built.text = (built.text or "") + child.value
            else:
                last.tail = (last.tail or "") + child.value
        else:
            last = _to_etree(child)
            built.append(last)
    return built


def _from_etree(built: ET.Element) -> Element:
    children: List[Node] = []
    if built.text:
        children.append(Text(built.text))
    for sub in built:
        children.append(_from_etree(sub))
        if sub.tail:
            children.append(Text(sub.tail))
    return Element(built.tag, tuple(children), tuple(sorted(built.attrib.items())))


def render(root: Element) -> bytes:
    """Serialize a document as indented UTF-8 XML with a declaration."""
    tree = ET.ElementTree(_to_etree(root))
    ET.indent(tree, space="  ")
    buf = io.BytesIO()
    tree.write(buf, encoding="utf-8", xml_declaration=True)
    buf.write(b"\n")
    return buf.getvalue()


def parse(data: bytes) -> Element:
    """Parse an XML document into the typed tree."""
    try:
        return _from_etree(ET.fromstring(data))
    except ET.ParseError as e:
        raise ParseError("malformed document", str(e))
