"""Tagged-variant document tree and the XML adapter that builds it.

The structurer never probes dynamic keys: every document is first converted
into nested :class:`Leaf`, :class:`Container` and :class:`Attributed` nodes.
An XML element ``<Intervention Type="Debate" id="42">...</Intervention>``
becomes::

    Attributed("Type", "Debate",
        Attributed("id", "42",
            Container("Intervention", (...children...))))
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterator
from dataclasses import dataclass

from src.errors import StructuringError


@dataclass(frozen=True)
class Leaf:
    """A run of text."""

    text: str


@dataclass(frozen=True)
class Container:
    """A typed node holding an ordered sequence of children."""

    tag: str
    children: tuple[Node, ...] = ()


@dataclass(frozen=True)
class Attributed:
    """A named attribute value attached to the wrapped node."""

    name: str
    value: str
    child: Node


Node = Leaf | Container | Attributed


def unwrap(node: Node) -> tuple[Node, dict[str, str]]:
    """Peel off ``Attributed`` wrappers, returning the inner node and its attributes."""
    attributes: dict[str, str] = {}
    while isinstance(node, Attributed):
        attributes.setdefault(node.name, node.value)
        node = node.child
    return node, attributes


def tag_of(node: Node) -> str | None:
    """Return the container tag beneath any attribute wrappers, or None for text."""
    inner, _ = unwrap(node)
    return inner.tag if isinstance(inner, Container) else None


def own_text(node: Node) -> str:
    """Text held directly by *node* (its leaf children), excluding nested containers."""
    inner, _ = unwrap(node)
    if isinstance(inner, Leaf):
        return inner.text
    return "".join(c.text for c in inner.children if isinstance(c, Leaf))


def text_content(node: Node) -> str:
    """All text beneath *node*, in document order."""
    inner, _ = unwrap(node)
    if isinstance(inner, Leaf):
        return inner.text
    return "".join(text_content(child) for child in inner.children)


def iter_children(node: Node, tag: str) -> Iterator[Node]:
    """Yield the direct children of *node* whose tag is *tag*."""
    inner, _ = unwrap(node)
    if isinstance(inner, Container):
        for child in inner.children:
            if tag_of(child) == tag:
                yield child


def find_first(node: Node, tag: str) -> Node | None:
    """Depth-first search for the first node with the given tag (including *node*)."""
    if tag_of(node) == tag:
        return node
    inner, _ = unwrap(node)
    if isinstance(inner, Container):
        for child in inner.children:
            found = find_first(child, tag)
            if found is not None:
                return found
    return None


def _from_element(element: ET.Element) -> Node:
    children: list[Node] = []
    if element.text:
        children.append(Leaf(element.text))
    for sub in element:
        children.append(_from_element(sub))
        if sub.tail:
            children.append(Leaf(sub.tail))

    node: Node = Container(element.tag, tuple(children))
    # Innermost wrapper is the last attribute so unwrap() sees source order.
    for name, value in reversed(list(element.attrib.items())):
        node = Attributed(name, value, node)
    return node


def from_xml(raw: bytes | str) -> Node:
    """Parse an XML document into a :data:`Node` tree.

    Raises:
        StructuringError: If *raw* is not well-formed XML.
    """
    try:
        root = ET.fromstring(raw)
    except ET.ParseError as exc:
        raise StructuringError(f"Document is not well-formed XML: {exc}") from exc
    return _from_element(root)
