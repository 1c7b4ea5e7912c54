"""
DOM Snapshot - the Python view of one probe pass.

A snapshot is a read-only copy of the live tree taken right after the
viewport settles. Geometry is viewport-relative, exactly as the page
reported it; nothing here is valid once the page scrolls or mutates.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from lookout.core.errors import DomUnavailableError


ELEMENT = "element"
TEXT = "text"
OTHER = "other"


@dataclass(frozen=True)
class Rect:
    """Viewport-relative bounding rectangle."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def top(self) -> float:
        return self.y

    @classmethod
    def from_list(cls, values: Optional[List[float]]) -> "Rect":
        if not values:
            return cls()
        x, y, width, height = (float(v or 0) for v in values)
        return cls(x, y, width, height)


@dataclass(eq=False)
class DomNode:
    """
    One node of a snapshot: an element, a text node, or an ``other`` node
    (comment, processing instruction) that carries only its name.

    ``hits`` holds the five probe-point results and ``css_visible`` the
    opacity/visibility check. For text nodes both describe the parent
    element, probed at the text's own range rectangle.
    """
    node_type: str
    name: str
    attributes: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    rect: Rect = field(default_factory=Rect)
    hits: List[bool] = field(default_factory=list)
    css_visible: bool = False
    children: List["DomNode"] = field(default_factory=list)
    parent: Optional["DomNode"] = field(default=None, repr=False)
    _text_content: Optional[str] = field(default=None, repr=False)

    @property
    def is_element(self) -> bool:
        return self.node_type == ELEMENT

    @property
    def is_text(self) -> bool:
        return self.node_type == TEXT

    @property
    def tag(self) -> str:
        """Lowercase tag name for elements, the node name otherwise."""
        return self.name

    @property
    def text_content(self) -> str:
        """Concatenated data of every descendant text node (DOM textContent)."""
        if self.is_text:
            return self.text
        if self._text_content is None:
            self._text_content = "".join(child.text_content for child in self.children)
        return self._text_content

    @property
    def parent_element(self) -> Optional["DomNode"]:
        if self.parent is not None and self.parent.is_element:
            return self.parent
        return None

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def find(self, tag: str) -> Optional["DomNode"]:
        """First descendant element with ``tag`` in document order."""
        for node in self.iter():
            if node.is_element and node.tag == tag:
                return node
        return None

    def iter(self) -> Iterator["DomNode"]:
        """Pre-order walk over this node and its descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass
class DomSnapshot:
    """The document root plus the viewport height it was measured against."""
    root: DomNode
    viewport_height: float

    @property
    def body(self) -> DomNode:
        body = self.root.find("body")
        if body is None:
            raise DomUnavailableError("snapshot has no <body>")
        return body


def _build(raw: Dict[str, Any], parent: Optional[DomNode]) -> DomNode:
    kind = raw.get("type", OTHER)
    if kind == ELEMENT:
        node = DomNode(
            node_type=ELEMENT,
            name=str(raw.get("tag", "")).lower(),
            attributes={str(k): str(v) for k, v in raw.get("attrs", [])},
            rect=Rect.from_list(raw.get("rect")),
            hits=[bool(h) for h in raw.get("hits", [])],
            css_visible=bool(raw.get("visible", False)),
            parent=parent,
        )
        node.children = [_build(child, node) for child in raw.get("children", [])]
        return node
    if kind == TEXT:
        return DomNode(
            node_type=TEXT,
            name="#text",
            text=str(raw.get("text", "")),
            rect=Rect.from_list(raw.get("rect")),
            hits=[bool(h) for h in raw.get("hits", [])],
            css_visible=bool(raw.get("visible", False)),
            parent=parent,
        )
    return DomNode(node_type=OTHER, name=str(raw.get("name", "#comment")), parent=parent)


def parse_snapshot(raw: Optional[Dict[str, Any]]) -> DomSnapshot:
    """Turn the probe's JSON payload into a linked DomNode tree."""
    if not raw or not raw.get("root"):
        raise DomUnavailableError("error selecting DOM that doesn't exist")
    root = _build(raw["root"], None)
    return DomSnapshot(root=root, viewport_height=float(raw.get("viewport_height", 0)))
