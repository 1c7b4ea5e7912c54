"""
Element Addresser - XPath synthesis for flattened nodes.

Addresses are what survive the trip through the model: the flattener hands
out integer indices, the model picks one, and the address maps it back to
something the browser can locate.
"""

from typing import List, Optional
import re

from lookout.layers.sense.snapshot import DomNode


_ID_ADDRESS = re.compile(r"""^//\*\[@id=(?:'([^']*)'|"([^"]*)")\]$""")
_SEGMENT = re.compile(r"^([^\[\]/]+)(?:\[(\d+)\])?$")


def xpath_literal(value: str) -> str:
    """Quote a string for use inside an XPath expression."""
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{p}'" for p in parts) + ")"


def _sibling_position(node: DomNode) -> Optional[int]:
    """1-based position among same-type, same-name siblings, or None when unique."""
    parent = node.parent
    if parent is None:
        return None
    same = [s for s in parent.children if s.node_type == node.node_type and s.name == node.name]
    if len(same) < 2:
        return None
    for position, sibling in enumerate(same, start=1):
        if sibling is node:
            return position
    return None


def generate_address(node: DomNode) -> str:
    """
    Build the address of ``node``.

    Elements carrying an ``id`` get an absolute id reference. Everything
    else gets a root-to-node path of tag segments, indexed only where the
    tag repeats among siblings. Text nodes add no segment of their own and
    resolve to their parent element.
    """
    element_id = node.get_attribute("id") if node.is_element else None
    if element_id:
        return f"//*[@id={xpath_literal(element_id)}]"

    parts: List[str] = []
    current: Optional[DomNode] = node
    while current is not None and (current.is_element or current.is_text):
        if current.is_element:
            position = _sibling_position(current)
            parts.insert(0, current.name if position is None else f"{current.name}[{position}]")
        current = current.parent

    return "/" + "/".join(parts) if parts else ""


def resolve_address(root: DomNode, address: str) -> Optional[DomNode]:
    """
    Resolve an address produced by :func:`generate_address` against a snapshot.

    Supports the two shapes the addresser emits. An unindexed segment
    matches every same-named child, so the first match in document order
    wins, as it does in the browser.
    """
    id_match = _ID_ADDRESS.match(address)
    if id_match:
        wanted = id_match.group(1) if id_match.group(1) is not None else id_match.group(2)
        for node in root.iter():
            if node.is_element and node.get_attribute("id") == wanted:
                return node
        return None

    if not address.startswith("/"):
        return None
    segments = address.strip("/").split("/")
    # The document root behaves as the only child of the document.
    matches: List[DomNode] = [root]
    for depth, segment in enumerate(segments):
        parsed = _SEGMENT.match(segment)
        if parsed is None:
            return None
        name, position = parsed.group(1), parsed.group(2)
        siblings_by_parent = [[root]] if depth == 0 else [m.children for m in matches]
        candidates: List[DomNode] = []
        for siblings in siblings_by_parent:
            named = [c for c in siblings if c.is_element and c.name == name]
            if position is not None:
                index = int(position) - 1
                named = named[index:index + 1]
            candidates.extend(named)
        matches = candidates
        if not matches:
            return None
    return matches[0]
