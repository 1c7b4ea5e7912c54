"""
DOM Mapper - flattens the visible part of a page into indexed text.

One flattening pass scrolls to a chunk, snapshots the document, and emits
one line per candidate node::

    0:<a href="/pricing">Pricing</a>
    1:Plans start at $10

alongside an index -> address map. Indices are only meaningful for the pass
that produced them.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING
import logging

from lookout.layers.sense.addresser import generate_address
from lookout.layers.sense.chunker import PageMetrics, chunk_offset, pick_chunk, total_chunks
from lookout.layers.sense.classifier import classify
from lookout.layers.sense.scroller import PageScroller
from lookout.layers.sense.snapshot import DomNode, DomSnapshot, parse_snapshot

if TYPE_CHECKING:
    from lookout.core.page import Page

logger = logging.getLogger(__name__)


# Serialized in this order, each only when present and non-empty.
PRIORITY_ATTRIBUTES = (
    "id", "class", "href", "src",
    "aria-label", "aria-name", "aria-role", "aria-description",
    "aria-expanded", "aria-haspopup",
)

MISSING_ELEMENT_TEXT = "Element not found"


@dataclass
class FlattenedChunk:
    """Indexed text for one chunk plus the addresses behind each index."""
    text: str
    addresses: Dict[int, str]
    chunk: int
    total_chunks: int
    candidates: List[DomNode] = field(default_factory=list, repr=False)

    @property
    def is_empty(self) -> bool:
        return not self.addresses

    def element_text(self, index: int) -> str:
        """The serialized form of ``index`` without its ``index:`` prefix."""
        prefix = f"{index}:"
        for line in self.text.splitlines():
            if line.startswith(prefix):
                return line[len(prefix):]
        return MISSING_ELEMENT_TEXT


def serialize_attributes(element: DomNode) -> List[str]:
    parts = []
    for name in PRIORITY_ATTRIBUTES:
        value = element.get_attribute(name)
        if value:
            parts.append(f'{name}="{value}"')
    for name, value in element.attributes.items():
        if name.startswith("data-") and value:
            parts.append(f'{name}="{value}"')
    return parts


def serialize_node(index: int, node: DomNode) -> str:
    """One output line (without the trailing newline)."""
    if node.is_text:
        return f"{index}:{node.text.strip()}"
    attributes = serialize_attributes(node)
    opening = f"<{node.tag}{' ' + ' '.join(attributes) if attributes else ''}>"
    return f"{index}:{opening}{node.text_content.strip()}</{node.tag}>"


def discover_candidates(snapshot: DomSnapshot) -> List[DomNode]:
    """
    Walk the body with an explicit stack and return qualifying nodes in
    discovery order.

    The stack is seeded with the body's children in document order and
    popped from the end, so top-level subtrees come out last-first while
    each subtree is walked in document order (children are pushed reversed).
    Elements are always descended into, whether or not they qualify.
    """
    viewport_height = snapshot.viewport_height
    candidates: List[DomNode] = []
    stack: List[DomNode] = list(snapshot.body.children)
    while stack:
        node = stack.pop()
        if node.is_element:
            stack.extend(reversed(node.children))
            if classify(node, viewport_height).is_candidate:
                candidates.append(node)
        elif node.is_text and classify(node, viewport_height).text_visible:
            candidates.append(node)
    return candidates


def render(candidates: Iterable[DomNode], start: int = 0) -> Tuple[str, Dict[int, str]]:
    """Serialize candidates and build their address map, numbering from ``start``."""
    lines: List[str] = []
    addresses: Dict[int, str] = {}
    for index, node in enumerate(candidates, start=start):
        lines.append(serialize_node(index, node) + "\n")
        addresses[index] = generate_address(node)
    return "".join(lines), addresses


class DOMMapper:
    """
    Flattens a page chunk by chunk.

    Example:
        >>> mapper = DOMMapper(page)
        >>> flat = mapper.flatten(0)
        >>> print(flat.text)
        0:<button id="submit">Submit</button>
        >>> flat.addresses[0]
        "//*[@id='submit']"
    """

    def __init__(self, page: "Page", scroller: Optional[PageScroller] = None):
        self.page = page
        self.scroller = scroller or PageScroller(page)

    def metrics(self) -> PageMetrics:
        return self.page.metrics()

    def flatten(self, chunk: int) -> FlattenedChunk:
        """Scroll to ``chunk``, snapshot the page, and flatten what is visible."""
        metrics = self.page.metrics()
        total = total_chunks(metrics)
        self.scroller.scroll_to(chunk_offset(chunk, metrics))

        snapshot = parse_snapshot(self.page.snapshot())
        candidates = discover_candidates(snapshot)
        text, addresses = render(candidates)
        logger.debug(f"[dom] Chunk {chunk}/{total}: {len(candidates)} candidates")
        return FlattenedChunk(
            text=text,
            addresses=addresses,
            chunk=chunk,
            total_chunks=total,
            candidates=candidates,
        )

    def process_dom(self, chunks_seen: Iterable[int]) -> FlattenedChunk:
        """
        Flatten the unseen chunk closest to the current scroll position.

        Raises:
            ChunkExhaustedError: every chunk is already in ``chunks_seen``.
        """
        pick = pick_chunk(chunks_seen, self.page.metrics())
        logger.info(f"[dom] Processing chunk {pick.chunk} of {pick.total_chunks}")
        return self.flatten(pick.chunk)

    def flatten_all(self) -> FlattenedChunk:
        """
        Flatten every chunk top to bottom into one contiguous index space.

        Stops at the first chunk with no candidates. The result reports chunk
        0 and the chunk count at the start of the pass.
        """
        total = total_chunks(self.page.metrics())
        texts: List[str] = []
        addresses: Dict[int, str] = {}
        candidates: List[DomNode] = []
        for chunk in range(total):
            flat = self.flatten(chunk)
            if flat.is_empty:
                break
            text, chunk_addresses = render(flat.candidates, start=len(candidates))
            texts.append(text)
            addresses.update(chunk_addresses)
            candidates.extend(flat.candidates)
        return FlattenedChunk(
            text="".join(texts),
            addresses=addresses,
            chunk=0,
            total_chunks=total,
            candidates=candidates,
        )
