"""
Chunk Selector - viewport-sized bands over the whole document.

Chunks are recomputed on every call: lazy-loaded content can grow the
document between two passes of the same loop.
"""

from dataclasses import dataclass
from typing import Iterable, List
import math

from lookout.core.errors import ChunkExhaustedError, DomUnavailableError


@dataclass(frozen=True)
class PageMetrics:
    """Scroll geometry read from the page in one call."""
    viewport_height: float
    document_height: float
    scroll_y: float = 0.0


@dataclass(frozen=True)
class ChunkPick:
    chunk: int
    chunks: List[int]

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)


def total_chunks(metrics: PageMetrics) -> int:
    """Number of bands covering the document; a blank page still has one."""
    if metrics.viewport_height <= 0:
        raise DomUnavailableError(f"viewport height is {metrics.viewport_height}")
    return max(1, math.ceil(metrics.document_height / metrics.viewport_height))


def chunk_offset(chunk: int, metrics: PageMetrics) -> float:
    """Scroll offset for ``chunk``, clamped to the maximum scrollable offset."""
    max_scroll_top = max(0.0, metrics.document_height - metrics.viewport_height)
    return min(metrics.viewport_height * chunk, max_scroll_top)


def pick_chunk(chunks_seen: Iterable[int], metrics: PageMetrics) -> ChunkPick:
    """
    Choose the unseen chunk whose band starts closest to the current scroll
    position. Ties go to the lower index.

    Raises:
        ChunkExhaustedError: every chunk has already been seen.
    """
    seen = set(chunks_seen)
    chunks = list(range(total_chunks(metrics)))
    remaining = [c for c in chunks if c not in seen]
    if not remaining:
        raise ChunkExhaustedError(seen, len(chunks))

    closest = remaining[0]
    for candidate in remaining[1:]:
        distance = abs(metrics.scroll_y - metrics.viewport_height * candidate)
        best = abs(metrics.scroll_y - metrics.viewport_height * closest)
        if distance < best:
            closest = candidate
    return ChunkPick(chunk=closest, chunks=chunks)
