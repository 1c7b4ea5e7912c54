"""Sense Layer - Perception components: DOM snapshot, classification, flattening."""

from lookout.layers.sense.dom_mapper import DOMMapper, FlattenedChunk
from lookout.layers.sense.chunker import PageMetrics, pick_chunk
from lookout.layers.sense.scroller import PageScroller

__all__ = ["DOMMapper", "FlattenedChunk", "PageMetrics", "PageScroller", "pick_chunk"]
