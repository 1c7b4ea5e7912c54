"""
Extraction Loop - walk every chunk, accumulating schema-shaped data.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING
import copy
import logging
import threading

from lookout.core.errors import ChunkExhaustedError

if TYPE_CHECKING:
    from lookout.core.page import Page
    from lookout.layers.intelligence.decision_engine import DecisionEngine
    from lookout.layers.sense.dom_mapper import DOMMapper
    from lookout.reporters.flight_recorder import FlightRecorder

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Outcome of one extract() call."""
    success: bool
    data: Dict[str, Any]
    message: str = ""
    chunks_seen: List[int] = field(default_factory=list)
    progress: str = ""
    model: Any = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "data": self.data,
            "message": self.message,
            "chunks_seen": self.chunks_seen,
            "progress": self.progress,
        }


def deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge ``update`` into a copy of ``base``.

    Nested dicts merge key by key, lists concatenate in order, and any other
    value from ``update`` replaces the one in ``base``.
    """
    merged = copy.deepcopy(base)
    for key, value in (update or {}).items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        elif isinstance(current, list) and isinstance(value, list):
            merged[key] = current + copy.deepcopy(value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ExtractionLoop:
    """
    Example:
        >>> loop = ExtractionLoop(page, DOMMapper(page), DecisionEngine())
        >>> loop.run("the article title", {"type": "object", "properties": {"title": {"type": "string"}}}).data
        {'title': 'Hello'}
    """

    def __init__(
        self,
        page: "Page",
        mapper: "DOMMapper",
        engine: "DecisionEngine",
        max_steps: int = 50,
        recorder: Optional["FlightRecorder"] = None,
    ):
        self.page = page
        self.mapper = mapper
        self.engine = engine
        self.max_steps = max_steps
        self.recorder = recorder

    def run(
        self,
        instruction: str,
        schema: Dict[str, Any],
        cancel: Optional[threading.Event] = None,
    ) -> ExtractionResult:
        """
        Extract data matching ``schema``.

        Stops when the decision-maker reports completion or every chunk has
        been seen. Page faults propagate to the caller.
        """
        content: Dict[str, Any] = {}
        progress = ""
        chunks_seen: List[int] = []
        logger.info(f"[extraction] Starting extraction: {instruction}")

        for step in range(1, self.max_steps + 1):
            if cancel is not None and cancel.is_set():
                return self._finish(False, content, "Extraction cancelled", chunks_seen, progress)

            self.page.wait_for_settled_dom()
            try:
                chunk = self.mapper.process_dom(chunks_seen)
            except ChunkExhaustedError:
                return self._finish(True, content, "All chunks processed", chunks_seen, progress)

            if self.recorder:
                self.recorder.log_flatten(step, chunk)

            decision = self.engine.decide_extraction(instruction, chunk.text, progress, content, schema)
            if self.recorder:
                self.recorder.log_extraction(step, decision)

            chunks_seen.append(chunk.chunk)
            content = deep_merge(content, decision.result)
            logger.info(
                f"[extraction] Chunk {chunk.chunk}: progress '{decision.progress}', completed {decision.completed}"
            )

            if decision.completed:
                return self._finish(True, content, "Extraction completed", chunks_seen, progress + decision.progress)
            if len(set(chunks_seen)) >= chunk.total_chunks:
                return self._finish(True, content, "All chunks processed", chunks_seen, progress + decision.progress)

            progress = progress + decision.progress + ", "

        return self._finish(False, content, "Max steps reached", chunks_seen, progress)

    def _finish(
        self,
        success: bool,
        content: Dict[str, Any],
        message: str,
        chunks_seen: List[int],
        progress: str,
    ) -> ExtractionResult:
        logger.info(f"[extraction] {message} after {len(chunks_seen)} chunk(s)")
        if self.recorder:
            self.recorder.log_outcome(success, message)
        return ExtractionResult(
            success=success,
            data=content,
            message=message,
            chunks_seen=list(chunks_seen),
            progress=progress,
        )
