from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass
class ActionDecision:
    """One step chosen by a brain: what to do, to which flattened index, and why."""
    index: int
    method: str
    args: List[Any] = field(default_factory=list)
    step: str = ""
    rationale: str = ""
    completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "method": self.method,
            "args": self.args,
            "step": self.step,
            "rationale": self.rationale,
            "completed": self.completed,
        }


@dataclass
class ExtractionDecision:
    """Data pulled from one chunk plus a note on how far extraction has got."""
    result: Dict[str, Any] = field(default_factory=dict)
    progress: str = ""
    completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result": self.result,
            "progress": self.progress,
            "completed": self.completed,
        }


class BrainInterface(ABC):
    """Abstract base class for Intelligence Brains."""

    # Whether the backing model accepts screenshots.
    supports_vision: bool = False

    @abstractmethod
    def decide_action(
        self,
        goal: str,
        flattened_text: str,
        steps: str,
        screenshot: Optional[bytes] = None,
    ) -> Optional[ActionDecision]:
        """
        Pick the next step toward ``goal``.

        Args:
            goal: The action the user asked for.
            flattened_text: Indexed lines of the current chunk.
            steps: Log of the steps taken so far.
            screenshot: PNG of the viewport, when vision is on.

        Returns:
            ActionDecision, or None when nothing in this chunk helps.
        """

    @abstractmethod
    def decide_extraction(
        self,
        instruction: str,
        flattened_text: str,
        progress: str,
        previous: Dict[str, Any],
        schema: Dict[str, Any],
    ) -> ExtractionDecision:
        """Extract whatever ``schema`` asks for from one chunk."""

    @abstractmethod
    def verify_completion(
        self,
        goal: str,
        steps: str,
        screenshot: Optional[bytes] = None,
        flattened_text: Optional[str] = None,
    ) -> bool:
        """Judge whether ``steps`` achieved ``goal``."""

    @abstractmethod
    def decide_observation_target(self, observation: str, flattened_text: str) -> Optional[int]:
        """Index of the element matching ``observation``, or None for "NONE"."""

    @abstractmethod
    def ask(self, question: str) -> Optional[str]:
        """Free-form question answered by the model."""
