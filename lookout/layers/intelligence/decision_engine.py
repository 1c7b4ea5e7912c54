"""
DecisionEngine - Intelligence Layer Router.

Selects the best "Brain" implementation based on system resources and
configuration, and exposes the decision-maker operations the action,
extraction and observation loops call.
"""

from typing import Any, Dict, Optional
import logging

from lookout.core.system_profiler import SystemProfiler
from .brains.base import ActionDecision, ExtractionDecision, BrainInterface
from .brains.heuristic_brain import HeuristicBrain
from .brains.cloud_brain import CloudBrain
from .brains.local_brain import LocalBrain

logger = logging.getLogger(__name__)


class DecisionEngine:
    """
    Intelligent decision making router.

    Selects the optimal intelligence backend (Heuristic, Cloud, or Local)
    and delegates decision making to it.

    Example:
        >>> engine = DecisionEngine(brain_type="heuristic")
        >>> engine.decide_action("click submit", "0:<button>Submit</button>\\n", "")
        ActionDecision(index=0, method='click', ...)
    """

    def __init__(
        self,
        brain_type: str = "auto",  # 'auto', 'heuristic', 'cloud', 'local'
        model_name: Optional[str] = None,
        brain: Optional[BrainInterface] = None,
    ):
        """
        Initialize the decision engine.

        Args:
            brain_type: Strategy for selecting brain ('auto', 'heuristic', 'cloud', 'local').
            model_name: Cloud model name, or path to a local GGUF model.
            brain: Use this brain instead of building one.
        """
        self.brain_type = brain_type.lower()
        self.model_name = model_name
        if brain is not None:
            self.brain = brain
            self.brain_type = type(brain).__name__
        else:
            self.brain = self._init_brain(model_name)

    def _init_brain(self, model_name: Optional[str]) -> BrainInterface:
        """Initialize the selected brain."""
        if self.brain_type == "auto":
            profile = SystemProfiler.get_profile()
            self.brain_type = SystemProfiler.recommend_brain_type(profile, model_path=model_name)
            logger.info(f"[DecisionEngine] Auto-selected brain: {self.brain_type}")

        logger.info(f"[DecisionEngine] Initializing {self.brain_type} brain...")

        if self.brain_type == "heuristic":
            return HeuristicBrain()
        if self.brain_type == "cloud":
            return CloudBrain(model=model_name)
        if self.brain_type == "local":
            return LocalBrain(model_path=model_name)

        logger.warning(f"Unknown brain type '{self.brain_type}', falling back to heuristic")
        self.brain_type = "heuristic"
        return HeuristicBrain()

    @property
    def supports_vision(self) -> bool:
        return bool(self.brain.supports_vision)

    def decide_action(
        self,
        goal: str,
        flattened_text: str,
        steps: str,
        screenshot: Optional[bytes] = None,
    ) -> Optional[ActionDecision]:
        return self.brain.decide_action(goal, flattened_text, steps, screenshot=screenshot)

    def decide_extraction(
        self,
        instruction: str,
        flattened_text: str,
        progress: str,
        previous: Dict[str, Any],
        schema: Dict[str, Any],
    ) -> ExtractionDecision:
        return self.brain.decide_extraction(instruction, flattened_text, progress, previous, schema)

    def verify_completion(
        self,
        goal: str,
        steps: str,
        screenshot: Optional[bytes] = None,
        flattened_text: Optional[str] = None,
    ) -> bool:
        return self.brain.verify_completion(goal, steps, screenshot=screenshot, flattened_text=flattened_text)

    def decide_observation_target(self, observation: str, flattened_text: str) -> Optional[int]:
        return self.brain.decide_observation_target(observation, flattened_text)

    def ask(self, question: str) -> Optional[str]:
        return self.brain.ask(question)
