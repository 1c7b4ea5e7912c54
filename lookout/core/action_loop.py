"""
Action Loop - Flatten, Decide, Apply, Verify until the goal is met.

One call to :meth:`ActionLoop.run` is one logical action. The loop walks
the page chunk by chunk until the decision-maker finds something to do,
applies it, and either keeps going (multi-step actions) or asks the
verifier whether the goal is met.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union, TYPE_CHECKING
import logging
import threading

from lookout.core.errors import ChunkExhaustedError

if TYPE_CHECKING:
    from lookout.core.page import Page
    from lookout.layers.action.executor import ActionExecutor, StepResult
    from lookout.layers.intelligence.brains.base import ActionDecision
    from lookout.layers.intelligence.decision_engine import DecisionEngine
    from lookout.layers.sense.dom_mapper import DOMMapper, FlattenedChunk
    from lookout.reporters.flight_recorder import FlightRecorder

logger = logging.getLogger(__name__)

VisionSetting = Union[bool, str]
FALLBACK = "fallback"

SCROLLED_STEP = "## Step: Scrolled to another section\n"
NOT_FOUND_MESSAGE = "Action not found on the current page after checking all chunks."
MAX_STEPS_MESSAGE = "Max steps reached"
CANCELLED_MESSAGE = "Action cancelled"


@dataclass
class ActionResult:
    """Outcome of one act() call."""
    success: bool
    message: str
    action: str
    steps: str = ""

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "action": self.action,
            "steps": self.steps,
        }


@dataclass
class ActionState:
    """Everything carried from one pass of the loop to the next."""
    use_vision: VisionSetting
    steps: str = ""
    chunks_seen: List[int] = field(default_factory=list)
    passes: int = 0


def append_step(steps: str, entry: str) -> str:
    """Append a log entry, making sure it starts on its own line."""
    if steps and not steps.endswith("\n"):
        steps += "\n"
    return steps + entry


def format_step(decision: "ActionDecision", result: "StepResult") -> str:
    entry = (
        f"## Step: {decision.step}\n"
        f"  Element: {result.element_text}\n"
        f"  Action: {decision.method}\n"
        f"  Reasoning: {decision.rationale}\n"
    )
    if result.url_changed:
        entry += f"  Result (Important): Page url changed to {result.url_after} after this step\n\n"
    return entry


class ActionLoop:
    """
    Drives one action goal to completion against a page.

    Example:
        >>> loop = ActionLoop(page, DOMMapper(page), ActionExecutor(page), DecisionEngine())
        >>> result = loop.run("click the Submit button")
        >>> result.success
        True
    """

    def __init__(
        self,
        page: "Page",
        mapper: "DOMMapper",
        executor: "ActionExecutor",
        engine: "DecisionEngine",
        max_steps: int = 50,
        verifier_use_vision: bool = True,
        recorder: Optional["FlightRecorder"] = None,
    ):
        """
        Args:
            max_steps: Cap on flattening passes for one goal
            verifier_use_vision: Verify with a full-page screenshot instead of page text
            recorder: Optional FlightRecorder for the run log
        """
        self.page = page
        self.mapper = mapper
        self.executor = executor
        self.engine = engine
        self.max_steps = max_steps
        self.verifier_use_vision = verifier_use_vision
        self.recorder = recorder

    def run(
        self,
        goal: str,
        use_vision: VisionSetting = FALLBACK,
        cancel: Optional[threading.Event] = None,
    ) -> ActionResult:
        """
        Perform ``goal``.

        Args:
            goal: Plain-language action, e.g. "click the Pricing link"
            use_vision: True, False, or "fallback" to retry with screenshots
                once every chunk came back empty
            cancel: Set it from another thread to stop at the next pass

        Returns:
            ActionResult; page faults are reported in it, never raised.
        """
        verifier_use_vision = self.verifier_use_vision
        if not self.engine.supports_vision:
            if use_vision is not False:
                logger.warning(
                    f"[action] {self.engine.brain_type} does not support vision, but use_vision was set to "
                    f"{use_vision}. Defaulting to False."
                )
            use_vision = False
            verifier_use_vision = False

        state = ActionState(use_vision=use_vision)
        logger.info(f"[action] Starting action: {goal}")

        while True:
            if cancel is not None and cancel.is_set():
                return self._finish(goal, state, False, CANCELLED_MESSAGE)
            if state.passes >= self.max_steps:
                return self._finish(goal, state, False, MAX_STEPS_MESSAGE)
            state.passes += 1

            try:
                chunk, decision = self._flatten_and_decide(goal, state)
            except Exception as e:
                logger.error(f"[action] Error performing action: {e}")
                return self._finish(goal, state, False, f"Error performing action: {e}")

            if decision is None:
                if chunk is not None and len(set(state.chunks_seen)) < chunk.total_chunks:
                    logger.info(
                        f"[action] No response from act. Chunks seen: {len(set(state.chunks_seen))}, "
                        f"Total chunks: {chunk.total_chunks}"
                    )
                    state.steps = append_step(state.steps, SCROLLED_STEP)
                    continue

                logger.info("[action] No response from act with no chunks left to check")
                if state.use_vision == FALLBACK:
                    self.mapper.scroller.scroll_to(0)
                    state.chunks_seen = []
                    state.use_vision = True
                    continue

                self.page.wait_for_settled_dom()
                return self._finish(goal, state, False, NOT_FOUND_MESSAGE)

            result = self.executor.apply(decision, chunk)
            if self.recorder:
                self.recorder.log_action_result(state.passes, result)
            if not result.success:
                return self._finish(goal, state, False, f"Error performing action: {result.error}")

            previous_steps = state.steps
            state.steps = append_step(state.steps, format_step(decision, result))

            if decision.completed and self._verify(goal, state, verifier_use_vision):
                return self._finish(
                    goal,
                    state,
                    True,
                    f"Action completed successfully: {previous_steps}{decision.step}\nElement: {result.element_text}",
                )

            logger.info("[action] Continuing to next sub action")
            state.chunks_seen = []

    def _flatten_and_decide(self, goal: str, state: ActionState):
        """
        One Flatten + Decide pass. Returns (chunk, decision); chunk is None
        when the page ran out of unseen chunks under us.
        """
        self.page.wait_for_settled_dom()
        try:
            chunk = self.mapper.process_dom(state.chunks_seen)
        except ChunkExhaustedError:
            # The document shrank since the last pass.
            return None, None

        logger.info(
            f"[action] Received output from processDom. Chunk: {chunk.chunk}, "
            f"Chunks left: {chunk.total_chunks - len(set(state.chunks_seen))}"
        )
        if self.recorder:
            self.recorder.log_flatten(state.passes, chunk)

        screenshot = self.page.screenshot(full_page=False) if state.use_vision is True else None
        self.page.wait_for_settled_dom()

        try:
            decision = self.engine.decide_action(goal, chunk.text, state.steps, screenshot=screenshot)
        except Exception as e:
            logger.error(f"[action] Decision failed, treating as no decision: {e}")
            decision = None
        logger.info(f"[action] Received response from LLM: {decision.to_dict() if decision else None}")
        if self.recorder:
            self.recorder.log_decision(state.passes, decision)
            if screenshot:
                self.recorder.save_screenshot(f"pass_{state.passes}", screenshot)

        state.chunks_seen.append(chunk.chunk)
        return chunk, decision

    def _verify(self, goal: str, state: ActionState, use_vision: bool) -> bool:
        screenshot = None
        flattened_text = None
        if use_vision:
            screenshot = self.page.screenshot(full_page=True)
        else:
            flattened_text = self.mapper.flatten_all().text

        try:
            completed = self.engine.verify_completion(
                goal, state.steps, screenshot=screenshot, flattened_text=flattened_text,
            )
        except Exception as e:
            logger.error(f"[action] Verification failed, treating as not complete: {e}")
            completed = False

        if self.recorder:
            self.recorder.log_verification(state.passes, completed)
            if screenshot:
                self.recorder.save_screenshot(f"verify_{state.passes}", screenshot)
        return completed

    def _finish(self, goal: str, state: ActionState, success: bool, message: str) -> ActionResult:
        log = logger.info if success else logger.warning
        log(f"[action] {message}")
        if self.recorder:
            self.recorder.log_outcome(success, message)
        return ActionResult(success=success, message=message, action=goal, steps=state.steps)
