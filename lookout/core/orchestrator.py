"""
Lookout Orchestrator - The Master Controller.

Owns the browser, the flattener, the executor and the decision engine, and
exposes the four top-level operations: act, extract, observe and ask.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Type, Union
from datetime import datetime
import hashlib
import json
import logging
import threading

from pydantic import BaseModel, ValidationError
from selenium.common.exceptions import WebDriverException

from lookout.core.action_loop import ActionLoop, ActionResult, VisionSetting
from lookout.core.errors import ElementNotFoundError, LookoutError
from lookout.core.extraction_loop import ExtractionLoop, ExtractionResult
from lookout.core.page import Page
from lookout.layers.action import ActionExecutor
from lookout.layers.intelligence import DecisionEngine
from lookout.layers.sense import DOMMapper, FlattenedChunk, PageScroller
from lookout.reporters import FlightRecorder

logger = logging.getLogger(__name__)

Schema = Union[Type[BaseModel], Dict[str, Any]]


@dataclass
class LookoutConfig:
    """Configuration for the Lookout orchestrator."""
    headless: bool = False
    brain_type: str = "auto"
    model_name: Optional[str] = None
    use_vision: VisionSetting = "fallback"
    verifier_use_vision: bool = True
    max_steps: int = 50
    timeout: int = 30
    new_page_timeout: float = 1.5
    settle_delay: float = 0.2
    typing_delay: Tuple[float, float] = (0.025, 0.075)
    report_dir: str = "./lookout_reports"
    record: bool = False
    viewport_width: int = 1250
    viewport_height: int = 800
    profile_path: Optional[str] = None
    download_dir: Optional[str] = None


def get_id(operation: str) -> str:
    """Stable registry key for an operation description."""
    return hashlib.sha256(operation.encode("utf-8")).hexdigest()


def schema_to_dict(schema: Schema) -> Dict[str, Any]:
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return schema.model_json_schema()
    if isinstance(schema, dict):
        return schema
    raise TypeError(f"schema must be a pydantic model class or a JSON schema dict, got {type(schema).__name__}")


class LookoutOrchestrator:
    """
    Master orchestrator for natural-language browser automation.

    Every top-level call works the same way:

    1. FLATTEN: Turn the visible part of the page into indexed text.

    2. DECIDE: Ask the decision engine which index to act on, what to
       extract, or which element matches a description.

    3. APPLY: Run the chosen step through the executor and record it.

    Example:
        >>> with LookoutOrchestrator(headless=True) as lookout:
        ...     lookout.goto("https://example.com")
        ...     result = lookout.act("click the More information link")
        ...     print(result.success, result.message)
    """

    def __init__(
        self,
        config: Optional[LookoutConfig] = None,
        page: Optional[Page] = None,
        engine: Optional[DecisionEngine] = None,
        **overrides: Any,
    ):
        """
        Initialize the Lookout orchestrator.

        Args:
            config: Full configuration; keyword overrides are applied on top
            page: Drive this page instead of launching Chrome
            engine: Use this decision engine instead of building one
            **overrides: Any LookoutConfig field, e.g. headless=True
        """
        self.config = config or LookoutConfig()
        for key, value in overrides.items():
            if not hasattr(self.config, key):
                raise TypeError(f"Unknown configuration option: {key}")
            setattr(self.config, key, value)

        self._driver = None
        self._page = page
        self._engine = engine
        self._mapper: Optional[DOMMapper] = None
        self._executor: Optional[ActionExecutor] = None
        self._initialized = False

        self.observations: Dict[str, Dict[str, Any]] = {}
        self.actions: Dict[str, Dict[str, Any]] = {}
        self.last_report_path: Optional[str] = None

    @property
    def page(self) -> Page:
        """Get the page, launching the browser if needed."""
        self._initialize()
        return self._page

    @property
    def engine(self) -> DecisionEngine:
        self._initialize()
        return self._engine

    @property
    def mapper(self) -> DOMMapper:
        self._initialize()
        return self._mapper

    def _initialize(self) -> None:
        """Initialize all components lazily."""
        if self._initialized:
            return

        if self._page is None:
            # Imported here so a page can be injected without a Chrome install.
            from lookout.core.driver_factory import create_driver
            from lookout.core.page import SeleniumPage

            self._driver = create_driver(
                headless=self.config.headless,
                viewport=(self.config.viewport_width, self.config.viewport_height),
                profile_path=self.config.profile_path,
                download_dir=self.config.download_dir,
            )
            self._page = SeleniumPage(self._driver, timeout=self.config.timeout)

        scroller = PageScroller(self._page, settle_delay=self.config.settle_delay)
        self._mapper = DOMMapper(self._page, scroller=scroller)
        self._executor = ActionExecutor(
            self._page,
            new_page_timeout=self.config.new_page_timeout,
            typing_delay=self.config.typing_delay,
        )
        if self._engine is None:
            self._engine = DecisionEngine(
                brain_type=self.config.brain_type,
                model_name=self.config.model_name,
            )

        self._initialized = True

    def _recorder(self, operation: str, goal: str) -> Optional[FlightRecorder]:
        if not self.config.record:
            return None
        run_name = f"{operation}_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}"
        recorder = FlightRecorder(output_dir=self.config.report_dir, run_name=run_name)
        recorder.log_start(operation, goal, self._page.url)
        return recorder

    def _close_recorder(self, recorder: Optional[FlightRecorder]) -> None:
        if recorder is not None:
            self.last_report_path = recorder.generate_report()
            logger.info(f"[Lookout] Report written to {self.last_report_path}")

    def record_observation(self, instruction: str, result: Any) -> str:
        key = get_id(instruction)
        self.observations[key] = {"result": result, "observation": instruction}
        return key

    def record_action(self, action: str, result: Any) -> str:
        key = get_id(action)
        self.actions[key] = {"result": result, "action": action}
        return key

    def goto(self, url: str) -> None:
        """Navigate and wait for the DOM to settle."""
        self._initialize()
        logger.info(f"[Lookout] Navigating to {url}")
        self._page.goto(url)
        self._page.wait_for_load()
        self._page.wait_for_settled_dom()

    def act(
        self,
        goal: str,
        use_vision: Optional[VisionSetting] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ActionResult:
        """
        Perform a natural-language action on the current page.

        Args:
            goal: e.g. "search for 'lookout' and press enter"
            use_vision: True, False or "fallback"; defaults to the config
            cancel: Event that stops the loop at the next pass

        Returns:
            ActionResult. Failures are reported in it, never raised.
        """
        self._initialize()
        if use_vision is None:
            use_vision = self.config.use_vision

        recorder = self._recorder("act", goal)
        loop = ActionLoop(
            self._page,
            self._mapper,
            self._executor,
            self._engine,
            max_steps=self.config.max_steps,
            verifier_use_vision=self.config.verifier_use_vision,
            recorder=recorder,
        )
        try:
            result = loop.run(goal, use_vision=use_vision, cancel=cancel)
        finally:
            self._close_recorder(recorder)

        self.record_action(goal, result.message if result.success else None)
        return result

    def extract(
        self,
        instruction: str,
        schema: Schema,
        cancel: Optional[threading.Event] = None,
    ) -> ExtractionResult:
        """
        Extract structured data from the whole page.

        Args:
            instruction: What to pull out, e.g. "the price of every plan"
            schema: A pydantic model class or a JSON schema dict. With a
                model class the result carries a validated instance.
        """
        self._initialize()
        schema_dict = schema_to_dict(schema)
        recorder = self._recorder("extract", instruction)
        loop = ExtractionLoop(
            self._page,
            self._mapper,
            self._engine,
            max_steps=self.config.max_steps,
            recorder=recorder,
        )
        try:
            result = loop.run(instruction, schema_dict, cancel=cancel)
        except (LookoutError, WebDriverException) as e:
            logger.error(f"[extraction] Error extracting data: {e}")
            if recorder:
                recorder.log_error("Extraction failed", e)
            return ExtractionResult(success=False, data={}, message=f"Error extracting data: {e}")
        finally:
            self._close_recorder(recorder)

        if result.success and isinstance(schema, type):
            try:
                result.model = schema.model_validate(result.data)
            except ValidationError as e:
                logger.warning(f"[extraction] Extracted data does not match {schema.__name__}: {e}")
                result.success = False
                result.message = f"Extracted data failed validation: {e}"
        return result

    def observe(self, observation: str) -> Optional[str]:
        """
        Find the element matching a description in the current chunk.

        Returns:
            The element's address (an XPath), or None when nothing matches.
        """
        self._initialize()
        logger.info(f"[observation] Starting observation: {observation}")
        try:
            self._page.wait_for_settled_dom()
            chunk = self._mapper.process_dom([])
            index = self._engine.decide_observation_target(observation, chunk.text)
            if index is None:
                logger.info(f"[observation] No element found for: {observation}")
                self.record_observation(observation, None)
                return None

            address = chunk.addresses.get(index)
            if address is None:
                raise ElementNotFoundError(f"index {index}")
            if self._page.count(address) == 0:
                raise ElementNotFoundError(address)
        except (LookoutError, WebDriverException) as e:
            logger.error(f"[observation] Error observing element: {e}")
            return None

        logger.info(f"[observation] Found element {index} at {address}")
        self.record_observation(observation, address)
        return address

    def ask(self, question: str) -> Optional[str]:
        """Answer a free-form question with the decision engine's model."""
        self._initialize()
        return self._engine.ask(question)

    def flatten(self, chunk: Optional[int] = None) -> FlattenedChunk:
        """Flatten one chunk, or the unseen chunk nearest the current scroll when ``chunk`` is None."""
        self._initialize()
        self._page.wait_for_settled_dom()
        if chunk is None:
            return self._mapper.process_dom([])
        return self._mapper.flatten(chunk)

    def flatten_all(self) -> FlattenedChunk:
        self._initialize()
        self._page.wait_for_settled_dom()
        return self._mapper.flatten_all()

    def registry(self) -> str:
        """Both registries as JSON."""
        return json.dumps({"observations": self.observations, "actions": self.actions}, indent=2)

    def close(self) -> None:
        """Quit the browser this orchestrator launched."""
        if self._driver is not None:
            try:
                self._driver.quit()
            except WebDriverException as e:
                logger.warning(f"[Lookout] Error closing browser: {e}")
            self._driver = None

    def __enter__(self) -> "LookoutOrchestrator":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
