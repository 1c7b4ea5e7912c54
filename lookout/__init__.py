"""
Lookout - natural-language browser automation.

Flattens web pages into indexed text, lets a language model pick what to
click, type or read, and applies those steps through Selenium.
"""

__version__ = "0.1.0"

from lookout.core.action_loop import ActionResult
from lookout.core.extraction_loop import ExtractionResult
from lookout.core.orchestrator import LookoutConfig, LookoutOrchestrator

__all__ = [
    "ActionResult",
    "ExtractionResult",
    "LookoutConfig",
    "LookoutOrchestrator",
    "__version__",
]
