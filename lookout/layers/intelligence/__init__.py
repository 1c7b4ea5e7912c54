"""Intelligence Layer - Decision making components."""

from lookout.layers.intelligence.decision_engine import DecisionEngine
from lookout.layers.intelligence.brains.base import ActionDecision, BrainInterface, ExtractionDecision

__all__ = ["DecisionEngine", "ActionDecision", "BrainInterface", "ExtractionDecision"]
