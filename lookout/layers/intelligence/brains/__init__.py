"""Brains - interchangeable decision-makers behind the DecisionEngine."""

from .base import ActionDecision, BrainInterface, ExtractionDecision
from .heuristic_brain import HeuristicBrain
from .cloud_brain import CloudBrain
from .local_brain import LocalBrain

__all__ = [
    "ActionDecision",
    "BrainInterface",
    "ExtractionDecision",
    "HeuristicBrain",
    "CloudBrain",
    "LocalBrain",
]
