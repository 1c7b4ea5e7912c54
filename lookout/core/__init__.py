"""Core module - page access, errors and the operation loops."""

from lookout.core.errors import (
    ChunkExhaustedError,
    DecisionError,
    DomUnavailableError,
    ElementNotFoundError,
    InvalidMethodError,
    LookoutError,
)

__all__ = [
    "ChunkExhaustedError",
    "DecisionError",
    "DomUnavailableError",
    "ElementNotFoundError",
    "InvalidMethodError",
    "LookoutError",
]
