"""Action Layer - applies decided steps to the page."""

from lookout.layers.action.executor import ActionExecutor, StepResult
from lookout.layers.action.operations import Operation, OperationKind, parse_operation

__all__ = ["ActionExecutor", "StepResult", "Operation", "OperationKind", "parse_operation"]
