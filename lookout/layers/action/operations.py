"""
Operations - the closed set of things an action step may do to an element.

A decision names a method as free text. It is mapped onto an
:class:`OperationKind` and its arguments are checked here, before anything
touches the page.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from lookout.core.errors import InvalidMethodError


class OperationKind(str, Enum):
    CLICK = "click"
    FILL = "fill"
    TYPE = "type"
    SCROLL_INTO_VIEW = "scrollIntoView"
    CHECK = "check"
    UNCHECK = "uncheck"
    SELECT_OPTION = "selectOption"
    HOVER = "hover"
    PRESS = "press"


# Operations that take exactly one text argument.
TEXT_ARGUMENT = frozenset([
    OperationKind.FILL,
    OperationKind.TYPE,
    OperationKind.SELECT_OPTION,
    OperationKind.PRESS,
])

KEYSTROKE_OPERATIONS = frozenset([OperationKind.FILL, OperationKind.TYPE])


def _normalize(method: str) -> str:
    return "".join(ch for ch in method.lower() if ch.isalnum())


_BY_NAME = {_normalize(kind.value): kind for kind in OperationKind}
_BY_NAME.update({
    "dblclick": OperationKind.CLICK,
    "tap": OperationKind.CLICK,
    "scroll": OperationKind.SCROLL_INTO_VIEW,
    "scrollintoviewifneeded": OperationKind.SCROLL_INTO_VIEW,
    "select": OperationKind.SELECT_OPTION,
    "selectoptions": OperationKind.SELECT_OPTION,
    "presskey": OperationKind.PRESS,
})


@dataclass(frozen=True)
class Operation:
    """A validated operation, ready to dispatch."""
    kind: OperationKind
    text: Optional[str] = None

    @property
    def is_keystroke(self) -> bool:
        return self.kind in KEYSTROKE_OPERATIONS

    def describe(self) -> str:
        return self.kind.value if self.text is None else f"{self.kind.value}({self.text!r})"


def parse_operation(method: Optional[str], args: Optional[Sequence[Any]] = None) -> Operation:
    """
    Map a decision's method name and arguments onto an :class:`Operation`.

    Raises:
        InvalidMethodError: unknown method, or arguments of the wrong shape.
    """
    if not method:
        raise InvalidMethodError(str(method), "no method given")
    kind = _BY_NAME.get(_normalize(method))
    if kind is None:
        raise InvalidMethodError(method, "not a supported page operation")

    args = list(args or [])
    if kind not in TEXT_ARGUMENT:
        # Trailing option objects are tolerated and dropped.
        return Operation(kind=kind)

    if not args:
        raise InvalidMethodError(method, "expects one text argument")
    value = args[0]
    if isinstance(value, (list, tuple)) and kind is OperationKind.SELECT_OPTION and value:
        value = value[0]
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise InvalidMethodError(method, f"argument must be text, got {type(value).__name__}")
    return Operation(kind=kind, text=value)
