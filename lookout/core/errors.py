"""
Error taxonomy for Lookout.

Transient conditions (empty chunks, no decision, verifier rejection) are
never raised; they drive the loops forward. Everything here is either a
hard caller error or an apply-time fault converted into a failure result.
"""


class LookoutError(Exception):
    """Base class for all Lookout errors."""


class ChunkExhaustedError(LookoutError):
    """Raised when a chunk is requested but every chunk was already seen."""

    def __init__(self, chunks_seen, total_chunks: int):
        self.chunks_seen = list(chunks_seen)
        self.total_chunks = total_chunks
        super().__init__(
            f"no chunks remaining to check (seen {sorted(set(self.chunks_seen))} of {total_chunks})"
        )


class InvalidMethodError(LookoutError):
    """The decision-maker named a method outside the supported operation set."""

    def __init__(self, method: str, reason: str = ""):
        self.method = method
        message = f"chosen method {method!r} is invalid"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ElementNotFoundError(LookoutError):
    """An address (or a flattened index) did not resolve to any element."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"element not found: {target}")


class DomUnavailableError(LookoutError):
    """The page has no document body or returned an unusable snapshot."""


class DecisionError(LookoutError):
    """The decision-maker failed to answer or returned a reply that does not parse."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")
