"""Error types raised by simgraph.

Every message is meant to be shown to a user as-is.
"""


class SimGraphError(Exception):
    """Base class for all simgraph errors."""


class DimensionMismatch(SimGraphError, ValueError):
    """Two vectors of unequal length were compared."""

    def __init__(self, left: int, right: int):
        self.left = left
        self.right = right
        super().__init__(f"Embeddings must have the same length (got {left} and {right})")


class UnknownStrategy(SimGraphError, ValueError):
    """A connection or search strategy name is not registered."""

    def __init__(self, kind: str, name: str, available: list[str] | None = None):
        self.kind = kind
        self.name = name
        self.available = available or []
        message = f"Unknown {kind} strategy: {name}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class RateLimited(SimGraphError):
    """The embedding provider asked us to slow down (HTTP 429)."""

    def __init__(self, message: str = "Rate limit exceeded. Please try again in a moment."):
        super().__init__(message)


class ProviderError(SimGraphError):
    """The embedding provider failed for a reason other than rate limiting."""


class PipelineFailed(SimGraphError):
    """An embedding run was aborted.

    Embeddings committed by earlier batches stay on their items.
    """

    def __init__(self, message: str, batch: int | None = None, attempts: int = 0):
        self.batch = batch
        self.attempts = attempts
        super().__init__(message)


class PipelineCancelled(PipelineFailed):
    """An embedding run was cancelled between batches."""
