"""Error taxonomy for the force-plate pipeline."""
from typing import Optional


class ForcePlateError(Exception):
    """Base class for all pipeline errors."""


class InvalidParameterError(ForcePlateError, ValueError):
    """Out-of-range configuration or argument; raised at the call that requested it."""


class InsufficientDataError(ForcePlateError):
    """A metric could not be computed because its required data is missing.

    Pipeline stages never raise this on their own; it is raised only when a
    caller explicitly asks for a metric that was recorded as unavailable.
    """

    def __init__(self, metric: str, reason: Optional[str] = None) -> None:
        self.metric = metric
        self.reason = reason or "insufficient data"
        super().__init__(f"{metric} unavailable: {self.reason}")
