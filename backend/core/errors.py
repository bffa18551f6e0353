"""
Engine error hierarchy.

Every error carries a ``retryable`` flag so callers can decide whether to keep
serving a previous result and try again later.
"""


class SanitationError(Exception):
    """Base error for simulation and siting operations."""

    retryable = False


class InvalidConfig(SanitationError):
    """Scenario parameters are out of range; no partial result is produced."""


class NoCandidatesAvailable(SanitationError):
    """Candidate pool was empty before the first pick."""


class UpstreamDataUnavailable(SanitationError):
    """Geodata source could not be fetched."""

    retryable = True


class OptimizationTimeout(SanitationError):
    """Siting run exceeded its wall-clock budget."""

    retryable = True

    def __init__(self, budget_s: float) -> None:
        self.budget_s = budget_s
        super().__init__(f"Optimization exceeded its {budget_s:.1f}s budget")


class OptimizationCancelled(SanitationError):
    """Siting run was superseded by a newer request."""

    retryable = True
