class InvalidInputError(ValueError):
    """Raised before any work starts when the input cannot be analysed."""


class PerItemAnalysisError(Exception):
    """Analysis of a single transition failed. Never leaves the pipeline:
    it is turned into an error placeholder result."""

    def __init__(self, index: int, message: str):
        super().__init__(message)
        self.index = index


class PersistenceError(Exception):
    """An artifact could not be written. Logged only."""

    def __init__(self, label: str, cause: Exception):
        super().__init__(f"Failed to persist artifact '{label}': {cause}")
        self.label = label
        self.cause = cause


class StrategyInvariantViolation(RuntimeError):
    """A runner wrote a result slot twice or left one empty."""
