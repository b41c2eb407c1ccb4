"""Exception types raised by the evaluation pipeline."""


class EvaluationError(Exception):
    """Base class for all evaluation errors."""


class MalformedDescriptor(EvaluationError):
    """A video descriptor line could not be decoded."""

    def __init__(self, line: str, reason: str):
        super().__init__(f"{reason}: '{line}'")
        self.line = line
        self.reason = reason


class SourceOpenError(EvaluationError):
    """A video source could not be opened or read."""


class EmptyVideoError(SourceOpenError):
    """A video produced no frames, so it has no average."""


class ModelInitializationError(EvaluationError):
    """The detector could not be constructed. Fatal for a run."""
