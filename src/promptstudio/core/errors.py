"""Error taxonomy for Prompt Studio."""

from typing import Any, Optional


class PromptStudioError(Exception):
    """Base class for all Prompt Studio errors."""

    pass


class GenerationError(PromptStudioError):
    """Raised when a call to the generation service does not produce a usable result."""

    def __init__(self, message: str, profile: Optional[str] = None, model: Optional[str] = None):
        super().__init__(message)
        self.profile = profile
        self.model = model


class TransportError(GenerationError):
    """Network or provider failure. Retryable by caller policy unless ``retryable`` is False."""

    retryable: bool = True


class RequestTimeoutError(TransportError):
    """A single-shot generation call exceeded its timeout."""

    pass


class ParseError(GenerationError):
    """Structured response was not valid JSON or did not match the declared schema."""

    def __init__(
        self,
        message: str,
        raw_text: Optional[str] = None,
        profile: Optional[str] = None,
        model: Optional[str] = None,
    ):
        super().__init__(message, profile=profile, model=model)
        self.raw_text = raw_text


class EmptyResultError(GenerationError):
    """The provider answered, but the expected content (text, image, audio, video) is missing."""

    pass


class PollTimeoutError(GenerationError, TimeoutError):
    """A long-running operation did not finish within its poll bound."""

    def __init__(self, message: str, polls: int = 0, elapsed: float = 0.0, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.polls = polls
        self.elapsed = elapsed


class ValidationError(PromptStudioError):
    """User input failed local validation before reaching the network."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InterviewClosedError(PromptStudioError):
    """The interview has completed and no longer accepts answers."""

    pass


class IncompleteProjectError(PromptStudioError):
    """Project data is missing fields required before the pipeline may start."""

    def __init__(self, missing: list[str]):
        super().__init__(f"Project data is incomplete, missing: {', '.join(missing)}")
        self.missing = missing


class PipelineBusyError(PromptStudioError):
    """A pipeline run is already in flight."""

    pass


class PipelineError(PromptStudioError):
    """A mandatory pipeline stage failed and terminated the run."""

    def __init__(self, message: str, stage: str, partial_result: Any = None):
        super().__init__(message)
        self.stage = stage
        self.partial_result = partial_result


class InterviewSuspendedError(PromptStudioError):
    """Turn-based advancement is suspended while voice mode owns the project data."""

    pass
