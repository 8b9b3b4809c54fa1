"""Request/response contract between the generation client and a provider backend."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol


class ModelProfile(str, Enum):
    """Capability profile of a call. Model selection is a pure function of the profile."""

    FAST_STRUCTURED = "fast_structured"
    DEEP_REASONING = "deep_reasoning"
    SEARCH_GROUNDED = "search_grounded"
    AUDIO = "audio"
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class InlineData:
    """Binary input or output part."""
    mime_type: str
    data: bytes


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Source:
    title: str
    uri: str


@dataclass(frozen=True)
class GenerationRequest:
    """Everything a backend needs to issue one call."""
    profile: ModelProfile
    model: str
    prompt: str
    response_schema: Optional[dict[str, Any]] = None
    search: bool = False
    function_declarations: tuple[dict[str, Any], ...] = ()
    reasoning_budget: Optional[int] = None
    system_instruction: Optional[str] = None
    attachments: tuple[InlineData, ...] = ()
    aspect_ratio: Optional[str] = None
    image_size: Optional[str] = None
    voice: Optional[str] = None


@dataclass
class GenerationResponse:
    """Normalized provider response."""
    text: Optional[str] = None
    binary_parts: list[InlineData] = field(default_factory=list)
    grounding_sources: list[Source] = field(default_factory=list)
    function_calls: list[FunctionCall] = field(default_factory=list)

    @property
    def payload_size(self) -> int:
        """Characters of text plus bytes of binary output."""
        return len(self.text or "") + sum(len(part.data) for part in self.binary_parts)


@dataclass
class VideoOperation:
    """Handle of a long-running video synthesis operation."""
    handle: Any
    done: bool = False
    uri: Optional[str] = None
    error: Optional[str] = None


class GenerationBackend(Protocol):
    """
    Protocol for provider backends.

    Implementations translate provider and network failures into TransportError
    and never parse structured output themselves.
    """

    def send(self, request: GenerationRequest, timeout: float) -> GenerationResponse:
        """
        Issue a single generation call.

        Args:
            request: Fully built request
            timeout: Seconds before the call fails with RequestTimeoutError

        Returns:
            Normalized response

        Raises:
            TransportError: If the provider or the network fails
        """
        ...

    def start_video(self, request: GenerationRequest, timeout: float) -> VideoOperation:
        """Submit a video synthesis request and return its operation handle."""
        ...

    def check_video(self, operation: VideoOperation, timeout: float) -> VideoOperation:
        """Refresh an operation handle."""
        ...
