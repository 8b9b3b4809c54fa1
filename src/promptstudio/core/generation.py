"""Generation client: the single choke point for calls to the generation service."""

import time
from typing import Any, Callable, Mapping, Optional

from pydantic import TypeAdapter

from promptstudio.core.config import Config
from promptstudio.core.errors import (
    EmptyResultError,
    GenerationError,
    ParseError,
    PollTimeoutError,
    RequestTimeoutError,
)
from promptstudio.core.llm_base import (
    GenerationBackend,
    GenerationRequest,
    GenerationResponse,
    InlineData,
    ModelProfile,
    VideoOperation,
)
from promptstudio.core.logging import get_logger
from promptstudio.core.rate_limit import RateLimiter
from promptstudio.core.retry import retry_with_exponential_backoff
from promptstudio.core.validator import extract_json, schema_name, validate_payload

logger = get_logger("promptstudio.generation")

DEFAULT_MODELS: dict[ModelProfile, str] = {
    ModelProfile.FAST_STRUCTURED: "gemini-3-flash-preview",
    ModelProfile.DEEP_REASONING: "gemini-3-pro-preview",
    ModelProfile.SEARCH_GROUNDED: "gemini-3-flash-preview",
    ModelProfile.AUDIO: "gemini-2.5-flash-preview-tts",
    ModelProfile.IMAGE: "gemini-3-pro-image-preview",
    ModelProfile.VIDEO: "veo-3.1-fast-generate-preview",
}

DEFAULT_VOICE = "Kore"


def resolve_model(kind: ModelProfile, overrides: Optional[Mapping[str, str]] = None) -> str:
    """
    Map a model profile to a model id.

    Args:
        kind: Model profile
        overrides: Optional profile name -> model id mapping (from config)

    Returns:
        Model id
    """
    kind = ModelProfile(kind)
    if overrides:
        override = overrides.get(kind.value)
        if override:
            return override
    return DEFAULT_MODELS[kind]


class GenerationClient:
    """
    Builds provider requests, issues them through a backend and decodes the result.

    Structured calls either return a value of the declared shape or raise
    ParseError. Transport failures are retried with exponential backoff.
    """

    def __init__(
        self,
        backend: GenerationBackend,
        config: Optional[Config] = None,
        rate_limiter: Optional[RateLimiter] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.backend = backend
        self.config = config or Config()
        self.rate_limiter = rate_limiter or RateLimiter(self.config.requests_per_minute)
        self._sleep = sleep
        self._clock = clock

        retry = retry_with_exponential_backoff(
            max_retries=self.config.max_retries,
            logger_instance=logger,
            sleep=sleep,
        )
        self._send = retry(self._send_once)
        self._start_video = retry(self._start_video_once)
        self._check_video = retry(self._check_video_once)

    @classmethod
    def from_config(cls, config: Config) -> "GenerationClient":
        """Create a client backed by the Gemini API."""
        from promptstudio.core.gemini_client import GeminiClient

        return cls(GeminiClient(api_key=config.api_key), config=config)

    def model_for(self, kind: ModelProfile) -> str:
        return resolve_model(kind, self.config.models)

    def _acquire(self, profile: ModelProfile) -> None:
        self.rate_limiter.acquire(f"profile:{profile.value}", wait=True)

    def _send_once(self, request: GenerationRequest, deadline: float) -> GenerationResponse:
        remaining = deadline - self._clock()
        if remaining <= 0:
            error = RequestTimeoutError(
                f"Generation call exceeded its timeout: {request.profile.value}/{request.model}",
                profile=request.profile.value,
                model=request.model,
            )
            error.retryable = False
            raise error

        self._acquire(request.profile)
        start_time = time.time()
        try:
            response = self.backend.send(request, remaining)
        except GenerationError as e:
            if isinstance(e, RequestTimeoutError):
                e.retryable = False
            logger.error(
                f"Generation call failed: {request.profile.value}/{request.model}",
                context={
                    "profile": request.profile.value,
                    "model": request.model,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "latency_ms": (time.time() - start_time) * 1000,
                    "prompt_length": len(request.prompt),
                },
            )
            e.profile = e.profile or request.profile.value
            e.model = e.model or request.model
            raise

        logger.log_generation_call(
            profile=request.profile.value,
            model=request.model,
            prompt=request.prompt,
            response_length=response.payload_size,
            latency_ms=(time.time() - start_time) * 1000,
            structured=request.response_schema is not None,
            sources=len(response.grounding_sources),
        )
        return response

    def _start_video_once(self, request: GenerationRequest, timeout: float) -> VideoOperation:
        self._acquire(request.profile)
        return self.backend.start_video(request, timeout)

    def _check_video_once(self, operation: VideoOperation, timeout: float) -> VideoOperation:
        return self.backend.check_video(operation, timeout)

    def generate(
        self,
        kind: ModelProfile,
        payload: str,
        schema: Any = None,
        *,
        search: bool = False,
        function_declarations: tuple[dict[str, Any], ...] = (),
        reasoning_budget: Optional[int] = None,
        system_instruction: Optional[str] = None,
        attachments: tuple[InlineData, ...] = (),
        aspect_ratio: Optional[str] = None,
        image_size: Optional[str] = None,
        voice: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Issue one generation call.

        Args:
            kind: Model profile; selects the model
            payload: Prompt text
            schema: Optional pydantic model class or generic alias (e.g. list[str])
                describing the expected JSON
            search: Attach the search grounding tool
            function_declarations: Function declarations offered to the model
            reasoning_budget: Thinking token budget
            system_instruction: Optional system instruction
            attachments: Binary inputs sent with the prompt
            aspect_ratio: Image aspect ratio
            image_size: Image size (1K, 2K, 4K)
            voice: Prebuilt voice name; requests audio output
            timeout: Seconds for the whole call, retries included (defaults to config.timeout)

        Returns:
            A validated instance of ``schema`` when one was given, else the
            GenerationResponse

        Raises:
            TransportError: Provider or network failure after retries
            RequestTimeoutError: The call did not finish within the timeout
            ParseError: Structured output was not valid JSON of the declared shape
            EmptyResultError: Structured call returned no text
        """
        kind = ModelProfile(kind)
        model = self.model_for(kind)
        adapter = TypeAdapter(schema) if schema is not None else None

        request = GenerationRequest(
            profile=kind,
            model=model,
            prompt=payload,
            response_schema=adapter.json_schema(by_alias=True) if adapter is not None else None,
            search=search,
            function_declarations=tuple(function_declarations),
            reasoning_budget=reasoning_budget,
            system_instruction=system_instruction,
            attachments=tuple(attachments),
            aspect_ratio=aspect_ratio,
            image_size=image_size,
            voice=voice,
        )
        deadline = self._clock() + (timeout or self.config.timeout)
        response = self._send(request, deadline)

        if adapter is None:
            return response

        if not response.text:
            raise EmptyResultError(
                f"Structured {kind.value} call returned no text",
                profile=kind.value,
                model=model,
            )
        try:
            data = extract_json(response.text)
        except ValueError as e:
            raise ParseError(str(e), raw_text=response.text, profile=kind.value, model=model) from e

        return validate_payload(
            data,
            adapter,
            schema_name(schema),
            raw_text=response.text,
            profile=kind.value,
            model=model,
        )

    def generate_text(self, kind: ModelProfile, payload: str, **options: Any) -> str:
        """Unstructured call returning the response text."""
        response = self.generate(kind, payload, **options)
        if not response.text:
            raise EmptyResultError(
                f"{ModelProfile(kind).value} call returned no text",
                profile=ModelProfile(kind).value,
                model=self.model_for(kind),
            )
        return response.text

    def generate_image(
        self,
        prompt: str,
        aspect_ratio: str = "1:1",
        image_size: str = "1K",
    ) -> InlineData:
        """Generate one image and return its first inline part."""
        response = self.generate(
            ModelProfile.IMAGE,
            prompt,
            aspect_ratio=aspect_ratio,
            image_size=image_size,
        )
        for part in response.binary_parts:
            if part.mime_type.startswith("image/"):
                return part
        raise EmptyResultError(
            "No image part found in response",
            profile=ModelProfile.IMAGE.value,
            model=self.model_for(ModelProfile.IMAGE),
        )

    def generate_speech(self, text: str, voice: str = DEFAULT_VOICE) -> bytes:
        """Synthesize speech and return the raw audio bytes."""
        response = self.generate(ModelProfile.AUDIO, text, voice=voice)
        for part in response.binary_parts:
            if part.data:
                return part.data
        raise EmptyResultError(
            "No audio part found in response",
            profile=ModelProfile.AUDIO.value,
            model=self.model_for(ModelProfile.AUDIO),
        )

    def generate_video(
        self,
        prompt: str,
        image: Optional[InlineData] = None,
        aspect_ratio: str = "16:9",
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
        max_wait: Optional[float] = None,
    ) -> str:
        """
        Submit a video synthesis request and poll it to completion.

        The poll loop is bounded by both ``max_polls`` checks and ``max_wait``
        seconds; the config supplies defaults for all three bounds.

        Returns:
            Downloadable video URI

        Raises:
            PollTimeoutError: If the operation is not done within the bounds
            EmptyResultError: If the finished operation carries no video
        """
        interval = self.config.video_poll_interval if poll_interval is None else poll_interval
        polls_allowed = self.config.video_max_polls if max_polls is None else max_polls
        wait_allowed = self.config.video_max_wait if max_wait is None else max_wait

        model = self.model_for(ModelProfile.VIDEO)
        request = GenerationRequest(
            profile=ModelProfile.VIDEO,
            model=model,
            prompt=prompt,
            attachments=(image,) if image is not None else (),
            aspect_ratio=aspect_ratio,
        )

        start_time = time.time()
        started = self._clock()
        operation = self._start_video(request, self.config.timeout)
        polls = 0
        while not operation.done:
            elapsed = self._clock() - started
            if polls >= polls_allowed or elapsed >= wait_allowed:
                logger.error(
                    "Video generation did not finish in time",
                    context={"polls": polls, "elapsed_s": elapsed, "model": model},
                )
                raise PollTimeoutError(
                    f"Video generation not finished after {polls} polls ({elapsed:.0f}s)",
                    polls=polls,
                    elapsed=elapsed,
                    profile=ModelProfile.VIDEO.value,
                    model=model,
                )
            self._sleep(interval)
            operation = self._check_video(operation, self.config.timeout)
            polls += 1

        if operation.error:
            raise GenerationError(
                f"Video generation failed: {operation.error}",
                profile=ModelProfile.VIDEO.value,
                model=model,
            )
        if not operation.uri:
            raise EmptyResultError(
                "Video operation finished without a video reference",
                profile=ModelProfile.VIDEO.value,
                model=model,
            )

        logger.log_generation_call(
            profile=ModelProfile.VIDEO.value,
            model=model,
            prompt=prompt,
            response_length=len(operation.uri),
            latency_ms=(time.time() - start_time) * 1000,
            polls=polls,
        )
        return operation.uri
