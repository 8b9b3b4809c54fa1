"""Google AI Gemini backend built on the google-genai SDK."""

import os
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional, TypeVar

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from promptstudio.core.errors import RequestTimeoutError, TransportError
from promptstudio.core.llm_base import (
    FunctionCall,
    GenerationRequest,
    GenerationResponse,
    InlineData,
    Source,
    VideoOperation,
)

T = TypeVar("T")

# Google AI Studio URL for getting API keys
GOOGLE_AI_STUDIO_URL = "https://aistudio.google.com/app/apikey"

# HTTP status codes worth retrying
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


class GeminiClient:
    """Backend for the Google AI Gemini API."""

    def __init__(self, api_key: Optional[str] = None):
        """
        Initialize Gemini backend.

        Args:
            api_key: Gemini API key (defaults to GEMINI_API_KEY, then API_KEY env var)

        Raises:
            ValueError: If no API key is available
        """
        api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
        if api_key:
            api_key = api_key.strip().strip('"').strip("'")
        if not api_key:
            raise ValueError(
                "GEMINI_API_KEY environment variable is required. "
                f"Get your API key from: {GOOGLE_AI_STUDIO_URL}"
            )
        self.api_key = api_key
        self.client = genai.Client(api_key=api_key)

    def _with_timeout(self, func: Callable[..., T], timeout: float, what: str, **kwargs: Any) -> T:
        """Run a blocking SDK call on a worker thread and translate its failures."""
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(func, **kwargs)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            raise RequestTimeoutError(
                f"Gemini {what} timed out after {timeout:.0f} seconds. "
                "Try increasing the timeout or check your network connection."
            ) from e
        except genai_errors.APIError as e:
            raise self._translate_api_error(e, what) from e
        except OSError as e:
            raise TransportError(f"Network error during Gemini {what}: {e}") from e
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _translate_api_error(self, error: genai_errors.APIError, what: str) -> TransportError:
        code = getattr(error, "code", None)
        message = getattr(error, "message", None) or str(error)
        if code == 401 or code == 403:
            text = (
                f"Gemini API authentication failed ({code}). Check your GEMINI_API_KEY "
                f"or get a new key from {GOOGLE_AI_STUDIO_URL}. Original error: {message}"
            )
        elif code == 404:
            text = f"Gemini model not found (404) during {what}. Original error: {message}"
        elif code == 429:
            text = f"Gemini API rate limit or quota exceeded. Original error: {message}"
        else:
            text = f"Gemini {what} failed ({code}): {message}"
        transport_error = TransportError(text)
        transport_error.retryable = code in RETRYABLE_STATUS_CODES
        return transport_error

    def _build_config(self, request: GenerationRequest) -> types.GenerateContentConfig:
        config_params: dict[str, Any] = {}

        if request.system_instruction:
            config_params["system_instruction"] = request.system_instruction

        if request.response_schema is not None:
            config_params["response_mime_type"] = "application/json"
            config_params["response_json_schema"] = request.response_schema

        if request.reasoning_budget is not None:
            config_params["thinking_config"] = types.ThinkingConfig(
                thinking_budget=request.reasoning_budget
            )

        tools = []
        if request.search:
            tools.append(types.Tool(google_search=types.GoogleSearch()))
        if request.function_declarations:
            tools.append(
                types.Tool(
                    function_declarations=[
                        types.FunctionDeclaration(**declaration)
                        for declaration in request.function_declarations
                    ]
                )
            )
        if tools:
            config_params["tools"] = tools

        if request.aspect_ratio or request.image_size:
            config_params["image_config"] = types.ImageConfig(
                aspect_ratio=request.aspect_ratio,
                image_size=request.image_size,
            )

        if request.voice:
            config_params["response_modalities"] = ["AUDIO"]
            config_params["speech_config"] = types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=request.voice)
                )
            )

        return types.GenerateContentConfig(**config_params)

    def _build_contents(self, request: GenerationRequest) -> Any:
        if not request.attachments:
            return request.prompt
        parts = [
            types.Part.from_bytes(data=attachment.data, mime_type=attachment.mime_type)
            for attachment in request.attachments
        ]
        parts.append(types.Part.from_text(text=request.prompt))
        return parts

    def send(self, request: GenerationRequest, timeout: float) -> GenerationResponse:
        """Issue a generate_content call and normalize the response."""
        response = self._with_timeout(
            self.client.models.generate_content,
            timeout,
            "generation",
            model=request.model,
            contents=self._build_contents(request),
            config=self._build_config(request),
        )
        return self._normalize_response(response)

    def _normalize_response(self, response: Any) -> GenerationResponse:
        result = GenerationResponse()
        if not response or not response.candidates:
            return result

        candidate = response.candidates[0]
        texts = []
        if candidate.content and candidate.content.parts:
            for part in candidate.content.parts:
                if getattr(part, "thought", False):
                    continue
                if part.text:
                    texts.append(part.text)
                if part.inline_data and part.inline_data.data:
                    result.binary_parts.append(
                        InlineData(
                            mime_type=part.inline_data.mime_type or "application/octet-stream",
                            data=part.inline_data.data,
                        )
                    )
                if part.function_call:
                    result.function_calls.append(
                        FunctionCall(
                            name=part.function_call.name or "",
                            args=dict(part.function_call.args or {}),
                        )
                    )
        if texts:
            result.text = "".join(texts).strip()

        metadata = candidate.grounding_metadata
        if metadata and metadata.grounding_chunks:
            for chunk in metadata.grounding_chunks:
                if chunk.web and chunk.web.uri:
                    result.grounding_sources.append(
                        Source(title=chunk.web.title or chunk.web.uri, uri=chunk.web.uri)
                    )
        return result

    def start_video(self, request: GenerationRequest, timeout: float) -> VideoOperation:
        """Submit a Veo video synthesis request, optionally seeded with an image."""
        image = None
        if request.attachments:
            attachment = request.attachments[0]
            image = types.Image(image_bytes=attachment.data, mime_type=attachment.mime_type)

        operation = self._with_timeout(
            self.client.models.generate_videos,
            timeout,
            "video submission",
            model=request.model,
            prompt=request.prompt,
            image=image,
            config=types.GenerateVideosConfig(
                number_of_videos=1,
                aspect_ratio=request.aspect_ratio or "16:9",
                resolution="720p",
            ),
        )
        return self._to_video_operation(operation)

    def check_video(self, operation: VideoOperation, timeout: float) -> VideoOperation:
        """Refresh a video operation."""
        refreshed = self._with_timeout(
            self.client.operations.get,
            timeout,
            "video status check",
            operation=operation.handle,
        )
        return self._to_video_operation(refreshed)

    def _to_video_operation(self, operation: Any) -> VideoOperation:
        result = VideoOperation(handle=operation, done=bool(operation.done))
        if not result.done:
            return result
        if operation.error:
            result.error = str(operation.error)
            return result
        response = operation.response
        if response and response.generated_videos:
            video = response.generated_videos[0].video
            if video and video.uri:
                # Download links require the API key
                separator = "&" if "?" in video.uri else "?"
                result.uri = f"{video.uri}{separator}key={self.api_key}"
        return result
