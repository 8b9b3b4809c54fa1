"""Tests for the generation client, retry policy and JSON extraction."""

from itertools import count

import pytest
from conftest import FakeBackend, make_client

from promptstudio.core.errors import (
    EmptyResultError,
    GenerationError,
    ParseError,
    PollTimeoutError,
    RequestTimeoutError,
    TransportError,
)
from promptstudio.core.generation import DEFAULT_MODELS, resolve_model
from promptstudio.core.llm_base import (
    FunctionCall,
    GenerationResponse,
    InlineData,
    ModelProfile,
    Source,
    VideoOperation,
)
from promptstudio.core.retry import retry_with_exponential_backoff
from promptstudio.core.validator import extract_json
from promptstudio.schemas.system_model import SystemModel


class TestResolveModel:
    def test_defaults(self):
        assert resolve_model(ModelProfile.DEEP_REASONING) == "gemini-3-pro-preview"
        assert resolve_model(ModelProfile.VIDEO) == "veo-3.1-fast-generate-preview"
        assert set(DEFAULT_MODELS) == set(ModelProfile)

    def test_override_by_profile_name(self):
        overrides = {"fast_structured": "gemini-2.5-flash"}
        assert resolve_model(ModelProfile.FAST_STRUCTURED, overrides) == "gemini-2.5-flash"
        assert resolve_model(ModelProfile.AUDIO, overrides) == "gemini-2.5-flash-preview-tts"

    def test_accepts_profile_value(self):
        assert resolve_model("image") == DEFAULT_MODELS[ModelProfile.IMAGE]


class TestExtractJson:
    def test_plain_object(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_fenced_block(self):
        text = 'Here you go:\n```json\n{"entities": []}\n```\nEnjoy.'
        assert extract_json(text) == {"entities": []}

    def test_bare_array_before_object(self):
        assert extract_json('Ideas: ["Chat", {"x": 1}] done') == ["Chat", {"x": 1}]

    def test_no_json(self):
        with pytest.raises(ValueError):
            extract_json("I cannot help with that.")


class TestStructuredGeneration:
    def test_returns_validated_model(self, backend, client, system_model_payload):
        backend.queue(system_model_payload)
        model = client.generate(ModelProfile.FAST_STRUCTURED, "prompt", schema=SystemModel)

        assert isinstance(model, SystemModel)
        request = backend.requests[0]
        assert request.model == "gemini-3-flash-preview"
        assert request.response_schema["title"] == "SystemModel"
        assert "coreLogic" in request.response_schema["properties"]

    def test_list_schema(self, backend, client):
        backend.queue('```json\n["Chat", "Export"]\n```')
        assert client.generate(ModelProfile.FAST_STRUCTURED, "p", schema=list[str]) == ["Chat", "Export"]

    def test_invalid_shape_raises_parse_error(self, backend, client):
        backend.queue({"entities": [{"name": "Board"}]})
        with pytest.raises(ParseError) as exc_info:
            client.generate(ModelProfile.FAST_STRUCTURED, "p", schema=SystemModel)
        assert "coreLogic" in str(exc_info.value) or "core_logic" in str(exc_info.value)
        assert exc_info.value.raw_text is not None

    def test_non_json_raises_parse_error(self, backend, client):
        backend.queue("Sorry, no JSON today")
        with pytest.raises(ParseError):
            client.generate(ModelProfile.FAST_STRUCTURED, "p", schema=SystemModel)

    def test_empty_text_raises_empty_result(self, backend, client):
        backend.queue(GenerationResponse(text=None))
        with pytest.raises(EmptyResultError):
            client.generate(ModelProfile.FAST_STRUCTURED, "p", schema=SystemModel)

    def test_unstructured_returns_response(self, backend, client):
        backend.queue(
            GenerationResponse(
                text="answer",
                grounding_sources=[Source(title="Docs", uri="https://example.com")],
                function_calls=[FunctionCall(name="update_field", args={"field": "title"})],
            )
        )
        response = client.generate(ModelProfile.SEARCH_GROUNDED, "p", search=True)
        assert response.text == "answer"
        assert response.grounding_sources[0].uri == "https://example.com"
        assert backend.requests[0].search is True
        assert backend.requests[0].response_schema is None


class TestRetry:
    def test_transport_error_retried(self, backend, client):
        backend.queue(TransportError("503"), TransportError("503"), "ok")
        assert client.generate_text(ModelProfile.FAST_STRUCTURED, "p") == "ok"
        assert len(backend.requests) == 3

    def test_gives_up_after_max_retries(self, backend, client):
        backend.queue(*[TransportError("down")] * 3)
        with pytest.raises(TransportError):
            client.generate(ModelProfile.FAST_STRUCTURED, "p")
        assert len(backend.requests) == 3

    def test_timeout_is_not_retried(self, backend, client):
        backend.queue(RequestTimeoutError("slow"), "ok")
        with pytest.raises(RequestTimeoutError):
            client.generate_text(ModelProfile.FAST_STRUCTURED, "p")
        assert len(backend.requests) == 1

    def test_timeout_bounds_the_whole_call(self, backend):
        now = [0.0]
        client = make_client(backend, clock=lambda: now[0])

        def slow_failure(request):
            now[0] += 3.0
            return TransportError("503")

        backend.queue(slow_failure, slow_failure, "never sent")
        with pytest.raises(RequestTimeoutError) as exc_info:
            client.generate(ModelProfile.FAST_STRUCTURED, "p", timeout=5.0)

        assert len(backend.requests) == 2
        assert exc_info.value.retryable is False
        assert backend.replies == ["never sent"]

    def test_non_retryable_transport_error(self, backend, client):
        error = TransportError("bad request")
        error.retryable = False
        backend.queue(error)
        with pytest.raises(TransportError):
            client.generate(ModelProfile.FAST_STRUCTURED, "p")
        assert len(backend.requests) == 1

    def test_parse_error_not_retried(self, backend, client):
        backend.queue("not json")
        with pytest.raises(ParseError):
            client.generate(ModelProfile.FAST_STRUCTURED, "p", schema=list[str])
        assert len(backend.requests) == 1

    def test_error_carries_profile_and_model(self, backend):
        client = make_client(backend, max_retries=0)
        backend.queue(TransportError("down"))
        with pytest.raises(TransportError) as exc_info:
            client.generate(ModelProfile.DEEP_REASONING, "p")
        assert exc_info.value.profile == "deep_reasoning"
        assert exc_info.value.model == "gemini-3-pro-preview"

    def test_decorator_backoff_delays(self):
        delays = []
        calls = count()

        @retry_with_exponential_backoff(max_retries=3, initial_delay=1.0, jitter=False, sleep=delays.append)
        def flaky():
            if next(calls) < 3:
                raise TransportError("again")
            return "done"

        assert flaky() == "done"
        assert delays == [1.0, 2.0, 4.0]


class TestMedia:
    def test_generate_image(self, backend, client):
        backend.queue(GenerationResponse(binary_parts=[InlineData("image/png", b"\x89PNG")]))
        part = client.generate_image("a logo", aspect_ratio="16:9", image_size="2K")
        assert part.data == b"\x89PNG"
        assert backend.requests[0].aspect_ratio == "16:9"
        assert backend.requests[0].image_size == "2K"

    def test_generate_image_without_image_part(self, backend, client):
        backend.queue(GenerationResponse(text="I drew nothing"))
        with pytest.raises(EmptyResultError):
            client.generate_image("a logo")

    def test_generate_speech(self, backend, client):
        backend.queue(GenerationResponse(binary_parts=[InlineData("audio/pcm", b"\x00\x01")]))
        assert client.generate_speech("hello", voice="Puck") == b"\x00\x01"
        assert backend.requests[0].voice == "Puck"
        assert backend.requests[0].profile == ModelProfile.AUDIO


class TestVideoPolling:
    def test_completes_after_polls(self, backend, client):
        backend.video_replies = [
            VideoOperation(handle="op"),
            VideoOperation(handle="op"),
            VideoOperation(handle="op", done=True, uri="https://video/1"),
        ]
        assert client.generate_video("pan across", poll_interval=0) == "https://video/1"
        assert backend.video_checks == 2

    def test_poll_bound(self, backend, client):
        backend.video_replies = [VideoOperation(handle="op")]
        with pytest.raises(PollTimeoutError) as exc_info:
            client.generate_video("pan across", poll_interval=0, max_polls=5)
        assert backend.video_checks == 5
        assert exc_info.value.polls == 5
        assert isinstance(exc_info.value, TimeoutError)

    def test_wait_bound(self):
        backend = FakeBackend()
        ticks = iter(range(0, 10_000, 100))
        client = make_client(backend, clock=lambda: next(ticks))
        backend.video_replies = [VideoOperation(handle="op")]
        with pytest.raises(PollTimeoutError):
            client.generate_video("pan across", max_polls=1000, max_wait=450)
        assert backend.video_checks < 1000

    def test_finished_without_uri(self, backend, client):
        backend.video_replies = [VideoOperation(handle="op", done=True)]
        with pytest.raises(EmptyResultError):
            client.generate_video("pan across")

    def test_operation_error(self, backend, client):
        backend.video_replies = [VideoOperation(handle="op", done=True, error="blocked")]
        with pytest.raises(GenerationError, match="blocked"):
            client.generate_video("pan across")
