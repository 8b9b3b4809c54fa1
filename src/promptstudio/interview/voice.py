"""Voice scoping side-channel: drains live-session function calls into the interview."""

import threading
from typing import Any, Callable, Iterable, Iterator, Optional

from promptstudio.core.errors import PromptStudioError, ValidationError
from promptstudio.core.generation import GenerationClient
from promptstudio.core.llm_base import FunctionCall, ModelProfile
from promptstudio.core.logging import get_logger
from promptstudio.interview.engine import InterviewEngine, VoiceFieldWriter
from promptstudio.interview.fields import FIELD_SCHEDULE
from promptstudio.schemas.project import InterviewState

logger = get_logger("promptstudio.voice")

UPDATE_FIELD = "update_field"

# Function declaration offered to the live audio session
UPDATE_FIELD_DECLARATION: dict[str, Any] = {
    "name": UPDATE_FIELD,
    "description": "Update one field of the project configuration.",
    "parameters": {
        "type": "OBJECT",
        "properties": {
            "field": {
                "type": "STRING",
                "description": "Field name, e.g. title, description, complexity",
                "enum": [spec.name for spec in FIELD_SCHEDULE],
            },
            "value": {"type": "STRING", "description": "New value for the field"},
        },
        "required": ["field", "value"],
    },
}

VOICE_SYSTEM_INSTRUCTION = (
    "You are a senior software architect guiding the user through scoping their project. "
    "Ask about title, description, audience, features, scope, complexity, IDE, model, "
    "GitHub, hosting, test strategy and security. Call update_field as soon as you learn a value."
)


class VoiceScopingSession:
    """
    Runs a live voice session as a concurrent task next to the interview engine.

    ``source`` yields the function calls produced by the live session (the audio
    transport itself is external). Calls named update_field are applied through
    the engine's voice writer; while the session runs, text turns are suspended.
    """

    def __init__(
        self,
        engine: InterviewEngine,
        source: Iterable[FunctionCall],
        on_update: Optional[Callable[[str, Any], None]] = None,
    ):
        self.engine = engine
        self.source = source
        self.on_update = on_update
        self.applied: list[tuple[str, Any]] = []
        self.rejected: list[tuple[str, str]] = []
        self.error: Optional[PromptStudioError] = None
        self._writer: Optional[VoiceFieldWriter] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    def start(self) -> None:
        """Take the writer from the engine and start draining on a worker thread."""
        self._writer = self.engine.begin_voice()
        self._thread = threading.Thread(target=self._drain, name="voice-scoping", daemon=True)
        self._thread.start()

    def _drain(self) -> None:
        try:
            self._drain_calls()
        except PromptStudioError as e:
            logger.error(f"Voice session stopped: {e}", context={"error_type": type(e).__name__})
            self.error = e

    def _drain_calls(self) -> None:
        for call in self.source:
            if self._stop.is_set():
                break
            if call.name != UPDATE_FIELD:
                logger.debug(f"Ignoring function call {call.name}")
                continue
            field = str(call.args.get("field", ""))
            try:
                value = self._writer.update_field(field, call.args.get("value"))
            except ValidationError as e:
                logger.warning(
                    f"Voice update for {field} rejected: {e}",
                    context={"field": field},
                )
                self.rejected.append((field, str(e)))
                continue
            self.applied.append((field, value))
            if self.on_update is not None:
                self.on_update(field, value)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the source to be exhausted. Returns False on timeout."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def stop(self, timeout: Optional[float] = 5.0) -> Optional[InterviewState]:
        """Stop draining, release voice mode and return the engine's next question."""
        self._stop.set()
        self.wait(timeout)
        return self.engine.end_voice()

    def __enter__(self) -> "VoiceScopingSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.engine.voice_active:
            self.stop()


def utterance_source(client: GenerationClient, utterances: Iterable[str]) -> Iterator[FunctionCall]:
    """
    Turn transcribed utterances into update_field calls.

    Stands in for the live audio session when the transcript is already text,
    e.g. typed answers in the terminal.
    """
    for utterance in utterances:
        if not utterance.strip():
            continue
        response = client.generate(
            ModelProfile.FAST_STRUCTURED,
            utterance,
            function_declarations=(UPDATE_FIELD_DECLARATION,),
            system_instruction=VOICE_SYSTEM_INSTRUCTION,
        )
        yield from response.function_calls
