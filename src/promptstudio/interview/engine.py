"""Turn-based interview engine that fills ProjectData one field at a time."""

import threading
from enum import Enum
from typing import Any, Callable, Optional

from promptstudio.analyzers.marketing import MarketingAnalyzer
from promptstudio.analyzers.rebuild import RebuildResearcher
from promptstudio.analyzers.runner import AuxiliaryRunner
from promptstudio.core.errors import (
    GenerationError,
    InterviewClosedError,
    InterviewSuspendedError,
    PromptStudioError,
    ValidationError,
)
from promptstudio.core.events import EVENT_INTERVIEW_CHANGED, EventBus, InterviewChangedEvent
from promptstudio.core.generation import GenerationClient
from promptstudio.core.llm_base import ModelProfile
from promptstudio.core.logging import get_logger
from promptstudio.interview.fields import (
    FieldKind,
    FieldSpec,
    interview_progress,
    lookup_field,
    pending_fields,
)
from promptstudio.prompts import load_template
from promptstudio.schemas.base import dump_for_prompt
from promptstudio.schemas.project import InterviewState, ProjectData, TranscriptEntry

logger = get_logger("promptstudio.interview")

VOICE_QUESTION = "(voice)"


class InterviewStatus(str, Enum):
    AWAITING_QUESTION = "AWAITING_QUESTION"
    AWAITING_ANSWER = "AWAITING_ANSWER"
    SUBMITTING = "SUBMITTING"
    RESEARCH_IN_PROGRESS = "RESEARCH_IN_PROGRESS"
    COMPLETE = "COMPLETE"
    SUSPENDED = "SUSPENDED"


class VoiceFieldWriter:
    """The only writer allowed to post field updates while voice mode is active."""

    def __init__(self, engine: "InterviewEngine"):
        self._engine = engine
        self.active = True

    def update_field(self, field: str, value: Any) -> Any:
        """
        Apply a field update coming from the voice session.

        Returns:
            The transformed value stored on ProjectData

        Raises:
            InterviewSuspendedError: If this writer has been released
            ValidationError: If the field is unknown or the value is rejected
        """
        if not self.active:
            raise InterviewSuspendedError("Voice writer has been released")
        return self._engine._apply_voice_update(self, field, value)


class InterviewEngine:
    """
    Conversational state machine over the field schedule.

    Validation errors never escape submit(): the engine stays in
    AWAITING_ANSWER with last_error set. A failed question call leaves the
    engine in AWAITING_QUESTION with last_error set until retry().
    """

    def __init__(
        self,
        client: GenerationClient,
        data: Optional[ProjectData] = None,
        runner: Optional[AuxiliaryRunner] = None,
        marketing: Optional[MarketingAnalyzer] = None,
        researcher: Optional[RebuildResearcher] = None,
        on_complete: Optional[Callable[[ProjectData], None]] = None,
        event_bus: Optional[EventBus] = None,
    ):
        """
        Initialize interview engine.

        Args:
            client: Generation client used for question calls
            data: Optional partially filled project data to resume from
            runner: Runner for auxiliary analyses; without it no triggers fire
            marketing: Marketing analyzer triggered once description and audience exist
            researcher: Researcher triggered when the rebuild source is answered
            on_complete: Called once with a snapshot when the interview completes
            event_bus: Optional bus receiving InterviewChangedEvent
        """
        self.client = client
        self.data = data or ProjectData()
        self.runner = runner
        self.marketing = marketing
        self.researcher = researcher
        self.on_complete = on_complete
        self.event_bus = event_bus
        self.prompt_template = load_template("interview_question")

        self.status = InterviewStatus.AWAITING_QUESTION
        self.state: Optional[InterviewState] = None
        self.transcript: list[TranscriptEntry] = []
        self.last_error: Optional[str] = None
        self.in_flight = False

        self._lock = threading.RLock()
        self._completed = False
        self._marketing_started = False
        self._voice_writer: Optional[VoiceFieldWriter] = None

    @property
    def is_complete(self) -> bool:
        return self._completed

    @property
    def voice_active(self) -> bool:
        return self._voice_writer is not None

    def snapshot(self) -> ProjectData:
        """Copy of the accumulator, safe against concurrent analysis results."""
        with self._lock:
            return self.data.snapshot()

    def _set_status(self, status: InterviewStatus) -> None:
        self.status = status
        if self.event_bus is not None:
            progress = interview_progress(self.data)
            self.event_bus.publish(
                EVENT_INTERVIEW_CHANGED,
                InterviewChangedEvent(
                    status=status.value,
                    field=self.state.current_field if self.state else None,
                    answered=progress.answered,
                    total=progress.total,
                ),
            )

    def _ensure_open(self) -> None:
        if self._completed:
            raise InterviewClosedError("The interview is complete")
        if self._voice_writer is not None:
            raise InterviewSuspendedError("Voice mode is active")

    def start(self) -> Optional[InterviewState]:
        """Request the first question. Returns None when nothing is left to ask."""
        with self._lock:
            self._ensure_open()
        return self._request_question()

    def retry(self) -> Optional[InterviewState]:
        """Re-request the question after a failed question call."""
        with self._lock:
            self._ensure_open()
            if self.status != InterviewStatus.AWAITING_QUESTION:
                return self.state
        return self._request_question()

    def _build_prompt(self, snapshot: ProjectData, pending: list[FieldSpec]) -> str:
        pending_lines = "\n".join(f"- {spec.name}: {spec.description}" for spec in pending)
        first = pending[0]
        choice_hint = ", ".join(first.options) if first.kind == FieldKind.CHOICE else "not applicable"
        return self.prompt_template.format(
            pending_fields=pending_lines,
            project_context=dump_for_prompt(snapshot.prompt_context()),
            choice_hint=choice_hint,
        )

    def _request_question(self) -> Optional[InterviewState]:
        with self._lock:
            snapshot = self.data.snapshot()
            pending = pending_fields(snapshot)
            if not pending:
                self.state = None
                should_complete = True
            else:
                should_complete = False
                self.in_flight = True
                self.last_error = None
                self._set_status(InterviewStatus.AWAITING_QUESTION)

        if should_complete:
            self._complete()
            return None

        try:
            proposed: InterviewState = self.client.generate(
                ModelProfile.FAST_STRUCTURED,
                self._build_prompt(snapshot, pending),
                schema=InterviewState,
            )
        except GenerationError as e:
            logger.warning(
                f"Question call failed: {e}",
                context={"error_type": type(e).__name__, "pending": len(pending)},
            )
            with self._lock:
                self.last_error = str(e)
            return None
        finally:
            with self._lock:
                self.in_flight = False

        state = self._reconcile(proposed, pending)
        with self._lock:
            if self._completed or self._voice_writer is not None:
                return None
            self.state = state
            self._set_status(InterviewStatus.AWAITING_ANSWER)
            return state

    def _reconcile(self, proposed: InterviewState, pending: list[FieldSpec]) -> InterviewState:
        """Keep the model's question only if it targets a field that is actually pending."""
        spec = lookup_field(proposed.current_field)
        if proposed.is_complete or spec is None or spec not in pending:
            logger.warning(
                "Model proposed a field that is not pending, asking the schedule's next field",
                context={"proposed": proposed.current_field, "fallback": pending[0].name},
            )
            spec = pending[0]
            return InterviewState(
                current_field=spec.name,
                question=spec.question,
                suggestions=list(spec.options),
            )

        suggestions = list(proposed.suggestions)
        if spec.kind == FieldKind.CHOICE and not suggestions:
            suggestions = list(spec.options)
        return InterviewState(current_field=spec.name, question=proposed.question, suggestions=suggestions)

    def submit(self, answer: str) -> Optional[InterviewState]:
        """
        Submit an answer to the current question.

        Returns:
            The next question, the unchanged current question if the answer was
            rejected, or None once the interview is complete (or the next
            question call failed; see last_error)

        Raises:
            InterviewClosedError: If the interview has completed
            InterviewSuspendedError: If voice mode is active
        """
        with self._lock:
            self._ensure_open()
            if self.status != InterviewStatus.AWAITING_ANSWER or self.state is None:
                raise PromptStudioError("No question is waiting for an answer")

            spec = lookup_field(self.state.current_field)
            self._set_status(InterviewStatus.SUBMITTING)
            try:
                value = spec.transform(answer)
            except ValidationError as e:
                self.last_error = str(e)
                logger.log_interview_turn(spec.name, "rejected", reason=str(e))
                self._set_status(InterviewStatus.AWAITING_ANSWER)
                return self.state

            self._accept(spec, value, self.state.question, str(answer).strip(), self.state.suggestions)

        return self._request_question()

    def accept_suggestion(self, suggestion: str) -> Optional[InterviewState]:
        """Submit a suggestion verbatim."""
        return self.submit(suggestion)

    @staticmethod
    def merge_suggestion(text: str, suggestion: str) -> str:
        """Append a suggestion to free text for further editing."""
        if not text or not text.strip():
            return suggestion
        return f"{text.rstrip().rstrip(',')}, {suggestion}"

    def skip(self) -> Optional[InterviewState]:
        """Explicitly skip the current field. Only optional fields may be skipped."""
        with self._lock:
            self._ensure_open()
            if self.status != InterviewStatus.AWAITING_ANSWER or self.state is None:
                raise PromptStudioError("No question is waiting for an answer")
            spec = lookup_field(self.state.current_field)
            if not spec.optional:
                self.last_error = f"{spec.name} is required and cannot be skipped"
                logger.log_interview_turn(spec.name, "rejected", reason="not optional")
                return self.state
            self.data.skipped_fields.append(spec.name)
            logger.log_interview_turn(spec.name, "skipped")
        return self._request_question()

    def _accept(
        self,
        spec: FieldSpec,
        value: Any,
        question: str,
        answer: str,
        suggestions: list[str],
    ) -> None:
        """Fold an accepted value into the accumulator. Caller holds the lock."""
        setattr(self.data, spec.name, value)
        if spec.name in self.data.skipped_fields:
            self.data.skipped_fields.remove(spec.name)
        self.transcript.append(
            TranscriptEntry(field=spec.name, question=question, answer=answer, suggestions=tuple(suggestions))
        )
        self.last_error = None
        logger.log_interview_turn(spec.name, "accepted")
        self._fire_triggers(spec)

    def _fire_triggers(self, spec: FieldSpec) -> None:
        if self.runner is None:
            return

        if (
            self.marketing is not None
            and not self._marketing_started
            and self.data.is_filled("description")
            and self.data.is_filled("target_audience")
        ):
            self._marketing_started = True
            self.runner.submit(
                "marketing",
                self.marketing.analyze,
                self.data.snapshot(),
                on_success=lambda strategy: self._attach("marketing_strategy", strategy),
            )

        if spec.research and self.researcher is not None:
            self._set_status(InterviewStatus.RESEARCH_IN_PROGRESS)
            self.runner.submit(
                "rebuild_research",
                self.researcher.analyze,
                getattr(self.data, spec.name),
                on_success=lambda analysis: self._attach("rebuild_analysis", analysis),
            )

    def _attach(self, field: str, value: Any) -> None:
        with self._lock:
            setattr(self.data, field, value)
        logger.info(f"Attached {field} to project data", context={"field": field})

    def _complete(self) -> None:
        with self._lock:
            if self._completed:
                return
            self._completed = True
            self._set_status(InterviewStatus.COMPLETE)
            snapshot = self.data.snapshot()
        logger.info(
            "Interview complete",
            context={"answers": len(self.transcript), "skipped": len(snapshot.skipped_fields)},
        )
        if self.on_complete is not None:
            self.on_complete(snapshot)

    def begin_voice(self) -> VoiceFieldWriter:
        """
        Suspend turn-based advancement and hand out the voice writer.

        Raises:
            InterviewClosedError: If the interview has completed
            InterviewSuspendedError: If voice mode is already active or a
                question call is in flight
        """
        with self._lock:
            self._ensure_open()
            if self.in_flight:
                raise InterviewSuspendedError("A question call is in flight")
            self._voice_writer = VoiceFieldWriter(self)
            self._set_status(InterviewStatus.SUSPENDED)
            logger.info("Voice mode started")
            return self._voice_writer

    def end_voice(self) -> Optional[InterviewState]:
        """Release voice mode and resume by asking about whatever is still pending."""
        with self._lock:
            if self._voice_writer is None:
                raise PromptStudioError("Voice mode is not active")
            self._voice_writer.active = False
            self._voice_writer = None
            self.state = None
            logger.info("Voice mode ended")
        return self._request_question()

    def _apply_voice_update(self, writer: VoiceFieldWriter, field: str, value: Any) -> Any:
        with self._lock:
            if writer is not self._voice_writer:
                raise InterviewSuspendedError("Voice writer is not the active writer")
            spec = lookup_field(field)
            if spec is None:
                raise ValidationError(f"Unknown field '{field}'", field=field)
            transformed = spec.transform(value)
            self._accept(spec, transformed, VOICE_QUESTION, str(value).strip(), [])
            self._set_status(InterviewStatus.SUSPENDED)
            return transformed
