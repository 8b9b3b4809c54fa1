"""Event bus and event payloads for decoupled progress reporting."""

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Optional

from promptstudio.core.logging import get_logger

logger = get_logger("promptstudio.events")

# Event type constants
EVENT_STAGE_CHANGED = "stage_changed"
EVENT_PIPELINE_COMPLETED = "pipeline_completed"
EVENT_PIPELINE_FAILED = "pipeline_failed"
EVENT_INTERVIEW_CHANGED = "interview_changed"
EVENT_ANALYSIS_FINISHED = "analysis_finished"
EVENT_VIEW_CHANGED = "view_changed"


@dataclass
class StageChangedEvent:
    """Emitted when the pipeline moves to a new stage."""
    stage: str
    previous: str
    progress: float  # 0.0 to 1.0


@dataclass
class PipelineCompletedEvent:
    """Emitted once per successful run."""
    project_id: str
    title: str


@dataclass
class PipelineFailedEvent:
    """Emitted when a mandatory stage fails."""
    stage: str
    message: str


@dataclass
class InterviewChangedEvent:
    """Emitted when the interview engine changes status."""
    status: str
    field: Optional[str] = None
    answered: int = 0
    total: int = 0


@dataclass
class AnalysisFinishedEvent:
    """Emitted when an auxiliary analysis finishes, successfully or not."""
    name: str
    success: bool
    error: Optional[str] = None


@dataclass
class ViewChangedEvent:
    """Emitted when the active view changes."""
    view: str


class EventBus:
    """Pub/Sub event bus for decoupled communication."""

    def __init__(self, max_log_size: int = 1000):
        self._subscribers: dict[str, list[Callable[[Any], None]]] = defaultdict(list)
        self._event_log: list[tuple[str, Any]] = []
        self._max_log_size = max_log_size

    def subscribe(self, event_type: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """
        Subscribe to an event type.

        Args:
            event_type: Event type constant (e.g., EVENT_STAGE_CHANGED)
            callback: Callback function that receives event payload

        Returns:
            Unsubscribe function
        """
        self._subscribers[event_type].append(callback)

        def unsubscribe():
            if callback in self._subscribers[event_type]:
                self._subscribers[event_type].remove(callback)

        return unsubscribe

    def publish(self, event_type: str, payload: Any) -> None:
        """
        Publish an event to all subscribers.

        A failing subscriber is logged and skipped; the remaining subscribers still run.
        """
        self._event_log.append((event_type, payload))
        if len(self._event_log) > self._max_log_size:
            self._event_log.pop(0)

        for callback in list(self._subscribers.get(event_type, [])):
            try:
                callback(payload)
            except Exception as e:
                logger.error(
                    f"Error in subscriber callback for {event_type}: {e}",
                    context={"event": event_type},
                    exc_info=True,
                )

    def get_event_log(self, event_type: Optional[str] = None) -> list[tuple[str, Any]]:
        """Get the event log, optionally filtered by event type."""
        if event_type:
            return [(et, payload) for et, payload in self._event_log if et == event_type]
        return list(self._event_log)
