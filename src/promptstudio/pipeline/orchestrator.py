"""Pipeline orchestrator: runs the three stages strictly in order."""

import threading
import time
from typing import Any, Callable, Optional

from promptstudio.core.errors import (
    IncompleteProjectError,
    PipelineBusyError,
    PipelineError,
    PromptStudioError,
)
from promptstudio.core.events import (
    EVENT_PIPELINE_COMPLETED,
    EVENT_PIPELINE_FAILED,
    EVENT_STAGE_CHANGED,
    EventBus,
    PipelineCompletedEvent,
    PipelineFailedEvent,
    StageChangedEvent,
)
from promptstudio.core.generation import GenerationClient
from promptstudio.core.logging import StructuredLogger, get_logger
from promptstudio.interview.fields import missing_required_fields
from promptstudio.pipeline.stages import (
    STAGES_BY_STATE,
    ArchitectureSynthesizer,
    SystemModelExtractor,
    WorkspaceCompiler,
)
from promptstudio.schemas.pipeline import PipelineResult, PipelineStage, SavedProject
from promptstudio.schemas.project import ProjectData
from promptstudio.storage.history import ProjectHistory

STAGE_PROGRESS = {
    PipelineStage.IDLE: 0.0,
    PipelineStage.STAGE1_RUNNING: 0.0,
    PipelineStage.STAGE2_RUNNING: 1 / 3,
    PipelineStage.STAGE3_RUNNING: 2 / 3,
    PipelineStage.COMPLETED: 1.0,
}


class PipelineOrchestrator:
    """
    Owns the single "current run" register.

    Only the orchestrator advances the stage. Stage outputs are immutable; each
    completed stage replaces ``result`` with a new PipelineResult.
    """

    def __init__(
        self,
        client: GenerationClient,
        history: Optional[ProjectHistory] = None,
        event_bus: Optional[EventBus] = None,
        system_model_extractor: Optional[SystemModelExtractor] = None,
        architecture_synthesizer: Optional[ArchitectureSynthesizer] = None,
        workspace_compiler: Optional[WorkspaceCompiler] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            client: Generation client shared by the default stages
            history: Repository that receives one SavedProject per successful run
            event_bus: Optional bus for stage change events
            system_model_extractor: Stage 1 override
            architecture_synthesizer: Stage 2 override
            workspace_compiler: Stage 3 override
        """
        self.history = history
        self.event_bus = event_bus
        self.system_model_extractor = system_model_extractor or SystemModelExtractor(client)
        self.architecture_synthesizer = architecture_synthesizer or ArchitectureSynthesizer(client)
        self.workspace_compiler = workspace_compiler or WorkspaceCompiler(client)

        self.stage = PipelineStage.IDLE
        self.result = PipelineResult()
        self.project: Optional[ProjectData] = None
        self.error: Optional[str] = None
        self.saved: Optional[SavedProject] = None

        self._lock = threading.Lock()
        self.logger: StructuredLogger = get_logger("promptstudio.pipeline")

    @property
    def is_busy(self) -> bool:
        return self.stage.is_running

    def _transition(self, stage: PipelineStage) -> None:
        """Move to a new stage. Caller holds the lock."""
        previous = self.stage
        self.stage = stage
        if self.event_bus is not None:
            progress = STAGE_PROGRESS.get(stage, STAGE_PROGRESS.get(previous, 0.0))
            self.event_bus.publish(
                EVENT_STAGE_CHANGED,
                StageChangedEvent(stage=stage.value, previous=previous.value, progress=progress),
            )

    def _run_stage(self, stage: PipelineStage, call: Callable[[], Any]) -> Any:
        key = STAGES_BY_STATE[stage].key
        start_time = time.time()
        self.logger.log_pipeline_stage(key, "started")
        try:
            output = call()
        except Exception as e:
            self.logger.log_pipeline_stage(
                key,
                "failed",
                duration_ms=(time.time() - start_time) * 1000,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
        self.logger.log_pipeline_stage(key, "completed", duration_ms=(time.time() - start_time) * 1000)
        return output

    def _advance(self, next_stage: PipelineStage, **outputs: Any) -> None:
        with self._lock:
            self.result = self.result.model_copy(update=outputs)
            self._transition(next_stage)

    def run(self, project: ProjectData, raise_on_failure: bool = False) -> PipelineResult:
        """
        Run stage 1, 2 and 3 in order on a snapshot of the project.

        Args:
            project: Completed project data
            raise_on_failure: Raise PipelineError instead of returning the partial result

        Returns:
            The final PipelineResult (partial when a stage failed)

        Raises:
            IncompleteProjectError: If required schedule fields are neither filled nor skipped
            PipelineBusyError: If a run is already in flight
            PipelineError: If a stage failed and raise_on_failure is True
        """
        missing = missing_required_fields(project)
        if missing:
            raise IncompleteProjectError(missing)

        with self._lock:
            if self.stage.is_running:
                raise PipelineBusyError("A pipeline run is already in progress")
            snapshot = project.snapshot()
            self.project = snapshot
            self.result = PipelineResult()
            self.error = None
            self.saved = None
            self._transition(PipelineStage.STAGE1_RUNNING)

        try:
            system_model = self._run_stage(
                PipelineStage.STAGE1_RUNNING,
                lambda: self.system_model_extractor.derive_system_model(snapshot.snapshot()),
            )
            self._advance(PipelineStage.STAGE2_RUNNING, stage1=system_model)

            architecture = self._run_stage(
                PipelineStage.STAGE2_RUNNING,
                lambda: self.architecture_synthesizer.derive_architecture(system_model, snapshot.snapshot()),
            )
            self._advance(PipelineStage.STAGE3_RUNNING, stage2=architecture)

            workspace = self._run_stage(
                PipelineStage.STAGE3_RUNNING,
                lambda: self.workspace_compiler.derive_workspace(snapshot.snapshot(), system_model, architecture),
            )
            self._advance(PipelineStage.COMPLETED, stage3=workspace)
        except Exception as e:
            failed_stage = self._fail(e)
            if not isinstance(e, PromptStudioError):
                raise
            if raise_on_failure:
                raise PipelineError(str(e), stage=failed_stage.value, partial_result=self.result) from e
            return self.result

        self._persist(snapshot)
        return self.result

    def _fail(self, error: Exception) -> PipelineStage:
        with self._lock:
            failed_stage = self.stage
            self.error = str(error)
            self._transition(PipelineStage.FAILED)
        if self.event_bus is not None:
            self.event_bus.publish(
                EVENT_PIPELINE_FAILED,
                PipelineFailedEvent(stage=failed_stage.value, message=self.error),
            )
        return failed_stage

    def _persist(self, snapshot: ProjectData) -> None:
        saved = SavedProject(data=snapshot, result=self.result)
        self.saved = saved
        if self.history is not None:
            try:
                self.history.add(saved)
            except OSError as e:
                self.logger.error(
                    f"Could not persist completed run: {e}",
                    context={"project_id": saved.id},
                    exc_info=True,
                )
        if self.event_bus is not None:
            self.event_bus.publish(
                EVENT_PIPELINE_COMPLETED,
                PipelineCompletedEvent(project_id=saved.id, title=snapshot.title or ""),
            )

    def reset(self) -> None:
        """Discard the current run and return to IDLE. Nothing is persisted."""
        with self._lock:
            if self.stage.is_running:
                raise PipelineBusyError("Cannot reset while a run is in progress")
            self.result = PipelineResult()
            self.project = None
            self.error = None
            self.saved = None
            self._transition(PipelineStage.IDLE)

    def view_saved(self, saved: SavedProject) -> PipelineResult:
        """Load a stored run into the display register without any generation call."""
        with self._lock:
            if self.stage.is_running:
                raise PipelineBusyError("Cannot load a saved project while a run is in progress")
            self.project = saved.data.snapshot()
            self.result = saved.result.model_copy(deep=True)
            self.error = None
            self.saved = saved
            self._transition(PipelineStage.COMPLETED)
            return self.result
