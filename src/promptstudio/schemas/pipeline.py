"""Schemas for pipeline state, results and saved runs."""

import time
import uuid
from enum import Enum
from typing import Optional

from pydantic import Field

from promptstudio.schemas.architecture import TechnicalArchitecture
from promptstudio.schemas.base import StudioModel
from promptstudio.schemas.project import ProjectData
from promptstudio.schemas.system_model import SystemModel
from promptstudio.schemas.workspace import WorkspaceBundle


class PipelineStage(str, Enum):
    IDLE = "IDLE"
    STAGE1_RUNNING = "STAGE1_RUNNING"
    STAGE2_RUNNING = "STAGE2_RUNNING"
    STAGE3_RUNNING = "STAGE3_RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_running(self) -> bool:
        return self in (
            PipelineStage.STAGE1_RUNNING,
            PipelineStage.STAGE2_RUNNING,
            PipelineStage.STAGE3_RUNNING,
        )


class PipelineResult(StudioModel):
    """Progressively filled container of stage outputs."""

    stage1: Optional[SystemModel] = None
    stage2: Optional[TechnicalArchitecture] = None
    stage3: Optional[WorkspaceBundle] = None

    @property
    def is_complete(self) -> bool:
        return self.stage1 is not None and self.stage2 is not None and self.stage3 is not None


def _now_ms() -> int:
    return int(time.time() * 1000)


class SavedProject(StudioModel):
    """A completed run as stored in the project history."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: int = Field(default_factory=_now_ms, description="Milliseconds since the epoch")
    data: ProjectData
    result: PipelineResult
