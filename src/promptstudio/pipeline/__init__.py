"""Three-stage generation pipeline."""

from promptstudio.pipeline.orchestrator import PipelineOrchestrator
from promptstudio.pipeline.stages import (
    STAGE_TABLE,
    ArchitectureSynthesizer,
    StageInfo,
    SystemModelExtractor,
    WorkspaceCompiler,
)

__all__ = [
    "ArchitectureSynthesizer",
    "PipelineOrchestrator",
    "STAGE_TABLE",
    "StageInfo",
    "SystemModelExtractor",
    "WorkspaceCompiler",
]
