"""Shared data contracts."""

from promptstudio.schemas.analysis import (
    ArchitectAnswer,
    Estimation,
    GroundingSource,
    MarketingStrategy,
    RebuildAnalysis,
    RefinementSuggestion,
)
from promptstudio.schemas.architecture import TechnicalArchitecture
from promptstudio.schemas.pipeline import PipelineResult, PipelineStage, SavedProject
from promptstudio.schemas.project import COMPLETE_SENTINEL, InterviewState, ProjectData, TranscriptEntry
from promptstudio.schemas.system_model import SystemModel
from promptstudio.schemas.workspace import WorkspaceBundle, WorkspaceFile

__all__ = [
    "ArchitectAnswer",
    "COMPLETE_SENTINEL",
    "Estimation",
    "GroundingSource",
    "InterviewState",
    "MarketingStrategy",
    "PipelineResult",
    "PipelineStage",
    "ProjectData",
    "RebuildAnalysis",
    "RefinementSuggestion",
    "SavedProject",
    "SystemModel",
    "TechnicalArchitecture",
    "TranscriptEntry",
    "WorkspaceBundle",
    "WorkspaceFile",
]
