"""The three mandatory pipeline stages."""

from dataclasses import dataclass
from typing import Optional

from promptstudio.core.generation import GenerationClient
from promptstudio.core.llm_base import ModelProfile
from promptstudio.prompts import load_template
from promptstudio.schemas.architecture import TechnicalArchitecture
from promptstudio.schemas.base import dump_for_prompt
from promptstudio.schemas.pipeline import PipelineStage
from promptstudio.schemas.project import ProjectData
from promptstudio.schemas.system_model import SystemModel
from promptstudio.schemas.workspace import WorkspaceBundle


@dataclass(frozen=True)
class StageInfo:
    """Display metadata for one running stage."""

    stage: PipelineStage
    key: str
    title: str
    subtasks: tuple[str, ...]


STAGE_TABLE: tuple[StageInfo, ...] = (
    StageInfo(
        PipelineStage.STAGE1_RUNNING,
        "system_model",
        "Logic",
        ("Requirements analysis", "Entity extraction", "Relationship mapping"),
    ),
    StageInfo(
        PipelineStage.STAGE2_RUNNING,
        "architecture",
        "Architecture",
        ("Stack orchestration", "API blueprint", "Filesystem template"),
    ),
    StageInfo(
        PipelineStage.STAGE3_RUNNING,
        "workspace",
        "Synthesis",
        ("Context compilation", "Syntactic optimization", "Markdown rendering"),
    ),
)

STAGES_BY_STATE: dict[PipelineStage, StageInfo] = {info.stage: info for info in STAGE_TABLE}


class SystemModelExtractor:
    """Stage 1: turns the project description into a logical system model."""

    def __init__(self, client: GenerationClient):
        """
        Initialize system model extractor.

        Args:
            client: Generation client for API calls
        """
        self.client = client
        self.prompt_template = load_template("system_model")

    def derive_system_model(self, project: ProjectData) -> SystemModel:
        """
        Derive the system model.

        Args:
            project: Snapshot of the completed project data

        Returns:
            Validated SystemModel

        Raises:
            GenerationError: If the call fails or the output does not match
        """
        prompt = self.prompt_template.format(project_context=dump_for_prompt(project.prompt_context()))
        return self.client.generate(ModelProfile.FAST_STRUCTURED, prompt, schema=SystemModel)


class ArchitectureSynthesizer:
    """Stage 2: designs the technical architecture from the system model and the preferences."""

    def __init__(self, client: GenerationClient):
        self.client = client
        self.prompt_template = load_template("architecture")

    def derive_architecture(self, system_model: SystemModel, project: ProjectData) -> TechnicalArchitecture:
        """
        Derive the technical architecture.

        The project data is passed alongside the system model so that late-bound
        preferences such as the ecosystem choice stay visible.
        """
        prompt = self.prompt_template.format(
            system_model=dump_for_prompt(system_model),
            project_context=dump_for_prompt(project.prompt_context()),
        )
        return self.client.generate(ModelProfile.FAST_STRUCTURED, prompt, schema=TechnicalArchitecture)


class WorkspaceCompiler:
    """Stage 3: compiles everything into the master prompt and workspace files."""

    def __init__(self, client: GenerationClient, reasoning_budget: Optional[int] = None):
        self.client = client
        self.reasoning_budget = (
            reasoning_budget if reasoning_budget is not None else client.config.reasoning_budget
        )
        self.prompt_template = load_template("workspace")

    def derive_workspace(
        self,
        project: ProjectData,
        system_model: SystemModel,
        architecture: TechnicalArchitecture,
    ) -> WorkspaceBundle:
        """Compile the workspace bundle with the deep reasoning profile."""
        prompt = self.prompt_template.format(
            ide=project.ide.value if project.ide else "any",
            project_context=dump_for_prompt(project.prompt_context()),
            system_model=dump_for_prompt(system_model),
            architecture=dump_for_prompt(architecture),
        )
        return self.client.generate(
            ModelProfile.DEEP_REASONING,
            prompt,
            schema=WorkspaceBundle,
            reasoning_budget=self.reasoning_budget,
        )
