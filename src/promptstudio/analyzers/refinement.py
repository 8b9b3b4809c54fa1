"""Refinement suggestions for a selected artifact."""

from promptstudio.core.errors import ValidationError
from promptstudio.core.generation import GenerationClient
from promptstudio.core.llm_base import ModelProfile
from promptstudio.prompts import load_template
from promptstudio.schemas.analysis import RefinementSuggestion
from promptstudio.schemas.base import dump_for_prompt
from promptstudio.schemas.project import ProjectData


class ComponentRefiner:
    """Suggests modifications for a file, an API endpoint or a tech choice."""

    def __init__(self, client: GenerationClient):
        self.client = client
        self.prompt_template = load_template("refinement")

    def analyze(self, target_label: str, project: ProjectData) -> list[RefinementSuggestion]:
        """
        Get refinement suggestions for one artifact.

        Args:
            target_label: Artifact label, e.g. "File: README.md" or "GET /api/tasks"
            project: Project the artifact belongs to

        Raises:
            ValidationError: If target_label is blank
        """
        if not target_label or not target_label.strip():
            raise ValidationError("Refinement target must not be empty")
        prompt = self.prompt_template.format(
            target=target_label.strip(),
            project_context=dump_for_prompt(project.prompt_context()),
        )
        return self.client.generate(
            ModelProfile.FAST_STRUCTURED,
            prompt,
            schema=list[RefinementSuggestion],
        )
