"""Feature brainstorming."""

from promptstudio.core.generation import GenerationClient
from promptstudio.core.llm_base import ModelProfile
from promptstudio.prompts import load_template
from promptstudio.schemas.base import dump_for_prompt
from promptstudio.schemas.project import ProjectData


class FeatureBrainstormer:
    """Suggests additional features. Suggestions are never persisted."""

    def __init__(self, client: GenerationClient, count: int = 5):
        self.client = client
        self.count = count
        self.prompt_template = load_template("brainstorm")

    def analyze(self, project: ProjectData) -> list[str]:
        """
        Brainstorm features for a project.

        Returns:
            Trimmed suggestions, deduplicated case-insensitively and without
            features the project already lists
        """
        prompt = self.prompt_template.format(
            project_context=dump_for_prompt(project.prompt_context()),
            count=self.count,
        )
        raw: list[str] = self.client.generate(ModelProfile.FAST_STRUCTURED, prompt, schema=list[str])

        seen = {feature.strip().casefold() for feature in project.key_features}
        suggestions = []
        for item in raw:
            text = item.strip()
            key = text.casefold()
            if not text or key in seen:
                continue
            seen.add(key)
            suggestions.append(text)
        return suggestions
