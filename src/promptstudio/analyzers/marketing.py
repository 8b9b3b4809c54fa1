"""Marketing strategy and SWOT analysis."""

from promptstudio.core.generation import GenerationClient
from promptstudio.core.llm_base import ModelProfile
from promptstudio.prompts import load_template
from promptstudio.schemas.analysis import MarketingStrategy
from promptstudio.schemas.base import dump_for_prompt
from promptstudio.schemas.project import ProjectData


class MarketingAnalyzer:
    """Drafts a go-to-market strategy. Triggered by the interview once description and audience exist."""

    def __init__(self, client: GenerationClient):
        self.client = client
        self.prompt_template = load_template("marketing")

    def analyze(self, project: ProjectData) -> MarketingStrategy:
        prompt = self.prompt_template.format(project_context=dump_for_prompt(project.prompt_context()))
        return self.client.generate(ModelProfile.FAST_STRUCTURED, prompt, schema=MarketingStrategy)
