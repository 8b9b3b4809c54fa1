"""Cost and effort estimation."""

from promptstudio.core.generation import GenerationClient
from promptstudio.core.llm_base import ModelProfile
from promptstudio.prompts import load_template
from promptstudio.schemas.analysis import Estimation
from promptstudio.schemas.base import dump_for_prompt
from promptstudio.schemas.project import ProjectData


class EstimationAnalyzer:
    """Estimates delivery effort and cost for a project."""

    def __init__(self, client: GenerationClient):
        """
        Initialize estimation analyzer.

        Args:
            client: Generation client for API calls
        """
        self.client = client
        self.prompt_template = load_template("estimation")

    def analyze(self, project: ProjectData) -> Estimation:
        """
        Estimate the project.

        Returns:
            A complete Estimation; partially filled numbers never get through

        Raises:
            ParseError: If the response does not match the Estimation shape
        """
        prompt = self.prompt_template.format(project_context=dump_for_prompt(project.prompt_context()))
        return self.client.generate(ModelProfile.FAST_STRUCTURED, prompt, schema=Estimation)
