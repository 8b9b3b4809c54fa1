"""Architect chat: search-grounded answers to free-form questions."""

from typing import Optional

from promptstudio.core.errors import EmptyResultError, ValidationError
from promptstudio.core.generation import GenerationClient
from promptstudio.core.llm_base import ModelProfile
from promptstudio.prompts import load_template
from promptstudio.schemas.analysis import ArchitectAnswer, GroundingSource
from promptstudio.schemas.base import dump_for_prompt
from promptstudio.schemas.pipeline import PipelineResult


class ArchitectAdvisor:
    """Answers architecture questions with deep reasoning and web search."""

    def __init__(self, client: GenerationClient, reasoning_budget: Optional[int] = None):
        self.client = client
        self.reasoning_budget = (
            reasoning_budget if reasoning_budget is not None else client.config.reasoning_budget
        )
        self.prompt_template = load_template("architect")

    def ask(self, question: str, result: Optional[PipelineResult] = None) -> ArchitectAnswer:
        """
        Ask the architect a question, optionally about a generated architecture.

        Raises:
            ValidationError: If the question is blank
            EmptyResultError: If the answer has no text
        """
        if not question or not question.strip():
            raise ValidationError("Question must not be empty")

        context = ""
        if result is not None and result.stage2 is not None:
            context = f"\nCURRENT ARCHITECTURE (JSON):\n{dump_for_prompt(result.stage2)}\n"

        response = self.client.generate(
            ModelProfile.DEEP_REASONING,
            self.prompt_template.format(context=context, question=question.strip()),
            search=True,
            reasoning_budget=self.reasoning_budget,
        )
        if not response.text:
            raise EmptyResultError(
                "Architect returned no answer",
                profile=ModelProfile.DEEP_REASONING.value,
            )
        return ArchitectAnswer(
            text=response.text,
            sources=[GroundingSource(title=s.title, uri=s.uri) for s in response.grounding_sources],
        )
