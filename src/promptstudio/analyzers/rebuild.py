"""Research of an existing product that the new project rebuilds."""

from promptstudio.core.errors import EmptyResultError, ValidationError
from promptstudio.core.generation import GenerationClient
from promptstudio.core.llm_base import ModelProfile
from promptstudio.core.logging import get_logger
from promptstudio.prompts import load_template
from promptstudio.schemas.analysis import GroundingSource, RebuildAnalysis

logger = get_logger("promptstudio.analyzers.rebuild")


class RebuildResearcher:
    """
    Two-step analysis of an existing product.

    A search-grounded call collects free-text research, then a structuring
    call turns the notes into a RebuildAnalysis. Sources from the grounding
    metadata are merged into the result.
    """

    def __init__(self, client: GenerationClient):
        self.client = client
        self.research_template = load_template("rebuild_research")
        self.structure_template = load_template("rebuild_structure")

    def analyze(self, source: str) -> RebuildAnalysis:
        """
        Research a product by name or URL.

        Args:
            source: Product name, description or URL

        Returns:
            RebuildAnalysis with grounding sources attached

        Raises:
            ValidationError: If source is blank
            EmptyResultError: If the research call returns no text
            ParseError: If the structuring call returns malformed output
        """
        if not source or not source.strip():
            raise ValidationError("Rebuild source must not be empty", field="rebuild_source")

        research = self.client.generate(
            ModelProfile.SEARCH_GROUNDED,
            self.research_template.format(source=source.strip()),
            search=True,
        )
        if not research.text:
            raise EmptyResultError(
                "Search-grounded research returned no text",
                profile=ModelProfile.SEARCH_GROUNDED.value,
            )

        analysis: RebuildAnalysis = self.client.generate(
            ModelProfile.FAST_STRUCTURED,
            self.structure_template.format(research=research.text),
            schema=RebuildAnalysis,
        )

        sources: list[GroundingSource] = []
        seen: set[str] = set()
        grounded = [GroundingSource(title=s.title, uri=s.uri) for s in research.grounding_sources]
        for item in list(analysis.sources) + grounded:
            if item.uri in seen:
                continue
            seen.add(item.uri)
            sources.append(item)

        logger.info(
            f"Rebuild research finished for {source.strip()}",
            context={"features": len(analysis.features), "sources": len(sources)},
        )
        return analysis.model_copy(update={"sources": sources})
