"""Schemas for the auxiliary analyses."""

from typing import Literal, Optional

from pydantic import Field, field_validator

from promptstudio.schemas.base import FrozenStudioModel, normalize_string_list


class GroundingSource(FrozenStudioModel):
    """A web source cited by a search-grounded answer."""

    title: str = Field(default="", description="Page title")
    uri: str = Field(description="Source URL")


class EstimationPhase(FrozenStudioModel):
    """Effort for one delivery phase."""

    phase: str = Field(description="Phase name, e.g. 'Backend API'")
    hours: float = Field(ge=0, description="Estimated hours")
    cost: float = Field(ge=0, description="Estimated cost in the estimation currency")
    description: str = Field(default="", description="What the phase covers")


class Estimation(FrozenStudioModel):
    """Cost and effort estimate. Every numeric field is required."""

    total_hours: float = Field(ge=0, description="Total estimated hours")
    total_cost: float = Field(ge=0, description="Total estimated cost")
    currency: str = Field(min_length=1, description="ISO currency code, e.g. EUR")
    hourly_rate: float = Field(ge=0, description="Hourly rate the cost is based on")
    complexity_score: int = Field(ge=1, le=10, description="Overall complexity from 1 to 10")
    breakdown: list[EstimationPhase] = Field(min_length=1, description="Per-phase breakdown")
    risks: list[str] = Field(default_factory=list, description="Risks that could move the estimate")
    recommendations: list[str] = Field(default_factory=list, description="Ways to reduce cost or risk")

    @field_validator("risks", "recommendations", mode="before")
    @classmethod
    def normalize_lists(cls, v) -> list[str]:
        return normalize_string_list(v)


class Swot(FrozenStudioModel):
    """SWOT matrix."""

    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    threats: list[str] = Field(default_factory=list)

    @field_validator("strengths", "weaknesses", "opportunities", "threats", mode="before")
    @classmethod
    def normalize_lists(cls, v) -> list[str]:
        return normalize_string_list(v)


class MarketingStrategy(FrozenStudioModel):
    """Go-to-market strategy with a SWOT analysis."""

    positioning: str = Field(description="One-paragraph market positioning statement")
    unique_selling_points: list[str] = Field(default_factory=list, description="USPs")
    swot: Swot = Field(description="SWOT analysis")
    channels: list[str] = Field(default_factory=list, description="Acquisition channels")
    pricing_model: str = Field(default="", description="Suggested pricing model")
    launch_plan: list[str] = Field(default_factory=list, description="Ordered launch steps")

    @field_validator("unique_selling_points", "channels", "launch_plan", mode="before")
    @classmethod
    def normalize_lists(cls, v) -> list[str]:
        return normalize_string_list(v)


class RebuildAnalysis(FrozenStudioModel):
    """Research result for an existing product the user wants to rebuild."""

    features: list[str] = Field(default_factory=list, description="Features of the existing product")
    weaknesses: list[str] = Field(default_factory=list, description="Known weaknesses and complaints")
    optimizations: list[str] = Field(default_factory=list, description="Improvements for the rebuild")
    monetization: Optional[str] = Field(default=None, description="How the existing product makes money")
    sources: list[GroundingSource] = Field(default_factory=list, description="Web sources used")

    @field_validator("features", "weaknesses", "optimizations", mode="before")
    @classmethod
    def normalize_lists(cls, v) -> list[str]:
        return normalize_string_list(v)


class RefinementSuggestion(FrozenStudioModel):
    """A suggested modification for a selected artifact."""

    type: Literal["modification", "refactor", "performance", "readability"]
    title: str
    description: str
    code_snippet: Optional[str] = None


class ArchitectAnswer(FrozenStudioModel):
    """Answer from the search-grounded architect chat."""

    text: str
    sources: list[GroundingSource] = Field(default_factory=list)
