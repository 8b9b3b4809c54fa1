"""Schemas for the project description collected by the interview."""

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from promptstudio.schemas.analysis import Estimation, MarketingStrategy, RebuildAnalysis
from promptstudio.schemas.base import FrozenStudioModel, StudioModel, normalize_string_list


class ProjectScope(str, Enum):
    PROTOTYPE = "Prototyp"
    MVP = "MVP"
    FULL_SCALE = "Full-Scale App"
    ENTERPRISE = "Enterprise System"


class Complexity(str, Enum):
    SIMPLE = "Einfach (CRUD)"
    MEDIUM = "Mittelschwer (Interaktiv)"
    HIGH = "Hoch (Komplex/KI/Echtzeit)"


class Ide(str, Enum):
    CURSOR = "Cursor"
    WINDSURF = "Windsurf"
    VSCODE_COPILOT = "VS Code + Copilot"
    VSCODE_CLINE = "VS Code + Cline/Pear"
    OTHER = "Andere"


class PreferredModel(str, Enum):
    CLAUDE = "Claude 3.5 Sonnet"
    GPT = "GPT-4o"
    GEMINI = "Gemini 3 Pro"
    OTHER = "Andere"


class GithubRepo(str, Enum):
    EXISTING = "Bestehend"
    CREATE = "Neu erstellen"
    NOT_NEEDED = "Nicht benötigt"


class Hosting(str, Enum):
    VERCEL = "Vercel"
    RENDER = "Render"
    GOOGLE_CLOUD = "Google Cloud"
    AWS = "AWS"
    HETZNER = "Hetzner"
    OTHER = "Andere"


class TestStrategy(str, Enum):
    __test__ = False  # not a pytest test class

    TDD = "TDD"
    INTEGRATION = "Integration-Focus"
    MINIMAL = "Minimal"
    NONE = "Keine"


class SecurityLevel(str, Enum):
    STANDARD = "Standard"
    HIGH = "High (Fintech/Medical)"
    PROTOTYPE = "Prototyp"


class EcosystemPreference(str, Enum):
    GOOGLE = "Google Cloud / Firebase"
    MICROSOFT = "Microsoft / Azure / OpenAI"
    AWS = "AWS / Anthropic"
    VERCEL = "Vercel / Next.js Stack"
    OPEN = "Offen (Best-of-Breed)"


class ProjectData(StudioModel):
    """
    Accumulated interview answers describing a project.

    Built one field at a time by the interview engine. The pipeline only ever
    sees snapshots, never the live accumulator.
    """

    title: Optional[str] = Field(default=None, description="Project title")
    description: Optional[str] = Field(default=None, description="What the software does")
    is_rebuild: Optional[bool] = Field(default=None, description="Whether this rebuilds an existing product")
    rebuild_source: Optional[str] = Field(default=None, description="Name or URL of the product being rebuilt")
    target_audience: Optional[str] = Field(default=None, description="Who the software is for")
    key_features: list[str] = Field(default_factory=list, description="Main features")
    auth_methods: list[str] = Field(default_factory=list, description="Login methods, e.g. email, Google")
    requires_payments: Optional[bool] = Field(default=None, description="Whether payments are processed")
    project_scope: Optional[ProjectScope] = None
    complexity: Optional[Complexity] = None
    ide: Optional[Ide] = None
    preferred_model: Optional[PreferredModel] = None
    github_repo: Optional[GithubRepo] = None
    hosting_deployment: Optional[Hosting] = None
    test_strategy: Optional[TestStrategy] = None
    security_level: Optional[SecurityLevel] = None
    ecosystem_preference: Optional[EcosystemPreference] = None

    marketing_strategy: Optional[MarketingStrategy] = None
    estimation: Optional[Estimation] = None
    rebuild_analysis: Optional[RebuildAnalysis] = None

    skipped_fields: list[str] = Field(default_factory=list, description="Fields the user chose to skip")

    @field_validator("key_features", "auth_methods", mode="before")
    @classmethod
    def normalize_lists(cls, v) -> list[str]:
        return normalize_string_list(v)

    def is_filled(self, field: str) -> bool:
        """Whether a field holds a usable value (empty lists and blank strings do not count)."""
        value = getattr(self, field)
        if value is None:
            return False
        if isinstance(value, (list, str)):
            return len(value) > 0
        return True

    def snapshot(self) -> "ProjectData":
        """Deep copy handed to every pipeline stage and analyzer call."""
        return self.model_copy(deep=True)

    def prompt_context(self) -> dict:
        """Interview answers only, without attached analysis results."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            exclude={"marketing_strategy", "estimation", "rebuild_analysis", "skipped_fields"},
        )


class InterviewState(FrozenStudioModel):
    """What to ask next. current_field == COMPLETE_SENTINEL means the interview is done."""

    current_field: str = Field(description="Field the question is about, or COMPLETE")
    question: str = Field(description="Question to show the user")
    suggestions: list[str] = Field(default_factory=list, description="Optional answer suggestions")

    @field_validator("suggestions", mode="before")
    @classmethod
    def normalize_suggestions(cls, v) -> list[str]:
        return normalize_string_list(v)

    @property
    def is_complete(self) -> bool:
        return self.current_field == COMPLETE_SENTINEL


COMPLETE_SENTINEL = "COMPLETE"


class TranscriptEntry(FrozenStudioModel):
    """One accepted interview turn."""

    field: str
    question: str
    answer: str
    suggestions: tuple[str, ...] = ()
