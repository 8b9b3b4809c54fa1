"""Schema for the stage 2 output: the technical architecture."""

from pydantic import Field, field_validator

from promptstudio.schemas.base import FrozenStudioModel, normalize_string_list


class TechOption(FrozenStudioModel):
    """A technology choice with its justification."""

    name: str
    justification: str = ""


class ApiParameter(FrozenStudioModel):
    name: str
    type: str = "string"
    required: bool = False
    description: str = ""


class ApiEndpoint(FrozenStudioModel):
    """A single HTTP endpoint."""

    method: str
    path: str
    description: str = ""
    parameters: list[ApiParameter] = Field(default_factory=list)
    response: str = ""

    @field_validator("method", mode="after")
    @classmethod
    def upper_method(cls, v: str) -> str:
        return v.strip().upper()


def _normalize_tech_options(v) -> list:
    """Accept a bare string, a list of strings, or a list of option dicts."""
    if v is None:
        return []
    if isinstance(v, (str, dict)):
        v = [v]
    options = []
    for item in v:
        if isinstance(item, str):
            options.append({"name": item, "justification": ""})
        else:
            options.append(item)
    return options


class TechStack(FrozenStudioModel):
    frontend: list[TechOption] = Field(default_factory=list)
    backend: list[TechOption] = Field(default_factory=list)
    database: list[TechOption] = Field(default_factory=list)
    additional: list[str] = Field(default_factory=list)

    @field_validator("frontend", "backend", "database", mode="before")
    @classmethod
    def normalize_options(cls, v) -> list:
        return _normalize_tech_options(v)

    @field_validator("additional", mode="before")
    @classmethod
    def normalize_additional(cls, v) -> list[str]:
        return normalize_string_list(v)

    def names(self) -> list[str]:
        """Names of all frontend, backend and database choices."""
        return [option.name for option in (*self.frontend, *self.backend, *self.database)]


class Guardrails(FrozenStudioModel):
    """Non-functional rules the coding agent must respect."""

    security: list[str] = Field(default_factory=list)
    performance: list[str] = Field(default_factory=list)
    reliability: list[str] = Field(default_factory=list)

    @field_validator("security", "performance", "reliability", mode="before")
    @classmethod
    def normalize_lists(cls, v) -> list[str]:
        return normalize_string_list(v)


class TechnicalArchitecture(FrozenStudioModel):
    """Tech stack, layout, API surface and guardrails derived from the system model."""

    tech_stack: TechStack
    folder_structure: str = Field(description="Folder tree as plain text")
    api_endpoints: list[ApiEndpoint] = Field(default_factory=list)
    security_requirements: list[str] = Field(default_factory=list)
    guardrails: Guardrails = Field(default_factory=Guardrails)

    @field_validator("security_requirements", mode="before")
    @classmethod
    def normalize_requirements(cls, v) -> list[str]:
        return normalize_string_list(v)
