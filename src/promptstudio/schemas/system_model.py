"""Schema for the stage 1 output: the logical system model."""

from pydantic import Field, field_validator

from promptstudio.schemas.base import FrozenStudioModel, normalize_string_list


class Entity(FrozenStudioModel):
    """A domain entity with its attribute names."""

    name: str = Field(description="Entity name")
    description: str = Field(default="", description="What the entity represents")
    properties: list[str] = Field(default_factory=list, description="Attribute names")

    @field_validator("properties", mode="before")
    @classmethod
    def normalize_properties(cls, v) -> list[str]:
        return normalize_string_list(v)


class SystemModel(FrozenStudioModel):
    """Entities, relationships and flows extracted from the project description."""

    entities: list[Entity] = Field(min_length=1, description="Domain entities")
    relationships: list[str] = Field(default_factory=list, description="Relationships between entities")
    user_flows: list[str] = Field(default_factory=list, description="Main user flows")
    core_logic: str = Field(description="Summary of the core business logic")

    @field_validator("relationships", "user_flows", mode="before")
    @classmethod
    def normalize_lists(cls, v) -> list[str]:
        return normalize_string_list(v)
