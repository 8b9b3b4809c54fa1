"""Schema for the stage 3 output: the agent workspace bundle."""

from pydantic import Field, field_validator

from promptstudio.schemas.base import FrozenStudioModel


class WorkspaceFile(FrozenStudioModel):
    """A file to drop into the agent's workspace (e.g. .cursorrules, AGENTS.md)."""

    name: str = Field(min_length=1)
    content: str
    description: str = ""
    language: str = "markdown"


class WorkspaceBundle(FrozenStudioModel):
    """Master prompt plus supporting workspace files. Terminal artifact of the pipeline."""

    master_prompt: str = Field(description="Markdown master prompt for the coding agent")
    workspace_files: list[WorkspaceFile] = Field(min_length=1)

    @field_validator("master_prompt")
    @classmethod
    def require_prompt(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("master prompt must not be empty")
        return v

    def find_file(self, name: str) -> WorkspaceFile | None:
        """Case-insensitive lookup by file name."""
        wanted = name.lower()
        for workspace_file in self.workspace_files:
            if workspace_file.name.lower() == wanted:
                return workspace_file
        return None
