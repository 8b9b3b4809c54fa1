"""Shared base model and normalizers for all schemas."""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StudioModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        """Dump using the camelCase wire names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FrozenStudioModel(StudioModel):
    """Immutable stage output."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def normalize_string_list(v: Any) -> list[str]:
    """Normalize LLM list output to a list of strings."""
    if v is None:
        return []
    if isinstance(v, str):
        return [v] if v.strip() else []
    if isinstance(v, list):
        normalized = []
        for item in v:
            if isinstance(item, str):
                normalized.append(item)
            elif isinstance(item, dict):
                text = item.get("name") or item.get("text") or item.get("description") or str(item)
                normalized.append(str(text))
            else:
                normalized.append(str(item))
        return normalized
    return [str(v)]


def dump_for_prompt(value: Any) -> str:
    """Pretty JSON of a model (camelCase) or plain value for embedding in a prompt."""
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(value, indent=2, ensure_ascii=False)
