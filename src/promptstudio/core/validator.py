"""JSON extraction and schema validation for structured responses."""

import json
import re
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from promptstudio.core.errors import ParseError

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\[{].*?[\]}])\s*```", re.DOTALL)
_BARE_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_BARE_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


def extract_json(text: str) -> Any:
    """
    Extract JSON from a model response, handling markdown code blocks.

    Args:
        text: Raw response text that may contain JSON

    Returns:
        Parsed JSON (object or array)

    Raises:
        ValueError: If no valid JSON is found
    """
    stripped = text.strip()
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        pass

    match = _FENCED_JSON.search(text)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            pass

    # Whichever bracket opens first decides the candidate order
    patterns = [_BARE_OBJECT, _BARE_ARRAY]
    if stripped.find("[") != -1 and (stripped.find("{") == -1 or stripped.find("[") < stripped.find("{")):
        patterns.reverse()
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                continue

    raise ValueError(f"Could not extract valid JSON from response: {text[:200]}...")


def format_validation_error(error: ValidationError, schema_name: str) -> str:
    """
    Format a pydantic validation error with hints for common model mistakes.

    Args:
        error: Pydantic ValidationError
        schema_name: Name of the expected shape

    Returns:
        Multi-line message listing each failing field
    """
    errors = error.errors()
    if not errors:
        return str(error)

    parts = [f"Validation failed for {schema_name}:"]
    for err in errors:
        loc = " -> ".join(str(x) for x in err["loc"]) or "<root>"
        error_type = err["type"]
        input_value = err.get("input")

        parts.append(f"Field: {loc}")
        parts.append(f"  Error: {err.get('msg', '')}")
        parts.append(f"  Type: {error_type}")

        if error_type == "string_type" and isinstance(input_value, dict):
            parts.append("  Hint: expected a string but got an object")
        elif error_type == "list_type" and isinstance(input_value, str):
            parts.append("  Hint: expected a list but got a string")
        elif error_type == "missing":
            parts.append(f"  Hint: required field '{loc}' is missing")

        if input_value is not None:
            input_str = str(input_value)
            if len(input_str) > 100:
                input_str = input_str[:97] + "..."
            parts.append(f"  Input value: {input_str}")

    return "\n".join(parts)


def schema_name(schema: Any) -> str:
    """Readable name for a model class or a generic alias such as list[str]."""
    return getattr(schema, "__name__", None) or str(schema)


def validate_payload(
    data: Any,
    adapter: TypeAdapter,
    name: str,
    raw_text: Optional[str] = None,
    profile: Optional[str] = None,
    model: Optional[str] = None,
) -> Any:
    """
    Validate parsed JSON against the expected shape.

    Raises:
        ParseError: If the data does not match, carrying the formatted detail
    """
    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        raise ParseError(
            format_validation_error(e, name),
            raw_text=raw_text,
            profile=profile,
            model=model,
        ) from e
