"""Interview engine and field schedule."""

from promptstudio.interview.engine import InterviewEngine, InterviewStatus, VoiceFieldWriter
from promptstudio.interview.fields import (
    AFFIRMATIVE_TOKENS,
    FIELD_SCHEDULE,
    FieldKind,
    FieldSpec,
    Phase,
    interview_progress,
    is_affirmative,
    missing_required_fields,
    parse_multi_value,
    pending_fields,
)

__all__ = [
    "AFFIRMATIVE_TOKENS",
    "FIELD_SCHEDULE",
    "FieldKind",
    "FieldSpec",
    "InterviewEngine",
    "InterviewStatus",
    "Phase",
    "VoiceFieldWriter",
    "interview_progress",
    "is_affirmative",
    "missing_required_fields",
    "parse_multi_value",
    "pending_fields",
]
