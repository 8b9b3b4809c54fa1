"""Interview field schedule and per-field answer transforms."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from pydantic.alias_generators import to_snake

from promptstudio.core.errors import ValidationError
from promptstudio.schemas.project import (
    Complexity,
    EcosystemPreference,
    GithubRepo,
    Hosting,
    Ide,
    PreferredModel,
    ProjectData,
    ProjectScope,
    SecurityLevel,
    TestStrategy,
)

# Heuristic, not a strict parse: any token found anywhere in the answer counts as yes.
AFFIRMATIVE_TOKENS = ("yes", "ja", "true", "sure")


class Phase(str, Enum):
    VISION = "Vision"
    AUDIENCE = "Audience"
    FEATURES = "Features"
    SCOPE = "Scope"
    TOOLING = "Tooling"
    DELIVERY = "Delivery"


class FieldKind(str, Enum):
    TEXT = "text"
    MULTI = "multi"
    BOOLEAN = "boolean"
    CHOICE = "choice"


def is_affirmative(text: str) -> bool:
    """Case-insensitive substring match against AFFIRMATIVE_TOKENS."""
    lowered = text.lower()
    return any(token in lowered for token in AFFIRMATIVE_TOKENS)


def parse_multi_value(text: str) -> list[str]:
    """Split on comma, trim, drop empty tokens."""
    return [token.strip() for token in text.split(",") if token.strip()]


@dataclass(frozen=True)
class FieldSpec:
    """One row of the interview schedule."""

    name: str
    phase: Phase
    kind: FieldKind
    question: str
    description: str = ""
    choices: Optional[type[Enum]] = None
    optional: bool = False
    condition: Optional[Callable[[ProjectData], bool]] = field(default=None, compare=False)
    research: bool = False

    @property
    def options(self) -> tuple[str, ...]:
        if self.choices is None:
            return ()
        return tuple(member.value for member in self.choices)

    @property
    def other_option(self) -> Optional[Enum]:
        """The catch-all option, if the choice set has one."""
        if self.choices is None:
            return None
        return getattr(self.choices, "OTHER", None)

    def applies_to(self, data: ProjectData) -> bool:
        return self.condition is None or self.condition(data)

    def match_choice(self, answer: str) -> Enum:
        """
        Map free text onto one of the options.

        Exact case-insensitive match first, then an option contained in the
        answer, then an answer contained in an option. Unmatched input falls
        back to the "other" option when the field has one.
        """
        wanted = answer.strip().casefold()
        members = list(self.choices)

        for member in members:
            if member.value.casefold() == wanted or member.name.casefold() == wanted:
                return member
        for member in members:
            if member.value.casefold() in wanted:
                return member
        for member in members:
            if wanted in member.value.casefold():
                return member

        if self.other_option is not None:
            return self.other_option
        raise ValidationError(
            f"'{answer.strip()}' is not one of: {', '.join(self.options)}",
            field=self.name,
        )

    def transform(self, answer: Any) -> Any:
        """
        Turn a raw answer into the typed value stored on ProjectData.

        Raises:
            ValidationError: If the answer is empty or cannot be mapped
        """
        if self.kind == FieldKind.BOOLEAN and isinstance(answer, bool):
            return answer
        if self.kind == FieldKind.MULTI and isinstance(answer, (list, tuple)):
            answer = ", ".join(str(item) for item in answer)

        text = "" if answer is None else str(answer)
        if not text.strip():
            raise ValidationError("Answer must not be empty", field=self.name)

        if self.kind == FieldKind.MULTI:
            values = parse_multi_value(text)
            if not values:
                raise ValidationError("Enter at least one value, separated by commas", field=self.name)
            return values
        if self.kind == FieldKind.BOOLEAN:
            return is_affirmative(text)
        if self.kind == FieldKind.CHOICE:
            return self.match_choice(text)
        return text.strip()


def _is_rebuild(data: ProjectData) -> bool:
    return data.is_rebuild is True


FIELD_SCHEDULE: tuple[FieldSpec, ...] = (
    FieldSpec(
        "title",
        Phase.VISION,
        FieldKind.TEXT,
        "What is the working title of your project?",
        "Project title",
    ),
    FieldSpec(
        "description",
        Phase.VISION,
        FieldKind.TEXT,
        "Describe in a few sentences what the software should do.",
        "What the software does",
    ),
    FieldSpec(
        "is_rebuild",
        Phase.VISION,
        FieldKind.BOOLEAN,
        "Is this a rebuild or improved version of an existing product?",
        "Whether an existing product is being rebuilt",
    ),
    FieldSpec(
        "rebuild_source",
        Phase.VISION,
        FieldKind.TEXT,
        "Which existing product should be rebuilt? A name or URL is enough.",
        "Product being rebuilt",
        condition=_is_rebuild,
        research=True,
    ),
    FieldSpec(
        "target_audience",
        Phase.AUDIENCE,
        FieldKind.TEXT,
        "Who is the target audience?",
        "Who the software is for",
    ),
    FieldSpec(
        "key_features",
        Phase.FEATURES,
        FieldKind.MULTI,
        "Which key features must the first version have? Separate them with commas.",
        "Main features",
    ),
    FieldSpec(
        "auth_methods",
        Phase.FEATURES,
        FieldKind.MULTI,
        "How should users sign in (e.g. email, Google, GitHub)?",
        "Login methods",
        optional=True,
    ),
    FieldSpec(
        "requires_payments",
        Phase.FEATURES,
        FieldKind.BOOLEAN,
        "Does the application need to process payments?",
        "Whether payments are processed",
    ),
    FieldSpec(
        "project_scope",
        Phase.SCOPE,
        FieldKind.CHOICE,
        "What scope are you aiming for?",
        "Project scope",
        choices=ProjectScope,
    ),
    FieldSpec(
        "complexity",
        Phase.SCOPE,
        FieldKind.CHOICE,
        "How complex is the core logic?",
        "Technical complexity",
        choices=Complexity,
    ),
    FieldSpec(
        "ide",
        Phase.TOOLING,
        FieldKind.CHOICE,
        "Which IDE or coding agent will build the project?",
        "Development environment",
        choices=Ide,
    ),
    FieldSpec(
        "preferred_model",
        Phase.TOOLING,
        FieldKind.CHOICE,
        "Which AI model does the coding agent use?",
        "Coding model",
        choices=PreferredModel,
    ),
    FieldSpec(
        "github_repo",
        Phase.TOOLING,
        FieldKind.CHOICE,
        "Is there an existing GitHub repository, or should one be created?",
        "Repository situation",
        choices=GithubRepo,
    ),
    FieldSpec(
        "hosting_deployment",
        Phase.DELIVERY,
        FieldKind.CHOICE,
        "Where should the application be hosted?",
        "Hosting target",
        choices=Hosting,
    ),
    FieldSpec(
        "test_strategy",
        Phase.DELIVERY,
        FieldKind.CHOICE,
        "Which testing strategy should the agent follow?",
        "Test strategy",
        choices=TestStrategy,
    ),
    FieldSpec(
        "security_level",
        Phase.DELIVERY,
        FieldKind.CHOICE,
        "What security level does the project need?",
        "Security level",
        choices=SecurityLevel,
    ),
    FieldSpec(
        "ecosystem_preference",
        Phase.DELIVERY,
        FieldKind.CHOICE,
        "Do you prefer a particular cloud and AI ecosystem?",
        "Ecosystem preference",
        choices=EcosystemPreference,
        optional=True,
    ),
)

FIELDS_BY_NAME: dict[str, FieldSpec] = {spec.name: spec for spec in FIELD_SCHEDULE}


def lookup_field(name: str) -> Optional[FieldSpec]:
    """Find a schedule entry by snake_case or camelCase name."""
    if not name:
        return None
    return FIELDS_BY_NAME.get(name) or FIELDS_BY_NAME.get(to_snake(name))


def is_settled(spec: FieldSpec, data: ProjectData) -> bool:
    return data.is_filled(spec.name) or spec.name in data.skipped_fields


def pending_fields(data: ProjectData) -> list[FieldSpec]:
    """Applicable fields that are neither answered nor skipped, in schedule order."""
    return [spec for spec in FIELD_SCHEDULE if spec.applies_to(data) and not is_settled(spec, data)]


def missing_required_fields(data: ProjectData) -> list[str]:
    """Names of pending fields that may not be left out."""
    return [spec.name for spec in pending_fields(data) if not spec.optional]


@dataclass
class InterviewProgress:
    answered: int
    total: int
    phases: dict[Phase, tuple[int, int]]

    @property
    def fraction(self) -> float:
        return self.answered / self.total if self.total else 1.0


def interview_progress(data: ProjectData) -> InterviewProgress:
    """Answered/total counts, overall and per phase, derived from the schedule."""
    phases: dict[Phase, tuple[int, int]] = {phase: (0, 0) for phase in Phase}
    answered = total = 0
    for spec in FIELD_SCHEDULE:
        if not spec.applies_to(data):
            continue
        done = is_settled(spec, data)
        phase_answered, phase_total = phases[spec.phase]
        phases[spec.phase] = (phase_answered + int(done), phase_total + 1)
        answered += int(done)
        total += 1
    return InterviewProgress(answered=answered, total=total, phases=phases)
