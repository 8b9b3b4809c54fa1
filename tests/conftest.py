"""Shared fixtures: a scripted generation backend and sample project data."""

import json
from typing import Any, Callable, Optional

import pytest

from promptstudio.core.config import Config
from promptstudio.core.generation import GenerationClient
from promptstudio.core.llm_base import GenerationRequest, GenerationResponse, VideoOperation
from promptstudio.core.rate_limit import RateLimiter
from promptstudio.schemas.architecture import TechnicalArchitecture
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
from promptstudio.schemas.system_model import SystemModel
from promptstudio.schemas.workspace import WorkspaceBundle


class FakeBackend:
    """
    Backend that replays queued replies in order and records every request.

    A reply may be a GenerationResponse, a string (response text), a dict or
    list (dumped as JSON text), an exception to raise, or a callable taking the
    request and returning any of these.
    """

    def __init__(self, replies: Optional[list[Any]] = None):
        self.replies = list(replies or [])
        self.requests: list[GenerationRequest] = []
        self.video_replies: list[Any] = []
        self.video_checks = 0

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    def _resolve(self, reply: Any, request: Any) -> Any:
        if callable(reply) and not isinstance(reply, type):
            reply = reply(request)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def send(self, request: GenerationRequest, timeout: float) -> GenerationResponse:
        self.requests.append(request)
        if not self.replies:
            raise AssertionError(f"Unexpected generation call: {request.profile.value}")
        reply = self._resolve(self.replies.pop(0), request)
        if isinstance(reply, GenerationResponse):
            return reply
        if isinstance(reply, str):
            return GenerationResponse(text=reply)
        return GenerationResponse(text=json.dumps(reply))

    def start_video(self, request: GenerationRequest, timeout: float) -> VideoOperation:
        self.requests.append(request)
        return self._resolve(self.video_replies.pop(0), request)

    def check_video(self, operation: VideoOperation, timeout: float) -> VideoOperation:
        self.video_checks += 1
        if self.video_replies:
            return self._resolve(self.video_replies.pop(0), operation)
        return operation


def make_client(
    backend: FakeBackend,
    clock: Optional[Callable[[], float]] = None,
    **config_values: Any,
) -> GenerationClient:
    """A client that never sleeps and never waits on the rate limiter."""
    config = Config()
    config.max_retries = 2
    for key, value in config_values.items():
        setattr(config, key, value)
    kwargs: dict[str, Any] = {}
    if clock is not None:
        kwargs["clock"] = clock
    return GenerationClient(
        backend,
        config=config,
        rate_limiter=RateLimiter(requests_per_minute=6000),
        sleep=lambda _: None,
        **kwargs,
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(backend):
    return make_client(backend)


@pytest.fixture
def complete_project():
    """TaskFlow: every required schedule field answered."""
    return ProjectData(
        title="TaskFlow",
        description="A collaborative task board for small teams",
        is_rebuild=False,
        target_audience="Small remote teams",
        key_features=["Boards", "Task assignment", "Due date reminders"],
        auth_methods=["Email", "Google"],
        requires_payments=False,
        project_scope=ProjectScope.MVP,
        complexity=Complexity.MEDIUM,
        ide=Ide.CURSOR,
        preferred_model=PreferredModel.CLAUDE,
        github_repo=GithubRepo.CREATE,
        hosting_deployment=Hosting.VERCEL,
        test_strategy=TestStrategy.INTEGRATION,
        security_level=SecurityLevel.STANDARD,
        ecosystem_preference=EcosystemPreference.VERCEL,
    )


@pytest.fixture
def system_model_payload():
    return {
        "entities": [
            {"name": "Board", "description": "A collection of tasks", "properties": ["id", "name"]},
            {"name": "Task", "description": "A unit of work", "properties": ["id", "title", "dueDate"]},
        ],
        "relationships": ["Board has many Tasks"],
        "userFlows": ["Create a board", "Assign a task"],
        "coreLogic": "Tasks move between columns on a board.",
    }


@pytest.fixture
def architecture_payload():
    return {
        "techStack": {
            "frontend": [{"name": "Next.js", "justification": "SSR and routing"}],
            "backend": ["Node.js"],
            "database": [{"name": "PostgreSQL", "justification": "Relational data"}],
            "additional": ["Tailwind CSS"],
        },
        "folderStructure": "src/\n  app/\n  lib/",
        "apiEndpoints": [
            {
                "method": "get",
                "path": "/api/tasks",
                "description": "List tasks",
                "parameters": [{"name": "boardId", "type": "string", "required": True}],
                "response": "Task[]",
            }
        ],
        "securityRequirements": ["Validate all input"],
        "guardrails": {"security": ["No secrets in code"], "performance": [], "reliability": []},
    }


@pytest.fixture
def workspace_payload():
    return {
        "masterPrompt": "# TaskFlow\n\nBuild a collaborative task board.",
        "workspaceFiles": [
            {"name": ".cursorrules", "content": "Use TypeScript.", "description": "Agent rules", "language": "text"},
            {"name": "README.md", "content": "# TaskFlow", "description": "Overview", "language": "markdown"},
        ],
    }


@pytest.fixture
def system_model(system_model_payload):
    return SystemModel.model_validate(system_model_payload)


@pytest.fixture
def architecture(architecture_payload):
    return TechnicalArchitecture.model_validate(architecture_payload)


@pytest.fixture
def workspace(workspace_payload):
    return WorkspaceBundle.model_validate(workspace_payload)
