"""Tests for the interview engine."""

from unittest.mock import MagicMock

import pytest

from promptstudio.analyzers.runner import AuxiliaryRunner
from promptstudio.core.errors import InterviewClosedError, PromptStudioError, TransportError
from promptstudio.core.events import (
    EVENT_ANALYSIS_FINISHED,
    EVENT_INTERVIEW_CHANGED,
    EventBus,
)
from promptstudio.core.llm_base import ModelProfile
from promptstudio.interview.engine import InterviewEngine, InterviewStatus
from promptstudio.schemas.analysis import MarketingStrategy, Swot
from promptstudio.schemas.project import ProjectData


def ask(field, question="Next question?", suggestions=()):
    return {"currentField": field, "question": question, "suggestions": list(suggestions)}


@pytest.fixture
def almost_complete(complete_project):
    """Only the target audience is missing."""
    return complete_project.model_copy(update={"target_audience": None})


class TestTurns:
    def test_start_asks_first_pending_field(self, backend, client):
        backend.queue(ask("title", "What should we call it?", ["TaskFlow"]))
        engine = InterviewEngine(client)

        state = engine.start()

        assert state.current_field == "title"
        assert state.question == "What should we call it?"
        assert engine.status == InterviewStatus.AWAITING_ANSWER
        assert backend.requests[0].profile == ModelProfile.FAST_STRUCTURED
        assert "title" in backend.requests[0].prompt

    def test_empty_answer_keeps_state(self, backend, client):
        backend.queue(ask("title"))
        engine = InterviewEngine(client)
        state = engine.start()

        result = engine.submit("   ")

        assert result == state
        assert engine.status == InterviewStatus.AWAITING_ANSWER
        assert engine.last_error
        assert engine.data.title is None
        assert engine.transcript == []
        assert len(backend.requests) == 1

    def test_accepted_answer_is_folded_in(self, backend, client):
        backend.queue(ask("key_features"), ask("description"))
        engine = InterviewEngine(client, data=ProjectData(title="TaskFlow"))
        engine.start()

        state = engine.submit("Login, Dashboard ,API")

        assert engine.data.key_features == ["Login", "Dashboard", "API"]
        assert engine.transcript[-1].field == "key_features"
        assert engine.transcript[-1].answer == "Login, Dashboard ,API"
        assert state.current_field == "description"
        assert engine.last_error is None

    def test_camel_case_field_from_model(self, backend, client):
        backend.queue(ask("targetAudience"))
        engine = InterviewEngine(client, data=ProjectData(title="T", description="D", is_rebuild=False))
        assert engine.start().current_field == "target_audience"

    def test_rejected_choice_keeps_question(self, backend, client, almost_complete):
        data = almost_complete.model_copy(update={"target_audience": "Teams", "complexity": None})
        backend.queue(ask("complexity"))
        engine = InterviewEngine(client, data=data)
        engine.start()

        engine.submit("astronomical")

        assert engine.status == InterviewStatus.AWAITING_ANSWER
        assert "astronomical" in engine.last_error
        assert engine.data.complexity is None

    def test_submit_without_question(self, client):
        engine = InterviewEngine(client)
        with pytest.raises(PromptStudioError):
            engine.submit("hello")

    def test_accept_suggestion(self, backend, client):
        backend.queue(ask("title", suggestions=["TaskFlow", "BoardBuddy"]), ask("description"))
        engine = InterviewEngine(client)
        state = engine.start()

        engine.accept_suggestion(state.suggestions[1])

        assert engine.data.title == "BoardBuddy"

    def test_merge_suggestion(self):
        assert InterviewEngine.merge_suggestion("Boards, ", "Chat") == "Boards, Chat"
        assert InterviewEngine.merge_suggestion("", "Chat") == "Chat"


class TestReconcile:
    def test_premature_complete_is_ignored(self, backend, client):
        backend.queue(ask("COMPLETE", "All done!"))
        engine = InterviewEngine(client)

        state = engine.start()

        assert not engine.is_complete
        assert state.current_field == "title"
        assert state.question == "What is the working title of your project?"

    def test_field_that_is_not_pending(self, backend, client):
        backend.queue(ask("title"))
        engine = InterviewEngine(client, data=ProjectData(title="TaskFlow"))

        state = engine.start()

        assert state.current_field == "description"

    def test_choice_fallback_lists_options(self, backend, client, almost_complete):
        data = almost_complete.model_copy(update={"target_audience": "Teams", "ide": None})
        backend.queue(ask("made_up_field"))
        engine = InterviewEngine(client, data=data)

        state = engine.start()

        assert state.current_field == "ide"
        assert "Cursor" in state.suggestions


class TestCompletion:
    def test_completes_without_call_when_nothing_pending(self, backend, client, almost_complete):
        backend.queue(ask("target_audience"))
        completed = []
        engine = InterviewEngine(client, data=almost_complete, on_complete=completed.append)
        engine.start()

        result = engine.submit("Small remote teams")

        assert result is None
        assert engine.is_complete
        assert engine.status == InterviewStatus.COMPLETE
        assert len(backend.requests) == 1
        assert len(completed) == 1
        assert completed[0].target_audience == "Small remote teams"
        assert completed[0] is not engine.data

    def test_closed_after_completion(self, backend, client, almost_complete):
        backend.queue(ask("target_audience"))
        completed = []
        engine = InterviewEngine(client, data=almost_complete, on_complete=completed.append)
        engine.start()
        engine.submit("Teams")

        with pytest.raises(InterviewClosedError):
            engine.submit("more")
        with pytest.raises(InterviewClosedError):
            engine.start()
        assert len(completed) == 1

    def test_start_on_complete_data(self, backend, client, complete_project):
        completed = []
        engine = InterviewEngine(client, data=complete_project, on_complete=completed.append)
        assert engine.start() is None
        assert engine.is_complete
        assert backend.requests == []
        assert len(completed) == 1


class TestFailures:
    def test_failed_question_call_and_retry(self, backend, client):
        backend.queue("no json here", ask("title"))
        engine = InterviewEngine(client)

        assert engine.start() is None
        assert engine.status == InterviewStatus.AWAITING_QUESTION
        assert engine.last_error
        assert engine.in_flight is False

        state = engine.retry()
        assert state.current_field == "title"
        assert engine.last_error is None

    def test_transport_failure_after_retries(self, backend, client):
        backend.queue(*[TransportError("down")] * 3)
        engine = InterviewEngine(client)
        assert engine.start() is None
        assert "down" in engine.last_error


class TestSkip:
    def test_required_field_cannot_be_skipped(self, backend, client):
        backend.queue(ask("title"))
        engine = InterviewEngine(client)
        state = engine.start()

        assert engine.skip() == state
        assert "required" in engine.last_error
        assert engine.data.skipped_fields == []

    def test_optional_field_skipped(self, backend, client, complete_project):
        data = complete_project.model_copy(update={"auth_methods": []})
        backend.queue(ask("auth_methods"))
        engine = InterviewEngine(client, data=data)
        engine.start()

        assert engine.skip() is None
        assert engine.data.skipped_fields == ["auth_methods"]
        assert engine.is_complete


class TestTriggers:
    def test_marketing_fires_once(self, backend, client):
        data = ProjectData(title="TaskFlow", description="Boards", is_rebuild=False)
        backend.queue(ask("target_audience"), ask("key_features"), ask("requires_payments"))
        runner = MagicMock()
        marketing = MagicMock()
        engine = InterviewEngine(client, data=data, runner=runner, marketing=marketing)
        engine.start()

        engine.submit("Small teams")
        engine.submit("Boards, Chat")

        names = [call.args[0] for call in runner.submit.call_args_list]
        assert names == ["marketing"]
        snapshot = runner.submit.call_args.args[2]
        assert snapshot.target_audience == "Small teams"
        assert snapshot is not engine.data

    def test_research_trigger(self, backend, client):
        bus = EventBus()
        statuses = []
        bus.subscribe(EVENT_INTERVIEW_CHANGED, lambda event: statuses.append(event.status))
        data = ProjectData(title="TaskFlow", description="Boards", is_rebuild=True)
        backend.queue(ask("rebuild_source"), ask("target_audience"))
        runner = MagicMock()
        researcher = MagicMock()
        engine = InterviewEngine(client, data=data, runner=runner, researcher=researcher, event_bus=bus)
        engine.start()

        engine.submit("Trello")

        runner.submit.assert_called_once()
        name, func, source = runner.submit.call_args.args
        assert (name, func, source) == ("rebuild_research", researcher.analyze, "Trello")
        assert InterviewStatus.RESEARCH_IN_PROGRESS.value in statuses
        assert engine.status == InterviewStatus.AWAITING_ANSWER

    def test_marketing_failure_is_isolated(self, backend, client, almost_complete):
        bus = EventBus()
        finished = []
        bus.subscribe(EVENT_ANALYSIS_FINISHED, finished.append)
        backend.queue(ask("target_audience"))
        marketing = MagicMock()
        marketing.analyze.side_effect = TransportError("quota exceeded")
        completed = []

        with AuxiliaryRunner(event_bus=bus) as runner:
            engine = InterviewEngine(
                client,
                data=almost_complete,
                runner=runner,
                marketing=marketing,
                on_complete=completed.append,
            )
            engine.start()
            engine.submit("Small remote teams")
            assert runner.wait_all(timeout=5)

        assert engine.is_complete
        assert len(completed) == 1
        assert engine.data.marketing_strategy is None
        assert finished[0].name == "marketing"
        assert finished[0].success is False
        assert "quota" in finished[0].error

    def test_marketing_result_attached(self, backend, client, almost_complete):
        backend.queue(ask("target_audience"))
        strategy = MarketingStrategy(positioning="Simple boards for small teams", swot=Swot(strengths=["Simple"]))
        marketing = MagicMock()
        marketing.analyze.return_value = strategy

        with AuxiliaryRunner() as runner:
            engine = InterviewEngine(client, data=almost_complete, runner=runner, marketing=marketing)
            engine.start()
            engine.submit("Small remote teams")
            assert runner.wait_all(timeout=5)

        assert engine.data.marketing_strategy == strategy
