"""Unit tests for Pydantic schemas."""

import pytest
from pydantic import ValidationError

from promptstudio.schemas.analysis import Estimation, RebuildAnalysis, RefinementSuggestion
from promptstudio.schemas.architecture import TechnicalArchitecture, TechStack
from promptstudio.schemas.pipeline import PipelineResult, PipelineStage, SavedProject
from promptstudio.schemas.project import InterviewState, ProjectData
from promptstudio.schemas.system_model import SystemModel
from promptstudio.schemas.workspace import WorkspaceBundle


class TestProjectData:
    """Test ProjectData schema."""

    def test_camel_case_wire_format(self, complete_project):
        data = complete_project.to_json_dict()
        assert data["targetAudience"] == "Small remote teams"
        assert data["keyFeatures"] == ["Boards", "Task assignment", "Due date reminders"]
        assert data["projectScope"] == "MVP"
        assert "target_audience" not in data

    def test_round_trip_through_aliases(self, complete_project):
        restored = ProjectData.model_validate(complete_project.to_json_dict())
        assert restored == complete_project

    def test_snapshot_is_deep_copy(self, complete_project):
        snapshot = complete_project.snapshot()
        snapshot.key_features.append("Chat")
        assert "Chat" not in complete_project.key_features

    def test_is_filled(self):
        data = ProjectData(title="  ", key_features=[], requires_payments=False)
        assert data.is_filled("requires_payments")
        assert not data.is_filled("key_features")
        assert not data.is_filled("description")

    def test_prompt_context_excludes_analyses(self, complete_project):
        context = complete_project.prompt_context()
        assert "title" in context
        assert "skippedFields" not in context
        assert "marketingStrategy" not in context

    def test_single_string_feature_becomes_list(self):
        data = ProjectData(key_features="Boards")
        assert data.key_features == ["Boards"]


class TestInterviewState:
    """Test InterviewState schema."""

    def test_complete_sentinel(self):
        state = InterviewState(current_field="COMPLETE", question="Done")
        assert state.is_complete

    def test_suggestions_default(self):
        state = InterviewState.model_validate({"currentField": "title", "question": "Title?"})
        assert state.suggestions == []
        assert not state.is_complete


class TestSystemModel:
    """Test SystemModel schema."""

    def test_valid_system_model(self, system_model_payload):
        model = SystemModel.model_validate(system_model_payload)
        assert [e.name for e in model.entities] == ["Board", "Task"]
        assert model.user_flows == ["Create a board", "Assign a task"]

    def test_requires_entities(self):
        with pytest.raises(ValidationError):
            SystemModel(entities=[], core_logic="nothing")

    def test_frozen(self, system_model):
        with pytest.raises(ValidationError):
            system_model.core_logic = "changed"


class TestTechnicalArchitecture:
    """Test TechnicalArchitecture schema."""

    def test_bare_string_tech_option(self, architecture_payload):
        architecture = TechnicalArchitecture.model_validate(architecture_payload)
        assert architecture.tech_stack.backend[0].name == "Node.js"
        assert architecture.tech_stack.backend[0].justification == ""

    def test_method_uppercased(self, architecture):
        assert architecture.api_endpoints[0].method == "GET"
        assert architecture.api_endpoints[0].parameters[0].required is True

    def test_tech_names(self):
        stack = TechStack(frontend="React", database=[{"name": "Redis", "justification": "cache"}])
        assert stack.names() == ["React", "Redis"]

    def test_missing_folder_structure(self, architecture_payload):
        del architecture_payload["folderStructure"]
        with pytest.raises(ValidationError):
            TechnicalArchitecture.model_validate(architecture_payload)


class TestWorkspaceBundle:
    """Test WorkspaceBundle schema."""

    def test_find_file_case_insensitive(self, workspace):
        assert workspace.find_file("readme.md").name == "README.md"
        assert workspace.find_file("missing.txt") is None

    def test_empty_master_prompt_rejected(self, workspace_payload):
        workspace_payload["masterPrompt"] = "   "
        with pytest.raises(ValidationError):
            WorkspaceBundle.model_validate(workspace_payload)

    def test_empty_file_list_rejected(self, workspace_payload):
        workspace_payload["workspaceFiles"] = []
        with pytest.raises(ValidationError):
            WorkspaceBundle.model_validate(workspace_payload)


class TestAnalysisSchemas:
    """Test auxiliary analysis schemas."""

    def test_estimation_requires_numbers(self):
        with pytest.raises(ValidationError):
            Estimation.model_validate(
                {"totalHours": 120, "currency": "EUR", "hourlyRate": 90, "complexityScore": 5,
                 "breakdown": [{"phase": "Backend", "hours": 60, "cost": 5400}]}
            )

    def test_estimation_complexity_bounds(self):
        with pytest.raises(ValidationError):
            Estimation(
                total_hours=10, total_cost=900, currency="EUR", hourly_rate=90,
                complexity_score=11, breakdown=[{"phase": "All", "hours": 10, "cost": 900}],
            )

    def test_rebuild_lists_normalized(self):
        analysis = RebuildAnalysis.model_validate({"features": [{"name": "Boards"}], "weaknesses": "Slow"})
        assert analysis.features == ["Boards"]
        assert analysis.weaknesses == ["Slow"]
        assert analysis.monetization is None

    def test_refinement_type_restricted(self):
        with pytest.raises(ValidationError):
            RefinementSuggestion(type="rewrite", title="x", description="y")


class TestPipelineSchemas:
    """Test pipeline result and saved project."""

    def test_result_completeness(self, system_model, architecture, workspace):
        result = PipelineResult(stage1=system_model)
        assert not result.is_complete
        result = result.model_copy(update={"stage2": architecture, "stage3": workspace})
        assert result.is_complete

    def test_running_stages(self):
        assert PipelineStage.STAGE2_RUNNING.is_running
        assert not PipelineStage.FAILED.is_running
        assert not PipelineStage.IDLE.is_running

    def test_saved_project_defaults(self, complete_project):
        saved = SavedProject(data=complete_project, result=PipelineResult())
        assert len(saved.id) == 32
        assert saved.timestamp > 1_600_000_000_000
        restored = SavedProject.model_validate(saved.to_json_dict())
        assert restored.id == saved.id
