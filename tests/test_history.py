"""Tests for the project history repository and its stores."""

import json
from unittest.mock import MagicMock

import pytest

from promptstudio.schemas.architecture import TechnicalArchitecture
from promptstudio.schemas.pipeline import PipelineResult, SavedProject
from promptstudio.schemas.project import ProjectData
from promptstudio.storage.history import JsonFileStore, MemoryStore, ProjectHistory


def saved(index: int, title: str = None, stack=None) -> SavedProject:
    result = PipelineResult()
    if stack:
        result = PipelineResult(
            stage2=TechnicalArchitecture(tech_stack={"backend": stack}, folder_structure="src/")
        )
    return SavedProject(
        id=f"p{index}",
        timestamp=1_700_000_000_000 + index,
        data=ProjectData(title=title or f"Project {index}", description=f"Description {index}"),
        result=result,
    )


class TestProjectHistory:
    def test_most_recent_first(self):
        history = ProjectHistory(MemoryStore())
        history.add(saved(1))
        history.add(saved(2))
        assert [p.id for p in history.list()] == ["p2", "p1"]

    def test_capacity_evicts_oldest(self):
        store = MemoryStore()
        history = ProjectHistory(store, capacity=20)
        for index in range(1, 22):
            history.add(saved(index))

        ids = [p.id for p in history.list()]
        assert len(ids) == 20
        assert "p1" not in ids
        assert ids[0] == "p21"
        assert len(store.projects) == 20

    def test_same_id_replaces(self):
        history = ProjectHistory(MemoryStore())
        history.add(saved(1, title="Old"))
        history.add(saved(2))
        history.add(saved(1, title="New"))

        assert [p.id for p in history.list()] == ["p2", "p1"]
        assert history.get("p1").data.title == "New"

    def test_updating_keeps_order_across_reload(self):
        store = MemoryStore()
        history = ProjectHistory(store)
        for index in (1, 2, 3):
            history.add(saved(index))
        history.add(saved(1, title="With estimation"))

        reloaded = ProjectHistory(store)
        assert [p.id for p in history.list()] == ["p3", "p2", "p1"]
        assert [p.id for p in reloaded.list()] == ["p3", "p2", "p1"]

    def test_newer_timestamp_moves_to_front(self):
        history = ProjectHistory(MemoryStore())
        history.add(saved(1))
        history.add(saved(2))
        history.add(saved(1).model_copy(update={"timestamp": 1_800_000_000_000}))

        assert [p.id for p in history.list()] == ["p1", "p2"]

    def test_failed_save_leaves_memory_untouched(self):
        store = MemoryStore()
        history = ProjectHistory(store)
        history.add(saved(1))
        store.save_all = MagicMock(side_effect=OSError("disk full"))

        with pytest.raises(OSError):
            history.add(saved(2))
        with pytest.raises(OSError):
            history.delete("p1")

        assert [p.id for p in history.list()] == ["p1"]

    def test_init_loads_once_sorted_and_deduplicated(self):
        store = MemoryStore([saved(1), saved(3), saved(2), saved(3)])
        history = ProjectHistory(store, capacity=2)
        history.init()
        store.projects = []
        history.init()

        assert [p.id for p in history.list()] == ["p3", "p2"]
        history.teardown()
        assert store.saves == 0

    def test_delete(self):
        store = MemoryStore()
        history = ProjectHistory(store)
        history.add(saved(1))

        assert history.delete("p1") is True
        assert history.delete("p1") is False
        assert len(history) == 0
        assert store.projects == []

    def test_get_missing(self):
        assert ProjectHistory(MemoryStore()).get("nope") is None

    def test_search_and_tech_filter(self):
        history = ProjectHistory(MemoryStore())
        history.add(saved(1, title="TaskFlow", stack=["Node.js"]))
        history.add(saved(2, title="Recipe Box", stack=["Django"]))
        history.add(saved(3, title="Task Timer", stack=["django"]))

        assert [p.id for p in history.search("task")] == ["p3", "p1"]
        assert [p.id for p in history.search(tech="Django")] == ["p3", "p2"]
        assert [p.id for p in history.search("task", tech="django")] == ["p3"]
        assert [p.id for p in history.search("description 2")] == ["p2"]
        filters = history.tech_filters()
        assert sorted(filters) == ["Django", "Node.js", "django"]
        assert filters[-1] == "Node.js"

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            ProjectHistory(MemoryStore(), capacity=0)


class TestJsonFileStore:
    def test_round_trip(self, tmp_path):
        store = JsonFileStore(tmp_path / "history.json")
        store.save_all([saved(1), saved(2)])

        loaded = store.load_all()
        assert [p.id for p in loaded] == ["p1", "p2"]
        raw = json.loads((tmp_path / "history.json").read_text(encoding="utf-8"))
        assert "timestamp" in raw[0]
        assert raw[0]["data"]["title"] == "Project 1"

    def test_missing_file(self, tmp_path):
        assert JsonFileStore(tmp_path / "none.json").load_all() == []

    def test_backup_written_on_save(self, tmp_path):
        store = JsonFileStore(tmp_path / "history.json")
        store.save_all([saved(1)])
        store.save_all([saved(1), saved(2)])

        backup = json.loads((tmp_path / "history.json.bak").read_text(encoding="utf-8"))
        assert [item["id"] for item in backup] == ["p1"]
        assert not (tmp_path / "history.json.tmp").exists()

    def test_corrupt_file_falls_back_to_backup(self, tmp_path):
        path = tmp_path / "history.json"
        store = JsonFileStore(path)
        store.save_all([saved(1)])
        store.save_all([saved(1), saved(2)])
        path.write_text("{not json", encoding="utf-8")

        assert [p.id for p in store.load_all()] == ["p1"]

    def test_corrupt_without_backup_is_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("[[[", encoding="utf-8")
        assert JsonFileStore(path).load_all() == []

    def test_invalid_entries_skipped(self, tmp_path):
        path = tmp_path / "history.json"
        good = saved(1).to_json_dict()
        path.write_text(json.dumps([good, {"id": "broken"}]), encoding="utf-8")

        assert [p.id for p in JsonFileStore(path).load_all()] == ["p1"]

    def test_history_over_file_store(self, tmp_path):
        path = tmp_path / "history.json"
        ProjectHistory(JsonFileStore(path)).add(saved(7))

        reopened = ProjectHistory(JsonFileStore(path))
        assert reopened.get("p7").data.title == "Project 7"
