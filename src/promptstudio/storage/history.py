"""Project history: a bounded list of completed runs behind a small store interface."""

import json
import threading
from pathlib import Path
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from promptstudio.core.logging import get_logger
from promptstudio.schemas.pipeline import SavedProject

logger = get_logger("promptstudio.history")

DEFAULT_CAPACITY = 20


class ProjectStore(Protocol):
    """Reads and writes the whole list at once; never partial records."""

    def load_all(self) -> list[SavedProject]:
        ...

    def save_all(self, projects: list[SavedProject]) -> None:
        ...


class MemoryStore:
    """In-process store, used when nothing should touch the disk."""

    def __init__(self, projects: Optional[list[SavedProject]] = None):
        self.projects = list(projects or [])
        self.saves = 0

    def load_all(self) -> list[SavedProject]:
        return list(self.projects)

    def save_all(self, projects: list[SavedProject]) -> None:
        self.projects = list(projects)
        self.saves += 1


class JsonFileStore:
    """
    JSON file store with atomic writes.

    Every write first copies the current file to ``<name>.json.bak`` and then
    replaces the file through a temporary sibling. A corrupt file falls back
    to the backup, and to an empty list when the backup is unusable too.
    """

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize JSON store.

        Args:
            path: History file (default: ~/.promptstudio/history.json)
        """
        self.path = path or Path.home() / ".promptstudio" / "history.json"
        self.backup_path = self.path.with_suffix(".json.bak")

    def _read(self, path: Path) -> list[Any]:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON list in {path}")
        return data

    def load_all(self) -> list[SavedProject]:
        if not self.path.exists():
            return []
        try:
            raw = self._read(self.path)
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"History file corrupted: {e}, attempting to load backup")
            raw = self._load_backup()
        except OSError as e:
            logger.error(f"IO error loading history: {e}")
            return []

        projects = []
        for index, item in enumerate(raw):
            try:
                projects.append(SavedProject.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    f"Skipping unreadable history entry {index}",
                    context={"index": index, "errors": e.error_count()},
                )
        return projects

    def _load_backup(self) -> list[Any]:
        if not self.backup_path.exists():
            logger.warning("No history backup found, starting empty")
            return []
        try:
            raw = self._read(self.backup_path)
        except (OSError, json.JSONDecodeError, ValueError) as e:
            logger.error(f"History backup also corrupted: {e}, starting empty")
            return []
        logger.info("Loaded history from backup file")
        return raw

    def save_all(self, projects: list[SavedProject]) -> None:
        """
        Write the whole list.

        Raises:
            OSError: If the file cannot be written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        if self.path.exists():
            try:
                self.backup_path.write_bytes(self.path.read_bytes())
            except OSError as e:
                logger.warning(f"Failed to create history backup: {e}")

        temp_path = self.path.with_suffix(".json.tmp")
        content = json.dumps([project.to_json_dict() for project in projects], indent=2, ensure_ascii=False)
        temp_path.write_text(content, encoding="utf-8")
        temp_path.replace(self.path)
        logger.debug(f"History saved to {self.path}", context={"count": len(projects)})


class ProjectHistory:
    """
    Repository of completed runs.

    Owns dedup by id, most-recent-first ordering and the capacity bound; the
    store only ever sees complete lists.
    """

    def __init__(self, store: ProjectStore, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.store = store
        self.capacity = capacity
        self._projects: list[SavedProject] = []
        self._loaded = False
        self._lock = threading.Lock()

    def init(self) -> None:
        """Load from the store once. Later calls are no-ops."""
        with self._lock:
            if self._loaded:
                return
            projects = sorted(self.store.load_all(), key=lambda p: p.timestamp, reverse=True)
            deduped: list[SavedProject] = []
            seen: set[str] = set()
            for project in projects:
                if project.id not in seen:
                    seen.add(project.id)
                    deduped.append(project)
            self._projects = deduped[: self.capacity]
            self._loaded = True
        logger.debug("History loaded", context={"count": len(self._projects)})

    def teardown(self) -> None:
        """Nothing to flush: every change is written synchronously."""

    def add(self, project: SavedProject) -> None:
        """
        Insert by timestamp, replacing an entry with the same id, evicting past capacity.

        Updating an existing project keeps its place; the list is only replaced
        once the store has accepted it.
        """
        self.init()
        with self._lock:
            # Stable sort: a new entry wins ties with older ones
            projects = sorted(
                [project] + [p for p in self._projects if p.id != project.id],
                key=lambda p: p.timestamp,
                reverse=True,
            )
            evicted = projects[self.capacity:]
            kept = projects[: self.capacity]
            self.store.save_all(list(kept))
            self._projects = kept
        if evicted:
            logger.info(
                f"History capacity reached, evicted {len(evicted)} project(s)",
                context={"evicted": [p.id for p in evicted]},
            )

    def delete(self, project_id: str) -> bool:
        """Remove a project. Returns False if no project has that id."""
        self.init()
        with self._lock:
            remaining = [p for p in self._projects if p.id != project_id]
            if len(remaining) == len(self._projects):
                return False
            self.store.save_all(list(remaining))
            self._projects = remaining
        return True

    def get(self, project_id: str) -> Optional[SavedProject]:
        self.init()
        with self._lock:
            for project in self._projects:
                if project.id == project_id:
                    return project
        return None

    def search(self, query: str = "", tech: Optional[str] = None) -> list[SavedProject]:
        """
        Filter by free text over title and description, and optionally by a tech stack name.

        Results keep most-recent-first order.
        """
        self.init()
        needle = query.strip().casefold()
        wanted_tech = tech.strip().casefold() if tech else None
        matches = []
        with self._lock:
            for project in self._projects:
                text = f"{project.data.title or ''} {project.data.description or ''}".casefold()
                if needle and needle not in text:
                    continue
                if wanted_tech is not None:
                    names = _tech_names(project)
                    if wanted_tech not in {name.casefold() for name in names}:
                        continue
                matches.append(project)
        return matches

    def tech_filters(self) -> list[str]:
        """Sorted unique tech stack names across all saved architectures."""
        self.init()
        names: set[str] = set()
        with self._lock:
            for project in self._projects:
                names.update(_tech_names(project))
        return sorted(names, key=str.casefold)

    def __len__(self) -> int:
        self.init()
        return len(self._projects)

    def list(self) -> list[SavedProject]:
        """All saved projects, most recent first."""
        self.init()
        with self._lock:
            return list(self._projects)


def _tech_names(project: SavedProject) -> list[str]:
    if project.result.stage2 is None:
        return []
    return project.result.stage2.tech_stack.names()
