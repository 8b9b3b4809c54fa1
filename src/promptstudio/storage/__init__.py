"""Persistence of completed runs."""

from promptstudio.storage.history import JsonFileStore, MemoryStore, ProjectHistory, ProjectStore

__all__ = ["JsonFileStore", "MemoryStore", "ProjectHistory", "ProjectStore"]
