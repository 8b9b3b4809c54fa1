"""In-app command surface over the current pipeline result."""

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from promptstudio.analyzers.refinement import ComponentRefiner
from promptstudio.app.navigation import GoBack, Navigate, Navigator, View
from promptstudio.core.errors import GenerationError
from promptstudio.core.logging import get_logger
from promptstudio.schemas.analysis import RefinementSuggestion
from promptstudio.schemas.pipeline import PipelineResult
from promptstudio.schemas.project import ProjectData

logger = get_logger("promptstudio.terminal")

WELCOME = ("Prompt Studio agent CLI", 'Type "help" for a list of commands.')

HELP_LINES = (
    "Available commands:",
    "  ls               - List workspace files",
    "  cat <file>       - Show file content",
    "  inspect <target> - Get refinement suggestions for a file, endpoint or tech choice",
    "  export [path]    - Print the master prompt, or write it to a markdown file",
    "  status           - Show project metadata",
    "  view <name>      - Switch view (home, dashboard, docs, faq, pricing)",
    "  back             - Return to the previous view",
    "  clear            - Clear the terminal",
)


@dataclass
class TerminalResponse:
    lines: list[str] = field(default_factory=list)
    clear: bool = False
    error: bool = False
    suggestions: list[RefinementSuggestion] = field(default_factory=list)
    exported: Optional[str] = None


def _error(message: str) -> TerminalResponse:
    return TerminalResponse(lines=[f"Error: {message}"], error=True)


class TerminalSession:
    """
    Read-only queries over a PipelineResult and its ProjectData.

    The only command that reaches the network is ``inspect``, which delegates
    to the component refiner.
    """

    def __init__(
        self,
        result: PipelineResult,
        project: ProjectData,
        refiner: Optional[ComponentRefiner] = None,
        navigator: Optional[Navigator] = None,
    ):
        self.result = result
        self.project = project
        self.refiner = refiner
        self.navigator = navigator
        self.history: list[str] = list(WELCOME)
        self._commands: dict[str, Callable[[list[str]], TerminalResponse]] = {
            "help": self._help,
            "ls": self._ls,
            "cat": self._cat,
            "inspect": self._inspect,
            "export": self._export,
            "status": self._status,
            "clear": self._clear,
            "view": self._view,
            "back": self._back,
        }

    def execute(self, command_line: str) -> TerminalResponse:
        """Run one command line and append the exchange to the session history."""
        if not command_line.strip():
            return TerminalResponse()
        try:
            parts = shlex.split(command_line)
        except ValueError as e:
            response = _error(f"could not parse command: {e}")
        else:
            name, args = parts[0].lower(), parts[1:]
            handler = self._commands.get(name)
            if handler is None:
                response = TerminalResponse(lines=[f'Unknown command: {name}. Type "help".'], error=True)
            else:
                response = handler(args)

        if response.clear:
            self.history = []
        else:
            self.history.append(f"> {command_line.strip()}")
            self.history.extend(response.lines)
        return response

    def _help(self, args: list[str]) -> TerminalResponse:
        return TerminalResponse(lines=list(HELP_LINES))

    def _ls(self, args: list[str]) -> TerminalResponse:
        if self.result.stage3 is None:
            return TerminalResponse(lines=["No workspace files yet."])
        lines = ["Workspace files:"]
        lines.extend(f"  {f.name} ({f.language})" for f in self.result.stage3.workspace_files)
        return TerminalResponse(lines=lines)

    def _cat(self, args: list[str]) -> TerminalResponse:
        if not args:
            return _error("please name a file (e.g. cat README.md)")
        if self.result.stage3 is None:
            return _error("no workspace files yet")
        workspace_file = self.result.stage3.find_file(args[0])
        if workspace_file is None:
            return _error(f'file "{args[0]}" not found')
        return TerminalResponse(
            lines=[f"--- {workspace_file.name} ---", workspace_file.content, "-" * 18]
        )

    def _inspect(self, args: list[str]) -> TerminalResponse:
        if not args:
            return _error("please name a target (e.g. inspect .cursorrules)")
        if self.refiner is None:
            return _error("refinement is not available in this session")

        target = " ".join(args)
        try:
            suggestions = self.refiner.analyze(f"CLI Inspect: {target}", self.project)
        except GenerationError as e:
            logger.warning(f"Inspect failed for {target}: {e}", context={"target": target})
            return _error(f"inspection failed: {e}")

        lines = [f'Inspector for "{target}":']
        if not suggestions:
            lines.append("  No suggestions.")
        for suggestion in suggestions:
            lines.append(f"  [{suggestion.type}] {suggestion.title}: {suggestion.description}")
        return TerminalResponse(lines=lines, suggestions=list(suggestions))

    def _export(self, args: list[str]) -> TerminalResponse:
        if self.result.stage3 is None:
            return _error("no master prompt yet")
        master_prompt = self.result.stage3.master_prompt
        if not args:
            return TerminalResponse(lines=[master_prompt], exported=master_prompt)

        path = Path(args[0])
        if not path.suffix:
            path = path.with_suffix(".md")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(master_prompt, encoding="utf-8")
        except OSError as e:
            return _error(f"could not write {path}: {e}")
        return TerminalResponse(lines=[f"SUCCESS: master prompt written to {path}"], exported=master_prompt)

    def _status(self, args: list[str]) -> TerminalResponse:
        def show(value) -> str:
            if value is None:
                return "-"
            return getattr(value, "value", value)

        stages = sum(stage is not None for stage in (self.result.stage1, self.result.stage2, self.result.stage3))
        return TerminalResponse(
            lines=[
                f"Project: {show(self.project.title)}",
                f"Scope: {show(self.project.project_scope)}",
                f"Complexity: {show(self.project.complexity)}",
                f"IDE: {show(self.project.ide)}",
                f"Model: {show(self.project.preferred_model)}",
                f"Stages complete: {stages}/3",
            ]
        )

    def _clear(self, args: list[str]) -> TerminalResponse:
        return TerminalResponse(clear=True)

    def _view(self, args: list[str]) -> TerminalResponse:
        if self.navigator is None:
            return _error("navigation is not available in this session")
        if not args:
            return TerminalResponse(lines=[f"Current view: {self.navigator.view.value}"])
        try:
            view = View(args[0].lower())
        except ValueError:
            return _error(f"unknown view {args[0]}, choose one of: {', '.join(v.value for v in View)}")
        self.navigator.dispatch(Navigate(view))
        return TerminalResponse(lines=[f"View: {view.value}"])

    def _back(self, args: list[str]) -> TerminalResponse:
        if self.navigator is None:
            return _error("navigation is not available in this session")
        view = self.navigator.dispatch(GoBack())
        return TerminalResponse(lines=[f"View: {view.value}"])
