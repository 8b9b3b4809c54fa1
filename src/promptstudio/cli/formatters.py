"""Rich output for the command line."""

import json
import sys
from typing import Any, Optional

from rich.console import Console
from rich.json import JSON
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn, TimeElapsedColumn
from rich.table import Table

from promptstudio.core.events import EVENT_STAGE_CHANGED, EventBus, StageChangedEvent
from promptstudio.interview.fields import InterviewProgress
from promptstudio.pipeline.stages import STAGE_TABLE, STAGES_BY_STATE
from promptstudio.schemas.analysis import (
    ArchitectAnswer,
    Estimation,
    MarketingStrategy,
    RebuildAnalysis,
    RefinementSuggestion,
)
from promptstudio.schemas.pipeline import PipelineResult, PipelineStage, SavedProject
from promptstudio.schemas.project import InterviewState


class OutputFormatter:
    """Formats domain objects for the terminal."""

    def __init__(self, force_color: bool = False, console: Optional[Console] = None):
        self.console = console or Console(force_terminal=force_color or None, file=sys.stdout)
        self.err_console = Console(stderr=True)

    def print_json(self, data: Any, indent: int = 2) -> None:
        self.console.print(JSON(json.dumps(data, indent=indent, ensure_ascii=False)))

    def print_error(self, message: str, tip: Optional[str] = None) -> None:
        self.err_console.print(f"[bold red]Error:[/bold red] {message}")
        if tip:
            self.err_console.print(f"  [dim]Tip: {tip}[/dim]")

    def print_info(self, message: str) -> None:
        self.console.print(f"[cyan]{message}[/cyan]")

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def print_question(self, state: InterviewState, progress: InterviewProgress) -> None:
        """Show the current interview question with its suggestions."""
        header = f"[dim]{progress.answered}/{progress.total} answered[/dim]"
        self.console.print(Panel(state.question, title=state.current_field, subtitle=header, border_style="blue"))
        for index, suggestion in enumerate(state.suggestions, start=1):
            self.console.print(f"  [magenta]{index}[/magenta]) {suggestion}")

    def print_phase_progress(self, progress: InterviewProgress) -> None:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Phase", style="cyan")
        table.add_column("Answered", justify="right")
        for phase, (answered, total) in progress.phases.items():
            if total:
                table.add_row(phase.value, f"{answered}/{total}")
        self.console.print(table)

    def print_result(self, result: PipelineResult) -> None:
        """Print every available stage output."""
        if result.stage1 is not None:
            model = result.stage1
            table = Table(title="System model", show_header=True, header_style="bold magenta")
            table.add_column("Entity", style="cyan")
            table.add_column("Description")
            table.add_column("Properties", style="green")
            for entity in model.entities:
                table.add_row(entity.name, entity.description, ", ".join(entity.properties))
            self.console.print(table)
            self.console.print(Panel(model.core_logic, title="Core logic", border_style="cyan"))

        if result.stage2 is not None:
            architecture = result.stage2
            table = Table(title="Tech stack", show_header=True, header_style="bold magenta")
            table.add_column("Layer", style="cyan")
            table.add_column("Choice", style="green")
            table.add_column("Why")
            for layer in ("frontend", "backend", "database"):
                for option in getattr(architecture.tech_stack, layer):
                    table.add_row(layer, option.name, option.justification)
            for extra in architecture.tech_stack.additional:
                table.add_row("additional", extra, "")
            self.console.print(table)

            endpoints = Table(title="API endpoints", show_header=True, header_style="bold magenta")
            endpoints.add_column("Method", style="yellow")
            endpoints.add_column("Path", style="cyan")
            endpoints.add_column("Description")
            for endpoint in architecture.api_endpoints:
                endpoints.add_row(endpoint.method, endpoint.path, endpoint.description)
            self.console.print(endpoints)

        if result.stage3 is not None:
            files = Table(title="Workspace files", show_header=True, header_style="bold magenta")
            files.add_column("File", style="cyan")
            files.add_column("Language", style="green")
            files.add_column("Description")
            for workspace_file in result.stage3.workspace_files:
                files.add_row(workspace_file.name, workspace_file.language, workspace_file.description)
            self.console.print(files)
            self.console.print(Panel(Markdown(result.stage3.master_prompt), title="Master prompt"))

    def print_history(self, projects: list[SavedProject]) -> None:
        if not projects:
            self.print_info("No saved projects.")
            return
        table = Table(title="Saved projects", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Title", style="cyan")
        table.add_column("Saved", style="green")
        table.add_column("Stack")
        for project in projects:
            stack = project.result.stage2.tech_stack.names() if project.result.stage2 else []
            table.add_row(
                project.id,
                project.data.title or "-",
                _format_timestamp(project.timestamp),
                ", ".join(stack[:4]),
            )
        self.console.print(table)

    def print_estimation(self, estimation: Estimation) -> None:
        table = Table(
            title=f"Estimate: {estimation.total_hours:g} h / {estimation.total_cost:,.0f} {estimation.currency}",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Phase", style="cyan")
        table.add_column("Hours", justify="right")
        table.add_column("Cost", justify="right", style="green")
        table.add_column("Description")
        for phase in estimation.breakdown:
            table.add_row(phase.phase, f"{phase.hours:g}", f"{phase.cost:,.0f}", phase.description)
        self.console.print(table)
        self.console.print(
            f"Hourly rate: {estimation.hourly_rate:g} {estimation.currency}  "
            f"Complexity: {estimation.complexity_score}/10"
        )
        self._print_list("Risks", estimation.risks)
        self._print_list("Recommendations", estimation.recommendations)

    def print_marketing(self, strategy: MarketingStrategy) -> None:
        self.console.print(Panel(strategy.positioning, title="Positioning", border_style="cyan"))
        self._print_list("Unique selling points", strategy.unique_selling_points)
        swot = Table(title="SWOT", show_header=True, header_style="bold magenta")
        for column in ("Strengths", "Weaknesses", "Opportunities", "Threats"):
            swot.add_column(column)
        swot.add_row(
            "\n".join(strategy.swot.strengths),
            "\n".join(strategy.swot.weaknesses),
            "\n".join(strategy.swot.opportunities),
            "\n".join(strategy.swot.threats),
        )
        self.console.print(swot)
        self._print_list("Channels", strategy.channels)
        if strategy.pricing_model:
            self.console.print(f"[bold]Pricing model:[/bold] {strategy.pricing_model}")
        self._print_list("Launch plan", strategy.launch_plan)

    def print_rebuild(self, analysis: RebuildAnalysis) -> None:
        self._print_list("Features", analysis.features)
        self._print_list("Weaknesses", analysis.weaknesses)
        self._print_list("Optimizations", analysis.optimizations)
        if analysis.monetization:
            self.console.print(f"[bold]Monetization:[/bold] {analysis.monetization}")
        self._print_list("Sources", [f"{s.title} <{s.uri}>" for s in analysis.sources])

    def print_suggestions(self, suggestions: list[RefinementSuggestion]) -> None:
        if not suggestions:
            self.print_info("No suggestions.")
            return
        for suggestion in suggestions:
            body = suggestion.description
            if suggestion.code_snippet:
                body += f"\n\n```\n{suggestion.code_snippet}\n```"
            self.console.print(
                Panel(Markdown(body), title=f"[{suggestion.type}] {suggestion.title}", border_style="yellow")
            )

    def print_answer(self, answer: ArchitectAnswer) -> None:
        self.console.print(Markdown(answer.text))
        self._print_list("Sources", [f"{s.title} <{s.uri}>" for s in answer.sources])

    def print_lines(self, lines: list[str], error: bool = False) -> None:
        style = "red" if error else "green"
        for line in lines:
            self.console.print(line, style=style, markup=False, highlight=False)

    def _print_list(self, title: str, items: list[str]) -> None:
        if not items:
            return
        self.console.print(f"[bold]{title}:[/bold]")
        for item in items:
            self.console.print(f"  • {item}")


def _format_timestamp(timestamp_ms: int) -> str:
    from datetime import datetime

    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M")


class PipelineProgressDisplay:
    """Renders StageChangedEvents as a rich progress bar with one task per stage."""

    def __init__(self, console: Console, event_bus: EventBus):
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=console,
        )
        self.event_bus = event_bus
        self._tasks: dict[PipelineStage, TaskID] = {}
        self._unsubscribe = None

    def __enter__(self) -> "PipelineProgressDisplay":
        self.progress.start()
        for info in STAGE_TABLE:
            description = f"{info.title}: {' / '.join(info.subtasks)}"
            self._tasks[info.stage] = self.progress.add_task(description, total=1, start=False)
        self._unsubscribe = self.event_bus.subscribe(EVENT_STAGE_CHANGED, self._on_stage_changed)
        return self

    def _on_stage_changed(self, event: StageChangedEvent) -> None:
        stage = PipelineStage(event.stage)
        previous = PipelineStage(event.previous)
        if previous in self._tasks and stage != PipelineStage.FAILED:
            self.progress.update(self._tasks[previous], completed=1)
        if stage in self._tasks:
            self.progress.start_task(self._tasks[stage])
        if stage == PipelineStage.FAILED and previous in STAGES_BY_STATE:
            task = self._tasks[previous]
            self.progress.update(task, description=f"[red]{STAGES_BY_STATE[previous].title} failed[/red]")
            self.progress.stop_task(task)

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self.progress.stop()
