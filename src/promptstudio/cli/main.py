"""CLI interface for Prompt Studio."""

import json
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import click
import yaml

from promptstudio.analyzers import (
    ArchitectAdvisor,
    AuxiliaryRunner,
    ComponentRefiner,
    EstimationAnalyzer,
    FeatureBrainstormer,
    LabStudio,
    MarketingAnalyzer,
    RebuildResearcher,
)
from promptstudio.analyzers.lab import IMAGE_ASPECT_RATIOS, IMAGE_SIZES, VIDEO_ASPECT_RATIOS
from promptstudio.app.navigation import Navigator, OpenProject
from promptstudio.app.terminal import WELCOME, TerminalSession
from promptstudio.cli.formatters import OutputFormatter, PipelineProgressDisplay
from promptstudio.core.config import CONFIG_HOME, Config
from promptstudio.core.errors import PromptStudioError
from promptstudio.core.events import EventBus
from promptstudio.core.generation import DEFAULT_VOICE, GenerationClient
from promptstudio.core.logging import configure_logging
from promptstudio.interview import InterviewEngine, interview_progress
from promptstudio.interview.voice import VoiceScopingSession, utterance_source
from promptstudio.pipeline import PipelineOrchestrator
from promptstudio.schemas.pipeline import PipelineStage, SavedProject
from promptstudio.schemas.project import InterviewState, ProjectData
from promptstudio.storage import JsonFileStore, ProjectHistory

API_KEY_TIP = "Set GEMINI_API_KEY or pass --api-key"


def common_options(func: Callable) -> Callable:
    """Options shared by every command that talks to the service or the history."""
    options = [
        click.option(
            "--config",
            "config_file",
            type=click.Path(exists=True, dir_okay=False),
            default=None,
            help="Configuration file (YAML or JSON)",
        ),
        click.option(
            "--api-key",
            default=None,
            help="Gemini API key (or use GEMINI_API_KEY env var)",
        ),
        click.option(
            "--log-level",
            type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
            default=None,
            help="Log level (default: INFO)",
        ),
        click.option(
            "--json-logging/--no-json-logging",
            default=None,
            help="Emit JSON log lines",
        ),
        click.option(
            "--log-file",
            type=click.Path(),
            default=None,
            help="Also write logs to this file",
        ),
        click.option(
            "--color/--no-color",
            default=None,
            help="Force colored output (default: auto-detect)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


class StudioContext:
    """Per-invocation wiring: config, output, event bus, client and history."""

    def __init__(self, config: Config, formatter: OutputFormatter):
        self.config = config
        self.formatter = formatter
        self.event_bus = EventBus()
        self._client: Optional[GenerationClient] = None
        self._history: Optional[ProjectHistory] = None

    @property
    def client(self) -> GenerationClient:
        if self._client is None:
            try:
                self._client = GenerationClient.from_config(self.config)
            except ValueError as e:
                _fail(self.formatter, str(e), tip=API_KEY_TIP)
        return self._client

    @property
    def history(self) -> ProjectHistory:
        if self._history is None:
            store = JsonFileStore(self.config.get_history_file())
            self._history = ProjectHistory(store, capacity=self.config.history_capacity)
        return self._history

    def resolve_project(self, project_id: Optional[str]) -> SavedProject:
        """Look up a saved project; without an id, the most recent one."""
        if project_id is None:
            projects = self.history.list()
            if not projects:
                _fail(self.formatter, "No saved projects yet", tip="Run 'promptstudio interview' first")
            return projects[0]
        saved = self.history.get(project_id)
        if saved is None:
            _fail(self.formatter, f"Project not found: {project_id}", tip="See 'promptstudio history list'")
        return saved


def _fail(formatter: OutputFormatter, message: str, tip: Optional[str] = None) -> None:
    formatter.print_error(message, tip=tip)
    sys.exit(1)


def _build_context(common: dict[str, Any]) -> StudioContext:
    """Load config and configure logging the same way for every command."""
    config_file = common.get("config_file")
    cli_config = {
        "api_key": common.get("api_key"),
        "log_level": common.get("log_level"),
        "json_logging": common.get("json_logging"),
        "log_file": common.get("log_file"),
    }
    cli_config = {k: v for k, v in cli_config.items() if v is not None}
    config = Config.load(cli_config, config_file=Path(config_file) if config_file else None)

    configure_logging(level=config.log_level, json_output=config.json_logging, log_file=config.log_file)
    return StudioContext(config, OutputFormatter(force_color=bool(common.get("color"))))


def _emit(formatter: OutputFormatter, data: Any, output: Optional[str]) -> None:
    """Write JSON to a file, or pretty-print it."""
    if output:
        Path(output).write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        formatter.print_success(f"Written to: {output}")
    else:
        formatter.print_json(data)


@click.group()
@click.version_option(package_name="promptstudio")
def main():
    """
    Prompt Studio - scope a software project and generate its master prompt.

    An adaptive interview fills in the project details, then a three-stage
    pipeline derives the system model, the technical architecture and a
    ready-to-use workspace for an AI coding agent.

    Requires a Google Gemini API key (GEMINI_API_KEY).
    """
    pass


def _run_pipeline(ctx: StudioContext, project: ProjectData) -> Optional[SavedProject]:
    orchestrator = PipelineOrchestrator(ctx.client, history=ctx.history, event_bus=ctx.event_bus)
    with PipelineProgressDisplay(ctx.formatter.console, ctx.event_bus):
        result = orchestrator.run(project)

    ctx.formatter.print_result(result)
    if orchestrator.stage == PipelineStage.FAILED:
        ctx.formatter.print_error(f"Pipeline failed: {orchestrator.error}")
        return None
    ctx.formatter.print_success(f"Saved as {orchestrator.saved.id}")
    return orchestrator.saved


def _voice_turn(ctx: StudioContext, engine: InterviewEngine) -> Optional[InterviewState]:
    formatter = ctx.formatter
    formatter.print_info("Voice scoping: describe your project, one utterance per line. Empty line to finish.")
    utterances = []
    while True:
        line = click.prompt("", prompt_suffix="🎙 ", default="", show_default=False)
        if not line.strip():
            break
        utterances.append(line)

    session = VoiceScopingSession(
        engine,
        utterance_source(ctx.client, utterances),
        on_update=lambda field, value: formatter.print_success(f"{field} updated"),
    )
    session.start()
    session.wait()
    state = session.stop()
    for field, reason in session.rejected:
        formatter.print_error(f"{field}: {reason}")
    if session.error is not None:
        formatter.print_error(f"Voice session stopped: {session.error}")
    return state


def _interview_loop(ctx: StudioContext, engine: InterviewEngine, voice: bool) -> bool:
    """Drive the engine from stdin. Returns False if the user quit early."""
    formatter = ctx.formatter
    state = _voice_turn(ctx, engine) if voice else engine.start()

    while not engine.is_complete:
        if state is None:
            formatter.print_error(engine.last_error or "No question available")
            if not click.confirm("Retry?", default=True):
                return False
            state = engine.retry()
            continue

        formatter.print_question(state, interview_progress(engine.data))
        answer = click.prompt("Answer", default="", show_default=False)
        command = answer.strip()
        if command == ":quit":
            return False
        if command == ":skip":
            state = engine.skip()
        elif command == ":voice":
            state = _voice_turn(ctx, engine)
        elif command.isdigit() and 1 <= int(command) <= len(state.suggestions):
            state = engine.accept_suggestion(state.suggestions[int(command) - 1])
        elif command.startswith("+") and command[1:].isdigit() and 1 <= int(command[1:]) <= len(state.suggestions):
            extra = click.prompt("Add to", default="", show_default=False)
            state = engine.submit(engine.merge_suggestion(extra, state.suggestions[int(command[1:]) - 1]))
        else:
            state = engine.submit(answer)

        if state is not None and engine.last_error:
            formatter.print_error(engine.last_error)
    return True


@main.command()
@click.option("--voice", is_flag=True, default=False, help="Start in voice scoping mode")
@click.option("--no-pipeline", is_flag=True, default=False, help="Stop after the interview")
@click.option(
    "--save-data",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write the collected project data to this JSON file",
)
@click.option(
    "--aux-timeout",
    type=float,
    default=120.0,
    help="Seconds to wait for marketing and rebuild analyses after the run (default: 120)",
)
@common_options
def interview(voice: bool, no_pipeline: bool, save_data: Optional[str], aux_timeout: float, **common):
    """
    Scope a project through an adaptive interview, then generate its workspace.

    Answer each question in free text, type a suggestion's number to accept it,
    "+N" to extend suggestion N, ":skip" for optional fields, ":voice" for voice
    scoping or ":quit" to stop.
    """
    ctx = _build_context(common)
    client = ctx.client
    completed: list[ProjectData] = []

    runner = AuxiliaryRunner(event_bus=ctx.event_bus)
    try:
        engine = InterviewEngine(
            client,
            runner=runner,
            marketing=MarketingAnalyzer(client),
            researcher=RebuildResearcher(client),
            on_complete=completed.append,
            event_bus=ctx.event_bus,
        )
        try:
            finished = _interview_loop(ctx, engine, voice)
        except PromptStudioError as e:
            _fail(ctx.formatter, str(e))

        if not finished:
            ctx.formatter.print_info("Interview stopped.")
            return

        snapshot = completed[0]
        ctx.formatter.print_phase_progress(interview_progress(snapshot))
        if save_data:
            Path(save_data).write_text(
                json.dumps(snapshot.to_json_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
            )
            ctx.formatter.print_success(f"Project data written to: {save_data}")

        saved = None
        if not no_pipeline:
            try:
                saved = _run_pipeline(ctx, snapshot)
            except PromptStudioError as e:
                _fail(ctx.formatter, str(e))

        if not runner.wait_all(timeout=aux_timeout):
            ctx.formatter.print_info("Background analyses are still running; their results are not included.")
        data = engine.snapshot()
    finally:
        runner.shutdown(wait=False, cancel_futures=True)

    if data.rebuild_analysis is not None:
        ctx.formatter.console.rule("Rebuild research")
        ctx.formatter.print_rebuild(data.rebuild_analysis)
    if data.marketing_strategy is not None:
        ctx.formatter.console.rule("Marketing strategy")
        ctx.formatter.print_marketing(data.marketing_strategy)
    if saved is not None and (data.marketing_strategy or data.rebuild_analysis):
        ctx.history.add(saved.model_copy(update={"data": data}))
    if not no_pipeline and saved is None:
        sys.exit(1)


@main.command()
@click.argument("project_file", type=click.Path(exists=True, dir_okay=False))
@common_options
def run(project_file: str, **common):
    """
    Run the pipeline on project data stored as JSON.

    PROJECT_FILE holds the fields collected by an interview, e.g. written by
    'promptstudio interview --save-data'.
    """
    ctx = _build_context(common)
    try:
        project = ProjectData.model_validate_json(Path(project_file).read_text(encoding="utf-8"))
    except ValueError as e:
        _fail(ctx.formatter, f"Invalid project data in {project_file}: {e}")

    try:
        saved = _run_pipeline(ctx, project)
    except PromptStudioError as e:
        _fail(ctx.formatter, str(e))
    if saved is None:
        sys.exit(1)


@main.group()
def history():
    """Browse saved projects."""
    pass


@history.command("list")
@click.option("--query", "-q", default="", help="Filter by text in title or description")
@click.option("--tech", "-t", default=None, help="Filter by tech stack name")
@click.option("--show-tech", is_flag=True, default=False, help="List the known tech stack names instead")
@common_options
def history_list(query: str, tech: Optional[str], show_tech: bool, **common):
    """List saved projects, most recent first."""
    ctx = _build_context(common)
    if show_tech:
        for name in ctx.history.tech_filters():
            click.echo(name)
        return
    ctx.formatter.print_history(ctx.history.search(query, tech=tech))


@history.command("show")
@click.argument("project_id", required=False)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["rich", "json", "markdown"], case_sensitive=False),
    default="rich",
    help="Output format (default: rich)",
)
@click.option("--output", "-o", type=click.Path(writable=True), default=None, help="Output file (json/markdown)")
@common_options
def history_show(project_id: Optional[str], output_format: str, output: Optional[str], **common):
    """Show a saved project (default: the most recent)."""
    ctx = _build_context(common)
    saved = ctx.resolve_project(project_id)

    if output_format == "json":
        _emit(ctx.formatter, saved.to_json_dict(), output)
    elif output_format == "markdown":
        if saved.result.stage3 is None:
            _fail(ctx.formatter, "This project has no master prompt")
        if output:
            Path(output).write_text(saved.result.stage3.master_prompt, encoding="utf-8")
            ctx.formatter.print_success(f"Written to: {output}")
        else:
            click.echo(saved.result.stage3.master_prompt)
    else:
        ctx.formatter.console.rule(saved.data.title or saved.id)
        ctx.formatter.print_result(saved.result)


@history.command("delete")
@click.argument("project_id")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation")
@common_options
def history_delete(project_id: str, yes: bool, **common):
    """Delete a saved project."""
    ctx = _build_context(common)
    if not yes and not click.confirm(f"Delete project {project_id}?", default=False):
        return
    if not ctx.history.delete(project_id):
        _fail(ctx.formatter, f"Project not found: {project_id}")
    ctx.formatter.print_success(f"Deleted {project_id}")


@main.command()
@click.argument("project_id", required=False)
@common_options
def terminal(project_id: Optional[str], **common):
    """Open the agent terminal over a saved project (default: the most recent)."""
    ctx = _build_context(common)
    saved = ctx.resolve_project(project_id)

    navigator = Navigator(event_bus=ctx.event_bus)
    navigator.dispatch(OpenProject())
    orchestrator = PipelineOrchestrator(ctx.client, event_bus=ctx.event_bus)
    result = orchestrator.view_saved(saved)
    session = TerminalSession(result, orchestrator.project, refiner=ComponentRefiner(ctx.client), navigator=navigator)

    ctx.formatter.print_lines(list(WELCOME))
    while True:
        line = click.prompt("", prompt_suffix="> ", default="", show_default=False)
        if line.strip().lower() in ("exit", "quit"):
            break
        response = session.execute(line)
        if response.clear:
            ctx.formatter.console.clear()
        else:
            ctx.formatter.print_lines(response.lines, error=response.error)


@main.command()
@click.argument("project_id", required=False)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print raw JSON")
@common_options
def estimate(project_id: Optional[str], as_json: bool, **common):
    """Estimate effort and cost for a saved project."""
    ctx = _build_context(common)
    saved = ctx.resolve_project(project_id)
    try:
        estimation = EstimationAnalyzer(ctx.client).analyze(saved.data)
    except PromptStudioError as e:
        _fail(ctx.formatter, str(e))

    ctx.history.add(saved.model_copy(update={"data": saved.data.model_copy(update={"estimation": estimation})}))
    if as_json:
        ctx.formatter.print_json(estimation.to_json_dict())
    else:
        ctx.formatter.print_estimation(estimation)


@main.command()
@click.argument("project_id", required=False)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print raw JSON")
@common_options
def market(project_id: Optional[str], as_json: bool, **common):
    """Draft a marketing strategy for a saved project."""
    ctx = _build_context(common)
    saved = ctx.resolve_project(project_id)
    try:
        strategy = MarketingAnalyzer(ctx.client).analyze(saved.data)
    except PromptStudioError as e:
        _fail(ctx.formatter, str(e))

    ctx.history.add(
        saved.model_copy(update={"data": saved.data.model_copy(update={"marketing_strategy": strategy})})
    )
    if as_json:
        ctx.formatter.print_json(strategy.to_json_dict())
    else:
        ctx.formatter.print_marketing(strategy)


@main.command()
@click.argument("project_id", required=False)
@click.option("--count", "-n", type=click.IntRange(1, 20), default=5, help="Number of ideas (default: 5)")
@common_options
def brainstorm(project_id: Optional[str], count: int, **common):
    """Suggest features a saved project does not have yet."""
    ctx = _build_context(common)
    saved = ctx.resolve_project(project_id)
    try:
        ideas = FeatureBrainstormer(ctx.client, count=count).analyze(saved.data)
    except PromptStudioError as e:
        _fail(ctx.formatter, str(e))

    if not ideas:
        ctx.formatter.print_info("No new feature ideas.")
    for idea in ideas:
        click.echo(f"• {idea}")


@main.command()
@click.argument("target")
@click.argument("project_id", required=False)
@common_options
def refine(target: str, project_id: Optional[str], **common):
    """
    Get refinement suggestions for one component of a saved project.

    TARGET names a workspace file, an endpoint or a tech choice.
    """
    ctx = _build_context(common)
    saved = ctx.resolve_project(project_id)
    try:
        suggestions = ComponentRefiner(ctx.client).analyze(target, saved.data)
    except PromptStudioError as e:
        _fail(ctx.formatter, str(e))
    ctx.formatter.print_suggestions(suggestions)


@main.command()
@click.argument("source")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print raw JSON")
@common_options
def research(source: str, as_json: bool, **common):
    """Research an existing product (name or URL) before rebuilding it."""
    ctx = _build_context(common)
    try:
        analysis = RebuildResearcher(ctx.client).analyze(source)
    except PromptStudioError as e:
        _fail(ctx.formatter, str(e))

    if as_json:
        ctx.formatter.print_json(analysis.to_json_dict())
    else:
        ctx.formatter.print_rebuild(analysis)


@main.command()
@click.argument("question")
@click.option("--project", "project_id", default=None, help="Ground the answer in this saved project")
@click.option("--latest", is_flag=True, default=False, help="Ground the answer in the most recent project")
@common_options
def ask(question: str, project_id: Optional[str], latest: bool, **common):
    """Ask the architect a question, optionally about a saved project."""
    ctx = _build_context(common)
    result = None
    if project_id or latest:
        result = ctx.resolve_project(project_id).result
    try:
        answer = ArchitectAdvisor(ctx.client).ask(question, result=result)
    except PromptStudioError as e:
        _fail(ctx.formatter, str(e))
    ctx.formatter.print_answer(answer)


@main.command()
@click.argument("prompt")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), default="image.png", help="Output file")
@click.option("--aspect-ratio", "-a", type=click.Choice(IMAGE_ASPECT_RATIOS), default="16:9", help="Aspect ratio")
@click.option("--size", type=click.Choice(IMAGE_SIZES), default="1K", help="Image size")
@common_options
def image(prompt: str, output: str, aspect_ratio: str, size: str, **common):
    """Generate an image from a prompt."""
    ctx = _build_context(common)
    try:
        data = LabStudio(ctx.client).generate_image(prompt, aspect_ratio=aspect_ratio, size=size)
    except PromptStudioError as e:
        _fail(ctx.formatter, str(e))
    Path(output).write_bytes(data)
    ctx.formatter.print_success(f"Image written to: {output}")


@main.command()
@click.argument("image_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("prompt")
@click.option("--aspect-ratio", "-a", type=click.Choice(VIDEO_ASPECT_RATIOS), default="16:9", help="Aspect ratio")
@common_options
def video(image_file: str, prompt: str, aspect_ratio: str, **common):
    """Animate an image into a short video and print its download URL."""
    ctx = _build_context(common)
    path = Path(image_file)
    mime_type = "image/jpeg" if path.suffix.lower() in (".jpg", ".jpeg") else "image/png"
    try:
        with ctx.formatter.console.status("Generating video..."):
            uri = LabStudio(ctx.client).generate_video(
                path.read_bytes(), prompt, aspect_ratio=aspect_ratio, mime_type=mime_type
            )
    except PromptStudioError as e:
        _fail(ctx.formatter, str(e))
    click.echo(uri)


@main.command()
@click.argument("text")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), default="speech.pcm", help="Output file")
@click.option("--voice", default=DEFAULT_VOICE, help=f"Prebuilt voice name (default: {DEFAULT_VOICE})")
@common_options
def speak(text: str, output: str, voice: str, **common):
    """Read text aloud and write raw 24 kHz 16-bit PCM audio."""
    ctx = _build_context(common)
    try:
        audio = LabStudio(ctx.client).speak(text, voice=voice)
    except PromptStudioError as e:
        _fail(ctx.formatter, str(e))
    Path(output).write_bytes(audio)
    ctx.formatter.print_success(f"Audio written to: {output}")


@main.group()
def config():
    """Configuration management commands."""
    pass


@config.command("export")
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default=None,
    help="Output file path (default: stdout)",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["yaml", "json"], case_sensitive=False),
    default="yaml",
    help="Output format (default: yaml)",
)
def config_export(output: Optional[str], format: str):
    """Export current configuration (without the API key)."""
    config_obj = Config.load()

    if output:
        output_path = Path(output)
        config_obj.save(output_path, format=format)
        click.echo(f"Configuration exported to: {output_path}")
    else:
        data = {k: v for k, v in config_obj.to_dict().items() if k != "api_key"}
        if format == "yaml":
            content = yaml.dump(data, default_flow_style=False, sort_keys=False)
        else:
            content = json.dumps(data, indent=2)
        click.echo(content)


@config.command("import")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def config_import(config_file: str):
    """Import configuration from a file into the user config."""
    config_obj = Config()
    config_obj._load_file(Path(config_file))

    user_config_path = CONFIG_HOME / "config.yaml"
    config_obj.save(user_config_path, format="yaml")
    click.echo(f"Configuration imported and saved to: {user_config_path}")


if __name__ == "__main__":
    main()
