"""Structured logging for Prompt Studio."""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pythonjsonlogger.json import JsonFormatter


class LogLevel(str, Enum):
    """Log level enumeration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _build_formatter(json_output: bool) -> logging.Formatter:
    if json_output:
        return JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
    return logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


class StructuredLogger:
    """
    Structured logger with JSON output support and context tracking.

    Context passed to a log call is attached to the record as extra fields, so
    the JSON formatter emits it as top-level keys. The plain formatter ignores it.
    """

    def __init__(
        self,
        name: str = "promptstudio",
        level: LogLevel = LogLevel.INFO,
        json_output: bool = False,
        log_file: Optional[Path] = None,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            level: Log level
            json_output: If True, output JSON-formatted logs
            log_file: Optional file path to write logs to
        """
        self.name = name
        self.level = level
        self.json_output = json_output
        self.log_file = log_file

        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.value))
        self.logger.propagate = False
        self.logger.handlers.clear()

        formatter = _build_formatter(json_output)

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        if log_file:
            self.add_file_handler(log_file)

    def add_file_handler(self, log_file: Path) -> None:
        """Attach a file handler using the current output format."""
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(_build_formatter(self.json_output))
        self.logger.addHandler(file_handler)
        self.log_file = log_file

    def set_json_output(self, json_output: bool) -> None:
        """Switch every handler between plain and JSON output."""
        self.json_output = json_output
        formatter = _build_formatter(json_output)
        for handler in self.logger.handlers:
            handler.setFormatter(formatter)

    def set_level(self, level: LogLevel) -> None:
        self.level = level
        self.logger.setLevel(getattr(logging, level.value))

    def _log_with_context(
        self,
        level: int,
        message: str,
        context: Optional[dict[str, Any]] = None,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        if context:
            kwargs.update(context)
        self.logger.log(level, message, extra=kwargs or None, exc_info=exc_info)

    def debug(self, message: str, context: Optional[dict[str, Any]] = None, **kwargs: Any) -> None:
        """Log debug message."""
        self._log_with_context(logging.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[dict[str, Any]] = None, **kwargs: Any) -> None:
        """Log info message."""
        self._log_with_context(logging.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[dict[str, Any]] = None, **kwargs: Any) -> None:
        """Log warning message."""
        self._log_with_context(logging.WARNING, message, context, **kwargs)

    def error(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        """Log error message."""
        self._log_with_context(logging.ERROR, message, context, exc_info=exc_info, **kwargs)

    def log_generation_call(
        self,
        profile: str,
        model: str,
        prompt: str,
        response_length: int,
        latency_ms: Optional[float] = None,
        structured: bool = False,
        **kwargs: Any,
    ) -> None:
        """
        Log a call to the generation service with structured metadata.

        Args:
            profile: Model profile the call was made with
            model: Resolved model id
            prompt: Input prompt (only a preview is logged)
            response_length: Length of the returned text, or byte count for binary parts
            latency_ms: Request latency in milliseconds
            structured: Whether a response schema was attached
            **kwargs: Additional metadata
        """
        prompt_preview = prompt[:200] + "..." if len(prompt) > 200 else prompt

        context = {
            "event_type": "generation_call",
            "profile": profile,
            "model": model,
            "prompt_length": len(prompt),
            "prompt_preview": prompt_preview,
            "response_length": response_length,
            "structured": structured,
        }
        if latency_ms is not None:
            context["latency_ms"] = round(latency_ms, 1)
        context.update(kwargs)

        self.info(f"Generation call: {profile}/{model}", context=context)

    def log_pipeline_stage(
        self,
        stage: str,
        status: str,
        duration_ms: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        """
        Log pipeline stage execution.

        Args:
            stage: Stage name (e.g., "system_model", "architecture")
            status: Status ("started", "completed", "failed")
            duration_ms: Stage duration in milliseconds
            **kwargs: Additional metadata
        """
        context = {
            "event_type": "pipeline_stage",
            "stage": stage,
            "status": status,
        }
        if duration_ms is not None:
            context["duration_ms"] = round(duration_ms, 1)
        context.update(kwargs)

        if status == "failed":
            self.error(f"Pipeline stage {stage} failed", context=context)
        elif status == "completed":
            self.info(f"Pipeline stage {stage} completed", context=context)
        else:
            self.info(f"Pipeline stage {stage} started", context=context)

    def log_interview_turn(self, field: str, status: str, **kwargs: Any) -> None:
        """Log an interview transition for a single field."""
        context = {"event_type": "interview_turn", "field": field, "status": status}
        context.update(kwargs)
        if status == "rejected":
            self.warning(f"Interview answer for {field} rejected", context=context)
        else:
            self.debug(f"Interview field {field}: {status}", context=context)


# Global logger instances, keyed by name
_loggers: dict[str, StructuredLogger] = {}
_settings: dict[str, Any] = {
    "level": LogLevel.INFO,
    "json_output": False,
    "log_file": None,
}


def get_logger(name: str = "promptstudio") -> StructuredLogger:
    """
    Get or create a structured logger instance.

    Loggers created before configure_logging() are updated in place when it runs.

    Args:
        name: Logger name

    Returns:
        StructuredLogger instance
    """
    if name not in _loggers:
        _loggers[name] = StructuredLogger(
            name=name,
            level=_settings["level"],
            json_output=_settings["json_output"],
            log_file=_settings["log_file"],
        )
    return _loggers[name]


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> StructuredLogger:
    """
    Configure global logging settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON-formatted logs
        log_file: Optional file path to write logs to

    Returns:
        The root "promptstudio" StructuredLogger
    """
    log_level = LogLevel[level.upper()]
    log_path = Path(log_file) if log_file else None

    _settings["level"] = log_level
    _settings["json_output"] = json_output
    _settings["log_file"] = log_path

    for structured in _loggers.values():
        structured.set_level(log_level)
        structured.set_json_output(json_output)
        if log_path is not None and structured.log_file != log_path:
            structured.add_file_handler(log_path)

    return get_logger("promptstudio")
