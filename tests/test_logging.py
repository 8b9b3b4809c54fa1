"""Tests for structured logging output."""

import json

from pythonjsonlogger.json import JsonFormatter

from promptstudio.core.logging import LogLevel, StructuredLogger


def close(structured):
    for handler in list(structured.logger.handlers):
        handler.close()
        structured.logger.removeHandler(handler)


class TestStructuredLogger:
    def test_json_lines_carry_context(self, tmp_path):
        log_file = tmp_path / "logs" / "studio.log"
        structured = StructuredLogger(
            name="promptstudio.tests.json", level=LogLevel.DEBUG, json_output=True, log_file=log_file
        )
        try:
            structured.log_pipeline_stage("architecture", "completed", duration_ms=12.34)
        finally:
            close(structured)

        record = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
        assert record["level"] == "INFO"
        assert record["message"] == "Pipeline stage architecture completed"
        assert record["stage"] == "architecture"
        assert record["duration_ms"] == 12.3
        assert "timestamp" in record

    def test_switching_output_format(self, tmp_path):
        structured = StructuredLogger(name="promptstudio.tests.switch", log_file=tmp_path / "studio.log")
        try:
            assert not any(isinstance(h.formatter, JsonFormatter) for h in structured.logger.handlers)
            structured.set_json_output(True)
            assert all(isinstance(h.formatter, JsonFormatter) for h in structured.logger.handlers)
        finally:
            close(structured)

    def test_plain_output_is_not_json(self, tmp_path):
        log_file = tmp_path / "studio.log"
        structured = StructuredLogger(name="promptstudio.tests.plain", log_file=log_file)
        try:
            structured.warning("Answer rejected", context={"field": "title"})
        finally:
            close(structured)

        line = log_file.read_text(encoding="utf-8").strip()
        assert " - promptstudio.tests.plain - WARNING - Answer rejected" in line
