"""Prompt templates shipped as package data."""

from pathlib import Path

PROMPTS_DIR = Path(__file__).parent


def load_template(name: str) -> str:
    """Load a prompt template by file stem, e.g. ``load_template("system_model")``."""
    return (PROMPTS_DIR / f"{name}.txt").read_text(encoding="utf-8")
