"""Prompt Studio: scope a software project and compile a master prompt for AI coding agents."""

__version__ = "0.1.0"
