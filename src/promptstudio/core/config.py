"""Configuration management for Prompt Studio."""

import json
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from promptstudio.core.logging import get_logger

logger = get_logger("promptstudio.config")

CONFIG_HOME = Path.home() / ".promptstudio"


class Config:
    """Configuration manager with hierarchy: CLI args > project config > user config > env > defaults."""

    def __init__(self):
        """Initialize configuration with default values."""
        self.api_key: Optional[str] = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
        # Model profile name -> model id overrides, e.g. {"deep_reasoning": "gemini-2.5-pro"}
        self.models: dict[str, str] = {}
        self.timeout: float = 120.0
        self.max_retries: int = 2
        self.reasoning_budget: int = 2000
        self.requests_per_minute: float = 30.0
        self.history_file: Optional[str] = None
        self.history_capacity: int = 20
        self.video_poll_interval: float = 10.0
        self.video_max_polls: int = 60
        self.video_max_wait: float = 600.0
        self.log_level: str = "INFO"
        self.json_logging: bool = False
        self.log_file: Optional[str] = None

    @classmethod
    def load(cls, cli_args: Optional[dict[str, Any]] = None, config_file: Optional[Path] = None) -> "Config":
        """
        Load configuration from hierarchy: CLI args > explicit file > project config > user config.

        Args:
            cli_args: Dictionary of CLI arguments to override config
            config_file: Optional explicit configuration file (YAML or JSON)

        Returns:
            Config instance with loaded values
        """
        config = cls()

        user_config_path = CONFIG_HOME / "config.yaml"
        if user_config_path.exists():
            config._load_file(user_config_path)

        project_config_path = Path.cwd() / ".promptstudio.yaml"
        if project_config_path.exists():
            config._load_file(project_config_path)

        if config_file is not None:
            config._load_file(config_file)

        if cli_args:
            for key, value in cli_args.items():
                if value is not None:
                    setattr(config, key, value)

        return config

    def _load_file(self, config_path: Path) -> None:
        """Load configuration from a YAML or JSON file."""
        try:
            content = config_path.read_text(encoding="utf-8")
            if config_path.suffix in [".yaml", ".yml"]:
                data = yaml.safe_load(content)
            elif config_path.suffix == ".json":
                data = json.loads(content)
            else:
                logger.warning(f"Ignoring config file with unknown format: {config_path}")
                return
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read config file {config_path}: {e}")
            return

        if not isinstance(data, dict):
            return

        for key, value in data.items():
            if hasattr(self, key) and value is not None:
                setattr(self, key, value)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "api_key": self.api_key,
            "models": dict(self.models),
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "reasoning_budget": self.reasoning_budget,
            "requests_per_minute": self.requests_per_minute,
            "history_file": self.history_file,
            "history_capacity": self.history_capacity,
            "video_poll_interval": self.video_poll_interval,
            "video_max_polls": self.video_max_polls,
            "video_max_wait": self.video_max_wait,
            "log_level": self.log_level,
            "json_logging": self.json_logging,
            "log_file": self.log_file,
        }

    def save(self, path: Path, format: str = "yaml", include_secrets: bool = False) -> None:
        """
        Save configuration to file.

        Args:
            path: Path to save config file
            format: Format to save as ('yaml' or 'json')
            include_secrets: If False, the API key is left out
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {k: v for k, v in self.to_dict().items() if v is not None}
        if not include_secrets:
            data.pop("api_key", None)

        if format == "yaml":
            content = yaml.dump(data, default_flow_style=False, sort_keys=False)
        else:
            content = json.dumps(data, indent=2)

        path.write_text(content, encoding="utf-8")

    def get_history_file(self) -> Path:
        """Get the project history file path, creating its directory if needed."""
        if self.history_file:
            file_path = Path(self.history_file)
        else:
            file_path = CONFIG_HOME / "history.json"
        file_path.parent.mkdir(parents=True, exist_ok=True)
        return file_path
