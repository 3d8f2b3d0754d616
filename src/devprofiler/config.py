"""Configuration management for devprofiler."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FILENAME = "devprofiler.jsonl.gz"


class ProfilerConfig(BaseModel):
    """Settings for one profiling run."""

    output_path: Path = Field(
        default=Path(DEFAULT_OUTPUT_FILENAME),
        description="Output file; relative paths resolve against the working directory",
    )
    root_commit_policy: Literal["skip", "include"] = Field(
        default="skip",
        description=(
            "What to do with commits that have no parent: 'skip' leaves them out "
            "of the export, 'include' exports them diffed against the empty tree"
        ),
    )
    missing_author_policy: Literal["fail", "sentinel"] = Field(
        default="fail",
        description=(
            "What to do with a commit whose author name or email is missing: "
            "'fail' aborts the run, 'sentinel' exports the hash of '<unknown>'"
        ),
    )
    walk_order: Literal["native", "topo", "date", "reverse"] = Field(
        default="native",
        description="Commit traversal order passed to git rev-list",
    )
    workers: int = Field(
        default=1,
        description="Threads computing diffs; output order is unaffected",
    )
    unknown_language: str = Field(
        default="None",
        description="Language value exported for files with no detected language",
    )
    language_mappings_path: Optional[Path] = Field(
        default=None,
        description="Optional YAML file of extra language -> extension mappings",
    )

    @field_validator("workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("workers must be at least 1")
        if v > 64:
            raise ValueError("workers must not exceed 64")
        return v

    @field_validator("output_path")
    @classmethod
    def validate_output_path(cls, v: Path) -> Path:
        if not str(v).strip() or v.name in ("", ".", ".."):
            raise ValueError("output_path must name a file")
        return v


class ConfigManager:
    """Loads profiler configuration from a JSON file."""

    DEFAULT_CONFIG_PATH = Path(".devprofiler/config.json")

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self._config: Optional[ProfilerConfig] = None

    @classmethod
    def create_with_backtrack(cls, start_dir: Optional[Path] = None) -> "ConfigManager":
        """Find .devprofiler/config.json by walking up from start_dir."""
        current = (start_dir or Path.cwd()).resolve()

        while True:
            candidate = current / cls.DEFAULT_CONFIG_PATH
            if candidate.exists():
                logger.debug(f"Using config file {candidate}")
                return cls(candidate)
            if current == current.parent:
                break
            current = current.parent

        return cls((start_dir or Path.cwd()) / cls.DEFAULT_CONFIG_PATH)

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> ProfilerConfig:
        """Load configuration, applying non-None overrides on top of the file.

        Args:
            overrides: Values (typically from CLI options) that win over the file

        Raises:
            ConfigurationError: If the file cannot be parsed or fails validation
        """
        data: Dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigurationError(
                    f"Failed to load config from {self.config_path}", str(e)
                )
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"Config file {self.config_path} must contain a JSON object"
                )

            # Relative paths in the file are relative to the file itself
            mappings = data.get("language_mappings_path")
            if mappings and not Path(mappings).is_absolute():
                data["language_mappings_path"] = str(
                    self.config_path.parent / mappings
                )

        if overrides:
            data.update({k: v for k, v in overrides.items() if v is not None})

        try:
            self._config = ProfilerConfig(**data)
        except ValidationError as e:
            raise ConfigurationError("Invalid configuration", str(e))

        return self._config

    def get_config(self) -> ProfilerConfig:
        """Get the loaded configuration, loading it on first use."""
        if self._config is None:
            return self.load()
        return self._config
