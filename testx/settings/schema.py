# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""testx configuration schema using Pydantic.

Configuration Priority
----------------------
Settings are loaded from multiple sources with the following priority (highest to lowest):
1. CLI arguments (passed to ExpansionConfig constructor)
2. Environment variables (TESTX_* prefix, TESTX_LOGGING__LEVEL for nested fields)
3. Project config file (testx.yaml, found by walking up from the working directory)
4. Built-in defaults (Field defaults in ExpansionConfig)

Example testx.yaml:

    marker: testx
    setup_name: setup
    output_dir: build/expanded
    include: "test_*.py"
    jobs: 4
    logging:
      level: info
"""

import keyword
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from testx._internal.yaml import expand_env_vars, load_yaml

PROJECT_CONFIG_FILE = "testx.yaml"
LOG_LEVELS = ("error", "warning", "info", "debug")


def _find_project_config() -> Path | None:
    """Find project configuration file with upward directory walk.

    Search order:
    1. If TESTX_PROJECT_DIR is set, check that directory only
    2. Otherwise, walk up from CWD to find testx.yaml

    Returns:
        Path to config file, or None if not found
    """
    if project_dir_override := os.environ.get("TESTX_PROJECT_DIR"):
        candidate = Path(project_dir_override).resolve() / PROJECT_CONFIG_FILE
        return candidate if candidate.exists() else None

    current = Path.cwd().resolve()
    while True:
        candidate = current / PROJECT_CONFIG_FILE
        if candidate.exists():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Settings source reading the project testx.yaml."""

    def __init__(self, settings_cls: type[BaseSettings], config_file: Path | None = None):
        super().__init__(settings_cls)
        if config_file is not None:
            if not Path(config_file).exists():
                raise FileNotFoundError(f"Config file not found: {config_file}")
            self.config_file = Path(config_file)
        else:
            self.config_file = _find_project_config()
        self._data = self._load() if self.config_file else {}

    def _load(self) -> dict[str, Any]:
        """Load the YAML file with environment variables expanded.

        Raises:
            yaml.YAMLError: If the config file has syntax errors
        """
        try:
            return expand_env_vars(load_yaml(self.config_file))
        except yaml.YAMLError as e:
            if hasattr(e, "problem_mark"):
                mark = e.problem_mark
                location = f"line {mark.line + 1}, column {mark.column + 1}"
            else:
                location = "unknown location"
            raise yaml.YAMLError(
                f"Invalid YAML in config file: {self.config_file}\n"
                f"Error at {location}: {getattr(e, 'problem', None) or e}"
            ) from e

    def get_field_value(self, field_name: str, field_info: Any) -> tuple[Any, str, bool]:
        """Get field value from YAML source."""
        if field_name in self._data:
            return self._data[field_name], field_name, True
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        return self._data.copy()


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="warning", description="Console verbosity: error | warning | info | debug"
    )

    model_config = ConfigDict(extra="forbid")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        if v.lower() not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return v.lower()


class ExpansionConfig(BaseSettings):
    """Configuration schema with hierarchical priority.

    Priority order (highest to lowest):
    1. CLI arguments (passed to constructor)
    2. Environment variables (TESTX_* prefix)
    3. Project config (testx.yaml)
    4. Built-in defaults
    """

    marker: str = Field(default="testx", description="Decorator name marking tests to expand")
    setup_name: str = Field(
        default="setup", description="Default name of the sibling setup function"
    )
    output_dir: Path | None = Field(
        default=None,
        description="Directory receiving expanded files (None rewrites files in place)",
    )
    strict: bool = Field(
        default=True,
        description="Refuse to write a file when any of its tests failed to expand",
    )
    jobs: int = Field(default=1, ge=1, description="Number of files expanded in parallel")
    include: str = Field(
        default="test_*.py", description="Glob selecting files when a directory is given"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    config_file: Path | None = Field(
        default=None, exclude=True, description="Explicit config file instead of testx.yaml"
    )

    model_config = SettingsConfigDict(
        env_prefix="TESTX_",
        env_nested_delimiter="__",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False,
        env_file=None,  # Config files are handled by YamlSettingsSource
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources.

        Priority order (first source wins):
        1. Init settings (CLI/constructor args)
        2. Environment variables (TESTX_*)
        3. YAML file (testx.yaml or the explicit config_file)
        4. Field defaults
        """
        config_file = init_settings().get("config_file")
        return (
            init_settings,
            env_settings,
            YamlSettingsSource(settings_cls, config_file=config_file),
        )

    @field_validator("marker", "setup_name")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        if not v.isidentifier() or keyword.iskeyword(v):
            raise ValueError(f"'{v}' is not a valid Python identifier")
        return v

    def resolve_output(self, path: Path, root: Path | None = None) -> Path:
        """Where the expanded version of path is written.

        Without output_dir files are rewritten in place. Otherwise the path
        relative to root (the directory that was expanded) is kept.
        """
        if self.output_dir is None:
            return path
        if root is not None and root.is_dir():
            try:
                return self.output_dir / path.resolve().relative_to(root.resolve())
            except ValueError:
                pass
        return self.output_dir / path.name
