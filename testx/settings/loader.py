# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Configuration loading and management for testx."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional
from unittest.mock import patch

import yaml
from pydantic import ValidationError
from rich.console import Console

from ..errors import ConfigurationError
from .schema import ExpansionConfig

console = Console(stderr=True)


def load_config(
    config_file: Optional[Path] = None,
    **cli_overrides: Any
) -> ExpansionConfig:
    """Load configuration with hierarchical priority.

    Priority order (highest to lowest):
    1. CLI arguments (passed as kwargs, None values ignored)
    2. Environment variables (TESTX_* prefix)
    3. Project config file (testx.yaml, or config_file when given)
    4. Built-in defaults

    Special handling:
    - TESTX_LOG_LEVEL env var overrides logging.level (shorthand for TESTX_LOGGING__LEVEL)
    - Relative output_dir given on the CLI resolves to the current directory

    Raises:
        ConfigurationError: If the config file is missing or invalid, or a
                            value fails validation
    """
    overrides: Dict[str, Any] = {k: v for k, v in cli_overrides.items() if v is not None}

    if overrides.get("output_dir") is not None:
        overrides["output_dir"] = (Path.cwd() / Path(overrides["output_dir"])).resolve()

    if "logging" not in overrides and "TESTX_LOG_LEVEL" in os.environ:
        overrides["logging"] = {"level": os.environ["TESTX_LOG_LEVEL"]}

    if config_file is not None:
        overrides["config_file"] = Path(config_file)

    try:
        return ExpansionConfig(**overrides)
    except ValidationError as e:
        console.print("[bold red]Configuration validation failed:[/bold red]")
        for error in e.errors():
            field = " → ".join(str(x) for x in error["loc"])
            console.print(f"  [red]{field}: {error['msg']}[/red]")
        raise ConfigurationError(f"Invalid configuration: {e.error_count()} error(s)") from e
    except (FileNotFoundError, yaml.YAMLError) as e:
        raise ConfigurationError(str(e)) from e


@lru_cache(maxsize=1)
def get_config() -> ExpansionConfig:
    """Get cached configuration instance."""
    return load_config()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()


def get_default_config() -> ExpansionConfig:
    """Get a configuration instance with only default values (no files or env vars)."""
    filtered_env = {
        k: v for k, v in os.environ.items()
        if not k.startswith('TESTX_')
    }

    with patch.dict(os.environ, filtered_env, clear=True):
        return ExpansionConfig(config_file=Path(os.devnull))
