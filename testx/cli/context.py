# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from __future__ import annotations  # PEP 563: Postponed evaluation of annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .exceptions import ConfigurationError
from .messages import CONFIG_ERROR_HINT

# Type hints only - settings imported lazily inside methods
if TYPE_CHECKING:
    from testx.settings import ExpansionConfig

logger = logging.getLogger(__name__)


@dataclass
class ApplicationContext:
    """CLI execution context with ExpansionConfig loading and CLI argument handling."""

    no_progress: bool = False
    config_file: Path | None = None
    overrides: dict[str, Any] = field(default_factory=dict)

    # Loaded configuration
    config: "ExpansionConfig | None" = None

    @classmethod
    def from_cli_args(
        cls,
        config_file: Path | None,
        log_level: str | None,
        no_progress: bool,
    ) -> "ApplicationContext":
        """Create context from CLI arguments and perform all initialization.

        Args:
            config_file: Path to config file override
            log_level: Logging level, None to use the configured level
            no_progress: Disable progress indicators

        Returns:
            Initialized ApplicationContext with loaded configuration
        """
        from testx._internal.logging import setup_logging

        context = cls(config_file=config_file, no_progress=no_progress)
        if log_level:
            context.overrides["logging"] = {"level": log_level}

        context.load_configuration()
        setup_logging(level=context.config.logging.level)
        logger.debug(f"testx CLI initialized with logs={context.config.logging.level}, no_progress={no_progress}")

        return context

    def load_configuration(self, **extra_overrides: Any) -> None:
        from testx.errors import ConfigurationError as SettingsError
        from testx.settings import load_config

        try:
            self.config = load_config(
                config_file=self.config_file,
                **{**self.overrides, **extra_overrides}
            )
        except SettingsError as e:
            raise ConfigurationError(str(e), details=[CONFIG_ERROR_HINT]) from e

    def get_effective_config(self, **command_overrides: Any) -> "ExpansionConfig":
        """Configuration with command-level options applied (None means unset)."""
        command_overrides = {k: v for k, v in command_overrides.items() if v is not None}
        if command_overrides or not self.config:
            self.load_configuration(**command_overrides)
        return self.config
