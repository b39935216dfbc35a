# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""CLI-specific exception hierarchy.

Provides a structured set of exceptions for CLI error handling,
allowing for consistent error reporting and handling patterns.
"""

from .constants import ExitCode


class CLIError(Exception):
    """Base exception for all CLI-related errors.

    Attributes:
        message: Main error message
        details: Optional list of additional detail lines
        exit_code: Suggested exit code for this error type (class attribute)
    """

    exit_code: int = ExitCode.ERROR

    def __init__(self, message: str, details: list[str] | None = None):
        """Initialize CLI error.

        Args:
            message: Main error message
            details: Optional list of detail lines for user guidance
        """
        self.message = message
        self.details = details or []
        super().__init__(message)

    def format_for_console(self) -> str:
        """Format error message for console output.

        Returns:
            Formatted error message with details
        """
        lines = [f"[red]Error:[/red] {self.message}"]
        if self.details:
            lines.append("")
            for detail in self.details:
                lines.append(f"  • {detail}")
        return "\n".join(lines)


class ConfigurationError(CLIError):
    """Configuration-related errors.

    Raised when there are issues loading or validating configuration files.
    """

    exit_code = ExitCode.CONFIG_ERROR


class InputError(CLIError):
    """Input files that cannot be read or parsed."""

    exit_code = ExitCode.ERROR


class ExpansionFailedError(CLIError):
    """One or more annotated functions could not be expanded."""

    exit_code = ExitCode.EXPANSION_ERROR
