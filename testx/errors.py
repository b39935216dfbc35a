# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Error handling for testx.

Structured hierarchy: every error raised by the expansion engine derives from
TestxError. Expansion failures carry an ErrorKind and the source location of
the offending test function so they can be reported as diagnostics.
"""

from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

if TYPE_CHECKING:
    from .parser.data import SourceLocation


class ErrorKind(Enum):
    """Kinds of expansion failures."""
    MALFORMED_INPUT = "MalformedInput"
    AMBIGUOUS_PARAMETER_COUNT = "AmbiguousParameterCount"
    MISSING_SETUP = "MissingSetup"
    SETUP_HAS_ARGUMENTS = "SetupHasArguments"
    TYPE_MISMATCH = "TypeMismatch"


class TestxError(Exception):
    """Base exception for all testx errors."""
    __test__ = False


class SourceSyntaxError(TestxError):
    """Raised when the input is not valid Python source."""

    def __init__(self, message: str, location: Optional["SourceLocation"] = None):
        self.message = message
        self.location = location
        super().__init__(f"{location}: {message}" if location else message)


class ConfigurationError(TestxError):
    """Error in configuration or CLI arguments."""
    pass


class ExpansionError(TestxError):
    """A single annotated function could not be expanded.

    Attributes:
        kind: Error kind from the taxonomy
        message: Human readable description
        location: Location of the annotated test function
        notes: Related locations (e.g. the setup declaration) with a message
    """

    kind: ErrorKind = ErrorKind.MALFORMED_INPUT

    def __init__(
        self,
        message: str,
        location: "SourceLocation",
        notes: Optional[List[Tuple[str, "SourceLocation"]]] = None,
    ):
        self.message = message
        self.location = location
        self.notes = notes or []
        super().__init__(f"{location}: {self.kind.value}: {message}")


class MalformedInputError(ExpansionError):
    """Marker attached to something that cannot be expanded."""
    kind = ErrorKind.MALFORMED_INPUT


class AmbiguousParameterCountError(ExpansionError):
    """Test function declares two or more parameters."""
    kind = ErrorKind.AMBIGUOUS_PARAMETER_COUNT


class MissingSetupError(ExpansionError):
    """One-parameter test without a sibling setup function."""
    kind = ErrorKind.MISSING_SETUP


class SetupHasArgumentsError(ExpansionError):
    """The located setup function declares parameters."""
    kind = ErrorKind.SETUP_HAS_ARGUMENTS


class TypeMismatchError(ExpansionError):
    """Test parameter type differs from the setup return type."""
    kind = ErrorKind.TYPE_MISMATCH
