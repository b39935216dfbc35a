# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Diagnostic records produced by expansion.

A diagnostic is the reportable form of an error attributed to one annotated
function (or, for syntax errors, to a whole file):

    tests/test_math.py:12:1: error[TypeMismatch]: parameter 'num' ...
    tests/test_math.py:4:1: note: 'setup' declared here
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .errors import ExpansionError, SourceSyntaxError
from .parser.data import SourceLocation

SYNTAX_ERROR_KIND = "SyntaxError"


@dataclass(frozen=True)
class Diagnostic:
    """One reported failure.

    Attributes:
        kind: Error kind name (e.g. "MissingSetup")
        message: Human readable description
        location: Where the failure is attributed, None if unknown
        notes: Related locations with a short message
    """
    kind: str
    message: str
    location: Optional[SourceLocation] = None
    notes: Tuple[Tuple[str, SourceLocation], ...] = field(default_factory=tuple)

    @classmethod
    def from_error(cls, error: Exception) -> "Diagnostic":
        """Build a diagnostic from an expansion or syntax error."""
        if isinstance(error, ExpansionError):
            return cls(
                kind=error.kind.value,
                message=error.message,
                location=error.location,
                notes=tuple(error.notes),
            )
        if isinstance(error, SourceSyntaxError):
            return cls(kind=SYNTAX_ERROR_KIND, message=error.message, location=error.location)
        return cls(kind=type(error).__name__, message=str(error))

    def format(self) -> str:
        prefix = f"{self.location}: " if self.location else ""
        lines = [f"{prefix}error[{self.kind}]: {self.message}"]
        for message, location in self.notes:
            lines.append(f"{location}: note: {message}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format()


def format_diagnostics(diagnostics: Iterable[Diagnostic]) -> str:
    """Render diagnostics in order, one per line plus its notes."""
    return "\n".join(d.format() for d in diagnostics)


def count_by_kind(diagnostics: Iterable[Diagnostic]) -> List[Tuple[str, int]]:
    """Diagnostic counts per kind, most frequent first."""
    counts = {}
    for diagnostic in diagnostics:
        counts[diagnostic.kind] = counts.get(diagnostic.kind, 0) + 1
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))
