# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""testx - setup-injected tests for pytest.

Tests marked with ``@testx`` may take one parameter; its value comes from a
zero-argument ``setup`` function defined next to the test. ``testx expand``
rewrites such tests into plain zero-parameter functions pytest collects
under their original names, without moving any body line.
"""

__version__ = "0.1.0"

from .marker import testx
from .errors import (
    ErrorKind,
    ExpansionError,
    SourceSyntaxError,
    TestxError,
)
from .diagnostics import Diagnostic
from .expander import Expander, ExpansionResult

__all__ = [
    "testx",
    "Expander",
    "ExpansionResult",
    "Diagnostic",
    "ErrorKind",
    "ExpansionError",
    "SourceSyntaxError",
    "TestxError",
]
