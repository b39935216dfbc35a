# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""User-facing messages and strings for CLI output.

Centralizes all UI text to separate presentation from business logic.
"""

# ============================================================================
# Package Metadata
# ============================================================================

PACKAGE_NAME = "testx"

# ============================================================================
# Expansion Messages
# ============================================================================

STRICT_SKIP_HINT = "Files with errors were left unchanged; rerun with --no-strict to write them anyway"
NOTHING_TO_EXPAND = "No @testx functions found"

EXPANSION_ERROR_HINTS = [
    "A test may take at most one parameter, supplied by a sibling 'setup' function",
    "The parameter annotation must match the setup return annotation exactly",
    "The setup function must not take parameters",
]

# ============================================================================
# Error Detail Messages
# ============================================================================

SYNTAX_ERROR_HINT = "Fix the syntax error; files that do not parse are never expanded"
CONFIG_ERROR_HINT = "Check testx.yaml and TESTX_* environment variables"
