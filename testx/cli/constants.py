# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from enum import IntEnum

# ============================================================================
# CLI Names
# ============================================================================

CLI_NAME = "testx"

# ============================================================================
# Environment Variables
# ============================================================================

ENV_CONFIG_FILE = "TESTX_CONFIG"
ENV_NO_PROGRESS = "TESTX_NO_PROGRESS"

# ============================================================================
# Exit Codes
# ============================================================================


class ExitCode(IntEnum):
    SUCCESS = 0
    ERROR = 1
    CONFIG_ERROR = 2
    EXPANSION_ERROR = 3
    INTERRUPTED = 130  # Standard SIGINT exit code
