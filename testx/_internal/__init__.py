# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Internal utilities for testx.

This package contains private implementation details that are not part of
the public API and may change without notice.

Modules:
- logging: Logging configuration
- yaml: YAML loading for configuration files
"""
