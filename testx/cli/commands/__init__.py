# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""testx CLI commands.

This module provides the single source of truth for CLI command registration.
Command mappings are used by cli.py's LazyGroup for lazy loading.
"""

# Format: 'command_name': (relative_module, attribute_name)
_COMMAND_REGISTRY = {
    "expand": (".expand", "expand"),
    "check": (".check", "check"),
    "info": (".info", "info"),
}

COMMAND_MAP = {
    name: (f"testx.cli.commands{module}", attr)
    for name, (module, attr) in _COMMAND_REGISTRY.items()
}

__all__ = [
    "COMMAND_MAP",
]
