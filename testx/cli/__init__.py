# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Command line interface for testx.

    testx expand tests/            rewrite annotated tests in place
    testx expand tests/ -o build   write expanded copies under build/
    testx check tests/             report errors only
    testx info tests/test_math.py  show how each test expands
"""

from .cli import create_cli, main

__all__ = ["create_cli", "main"]
