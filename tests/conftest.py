# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Shared pytest fixtures for the testx test suite."""

import logging
import os
from textwrap import dedent

import pytest

from testx.expander import Expander
from testx.parser import FunctionParser
from testx.settings import reset_config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Run every test from an empty directory with no TESTX_* variables.

    Project config discovery walks up from the working directory, so this
    keeps a developer's testx.yaml or environment out of the tests.
    """
    for key in list(os.environ):
        if key.startswith("TESTX_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def reset_logging():
    """Reset logging system between tests."""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)


@pytest.fixture
def parser():
    return FunctionParser()


@pytest.fixture
def expander():
    return Expander()


@pytest.fixture
def parse(parser):
    """Parse dedented source text."""
    def _parse(source: str, filename: str = "sample.py"):
        return parser.parse_source(dedent(source), filename)
    return _parse


@pytest.fixture
def expand(expander):
    """Expand dedented source text."""
    def _expand(source: str, filename: str = "sample.py"):
        return expander.expand_source(dedent(source), filename)
    return _expand


@pytest.fixture
def sample_source():
    """The canonical setup-injected test."""
    return dedent("""\
        from testx import testx


        def setup() -> int:
            return 4711


        @testx
        def sample(num: int):
            assert num == 4711
        """)


@pytest.fixture
def write_file(tmp_path):
    """Write dedented source under tmp_path and return its path."""
    def _write(name: str, source: str):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dedent(source), encoding="utf-8")
        return path
    return _write
