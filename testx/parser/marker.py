# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Marker processing for the annotated-function parser.

Handles the recognition and argument parsing of the ``@testx`` decorator
(e.g. ``@testx``, ``@testx.testx``, ``@testx(setup="setup_666")``,
``@testx(no_setup=True)``).
"""

import ast
import keyword
import logging
from typing import Optional

from tree_sitter import Node

from . import grammar
from .data import MarkerArgs, SourceLocation
from ..errors import MalformedInputError

logger = logging.getLogger(__name__)

SETUP_KEYWORD = "setup"
NO_SETUP_KEYWORD = "no_setup"


def _text(node: Node) -> str:
    return node.text.decode("utf8")


class MarkerHandler:
    """Recognizes the marker decorator and validates its arguments."""

    def __init__(self, marker_name: str = "testx"):
        self.marker_name = marker_name

    def _expression(self, decorator: Node) -> Optional[Node]:
        for child in decorator.named_children:
            if child.type != grammar.COMMENT:
                return child
        return None

    def _is_marker_callee(self, node: Node) -> bool:
        """True for ``testx`` or a dotted name ending in ``.testx``."""
        if node.type == grammar.IDENTIFIER:
            return _text(node) == self.marker_name
        if node.type == grammar.ATTRIBUTE:
            attribute = node.child_by_field_name("attribute")
            obj = node.child_by_field_name("object")
            return (
                attribute is not None
                and _text(attribute) == self.marker_name
                and obj is not None
                and obj.type in (grammar.IDENTIFIER, grammar.ATTRIBUTE)
            )
        return False

    def is_marker(self, decorator: Node) -> bool:
        """Check whether a decorator node is the testx marker."""
        expression = self._expression(decorator)
        if expression is None:
            return False
        if expression.type == grammar.CALL:
            function = expression.child_by_field_name("function")
            return function is not None and self._is_marker_callee(function)
        return self._is_marker_callee(expression)

    def parse(self, decorator: Node, location: SourceLocation) -> MarkerArgs:
        """Parse the marker arguments.

        Args:
            decorator: A decorator node for which is_marker() is True
            location: Location of the annotated item, used for errors

        Returns:
            MarkerArgs with the explicit setup name, if any, and the
            ``no_setup`` opt-out

        Raises:
            MalformedInputError: For positional arguments, unknown keywords,
                                 repeated keywords, values that do not name
                                 a function in the same scope, or ``setup``
                                 combined with ``no_setup=True``.
        """
        expression = self._expression(decorator)
        if expression is None or expression.type != grammar.CALL:
            return MarkerArgs()

        arguments = expression.child_by_field_name("arguments")
        values = {}

        for argument in arguments.named_children if arguments is not None else []:
            if argument.type == grammar.COMMENT:
                continue
            if argument.type != grammar.KEYWORD_ARGUMENT:
                raise MalformedInputError(
                    f"unsupported attribute for {self.marker_name}: '{_text(argument)}'",
                    location,
                )
            key = _text(argument.child_by_field_name("name"))
            if key not in (SETUP_KEYWORD, NO_SETUP_KEYWORD):
                raise MalformedInputError(
                    f"unsupported attribute for {self.marker_name}: '{key}'",
                    location,
                )
            if key in values:
                raise MalformedInputError(
                    f"attribute '{key}' given more than once",
                    location,
                )
            values[key] = argument.child_by_field_name("value")

        setup_name: Optional[str] = None
        no_setup = False
        if SETUP_KEYWORD in values:
            setup_name = self._setup_name(values[SETUP_KEYWORD], location)
        if NO_SETUP_KEYWORD in values:
            no_setup = self._flag(NO_SETUP_KEYWORD, values[NO_SETUP_KEYWORD], location)
        if no_setup and setup_name is not None:
            raise MalformedInputError(
                f"'{SETUP_KEYWORD}' and '{NO_SETUP_KEYWORD}' cannot be combined",
                location,
            )

        if no_setup:
            logger.debug(f"Marker at {location} opts out of setup")
        else:
            logger.debug(f"Marker at {location} selects setup '{setup_name or '<default>'}'")
        return MarkerArgs(setup_name=setup_name, no_setup=no_setup)

    def _flag(self, key: str, value: Node, location: SourceLocation) -> bool:
        if value.type == grammar.TRUE:
            return True
        if value.type == grammar.FALSE:
            return False
        raise MalformedInputError(
            f"'{key}' must be True or False, got '{_text(value)}'",
            location,
        )

    def _setup_name(self, value: Node, location: SourceLocation) -> str:
        """Extract the setup function name from an identifier or string literal."""
        if value.type == grammar.IDENTIFIER:
            return _text(value)

        if value.type == grammar.NONE:
            raise MalformedInputError(
                f"'{SETUP_KEYWORD}' must name a function in the same scope, got 'None'; "
                f"use '{NO_SETUP_KEYWORD}=True' to opt out of setup",
                location,
            )

        if value.type == grammar.STRING:
            try:
                name = ast.literal_eval(_text(value))
            except (ValueError, SyntaxError):
                name = None
            if isinstance(name, str) and name.isidentifier() and not keyword.iskeyword(name):
                return name

        raise MalformedInputError(
            f"'{SETUP_KEYWORD}' must name a function in the same scope, got '{_text(value)}'",
            location,
        )
