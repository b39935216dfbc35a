# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Handles Python grammar loading and node type constants for tree-sitter.

This module centralizes the tree-sitter grammar loading logic and defines
constants for the node types used by the parser.

Grammar Source: the ``tree-sitter-python`` distribution ships the compiled
grammar as an extension module exposing ``language()``, which returns the
pointer capsule the tree-sitter Python binding wraps into a Language object.
"""

import logging
from functools import lru_cache

import tree_sitter_python
from tree_sitter import Language, Parser

logger = logging.getLogger(__name__)

# Node types
MODULE = "module"
BLOCK = "block"
COMMENT = "comment"
CLASS_DEFINITION = "class_definition"
FUNCTION_DEFINITION = "function_definition"
DECORATED_DEFINITION = "decorated_definition"
DECORATOR = "decorator"
CALL = "call"
ATTRIBUTE = "attribute"
IDENTIFIER = "identifier"
STRING = "string"
KEYWORD_ARGUMENT = "keyword_argument"
ASYNC = "async"
TRUE = "true"
FALSE = "false"
NONE = "none"

# Parameter node types
TYPED_PARAMETER = "typed_parameter"
DEFAULT_PARAMETER = "default_parameter"
TYPED_DEFAULT_PARAMETER = "typed_default_parameter"
LIST_SPLAT_PATTERN = "list_splat_pattern"
DICTIONARY_SPLAT_PATTERN = "dictionary_splat_pattern"
KEYWORD_SEPARATOR = "keyword_separator"
POSITIONAL_SEPARATOR = "positional_separator"

PARAMETER_TYPES = frozenset({
    IDENTIFIER,
    TYPED_PARAMETER,
    DEFAULT_PARAMETER,
    TYPED_DEFAULT_PARAMETER,
    LIST_SPLAT_PATTERN,
    DICTIONARY_SPLAT_PATTERN,
})
SEPARATOR_TYPES = frozenset({KEYWORD_SEPARATOR, POSITIONAL_SEPARATOR})


@lru_cache(maxsize=1)
def load_language() -> Language:
    """Load the tree-sitter Python grammar.

    Returns:
        A tree-sitter Language object.

    Raises:
        RuntimeError: If the grammar cannot be turned into a Language.
    """
    try:
        language = Language(tree_sitter_python.language())
    except Exception as e:
        logger.exception(f"Failed to load Python grammar: {e}")
        raise RuntimeError(f"Failed to load grammar: {e}") from e
    logger.debug("Python grammar loaded")
    return language


def create_parser() -> Parser:
    """Create a fresh parser bound to the Python grammar.

    Parsers hold per-parse state, so callers that expand files concurrently
    must each use their own instance.
    """
    return Parser(load_language())
