# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Annotated-function parser for testx.

This package parses Python source with tree-sitter and extracts normalized
descriptions of function definitions, grouped into scopes, together with the
functions carrying the ``@testx`` marker.
"""

from .data import (
    AnnotatedItem,
    Decorator,
    FunctionDescriptor,
    FunctionKind,
    MarkerArgs,
    Parameter,
    ParsedSource,
    Scope,
    SourceLocation,
    Span,
    TypeRef,
    Visibility,
)
from .parser import FunctionParser

__all__ = [
    "FunctionParser",
    "AnnotatedItem",
    "Decorator",
    "FunctionDescriptor",
    "FunctionKind",
    "MarkerArgs",
    "Parameter",
    "ParsedSource",
    "Scope",
    "SourceLocation",
    "Span",
    "TypeRef",
    "Visibility",
]
