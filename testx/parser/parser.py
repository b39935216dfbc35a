# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Python source parser for testx.

This module implements the annotated-function parser using tree-sitter to
parse Python files and extract normalized descriptions of every function
definition, grouped into scopes, together with the items carrying the
``@testx`` marker.
"""

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from tree_sitter import Node

from . import grammar
from .data import (
    AnnotatedItem,
    Decorator,
    FunctionDescriptor,
    FunctionKind,
    Parameter,
    ParsedSource,
    Scope,
    SourceLocation,
    Span,
    TypeRef,
    Visibility,
)
from .marker import MarkerHandler
from ..errors import ExpansionError, MalformedInputError, SourceSyntaxError

logger = logging.getLogger(__name__)

# Statements whose blocks do not open a new Python scope
_COMPOUND_STATEMENTS = frozenset({
    "if_statement",
    "for_statement",
    "while_statement",
    "try_statement",
    "with_statement",
    "match_statement",
    "case_clause",
})
_SCOPE_BOUNDARIES = frozenset({
    grammar.FUNCTION_DEFINITION,
    grammar.CLASS_DEFINITION,
    grammar.DECORATED_DEFINITION,
    "lambda",
})


def _text(node: Node) -> str:
    return node.text.decode("utf8")


def _leaf_tokens(node: Node) -> Tuple[str, ...]:
    """Collect the text of every leaf below node, comments excluded."""
    tokens: List[str] = []

    def walk(current: Node) -> None:
        if current.type == grammar.COMMENT:
            return
        if current.child_count == 0:
            if current.end_byte > current.start_byte:
                tokens.append(_text(current))
            return
        for child in current.children:
            walk(child)

    walk(node)
    return tuple(tokens)


class FunctionParser:
    """Parser for Python source files.

    Uses tree-sitter to parse source and extract the information needed to
    expand ``@testx`` functions.

    Attributes:
        parser: tree-sitter Parser instance
        marker_handler: Recognizes and parses the marker decorator
    """

    def __init__(self, marker_name: str = "testx", debug: bool = False):
        """Initializes the FunctionParser.

        Args:
            marker_name: Decorator name identifying testx functions.
            debug: If True, enables detailed debug logging.
        """
        self.debug = debug
        if debug:
            logger.setLevel(logging.DEBUG)

        self.parser = grammar.create_parser()
        self.marker_handler = MarkerHandler(marker_name)

        # Per-parse state
        self.filename: str = "<string>"
        self.source: bytes = b""
        self._marker_errors: Dict[Span, MalformedInputError] = {}

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def parse_file(self, path: Union[str, Path]) -> ParsedSource:
        """Parse a Python file from disk."""
        path = Path(path)
        try:
            content = path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read file {path}: {e}")
            raise
        return self.parse_source(content, str(path))

    def parse_source(self, source: Union[str, bytes], filename: str = "<string>") -> ParsedSource:
        """Parse Python source and collect annotated items.

        Args:
            source: Source text or UTF-8 bytes
            filename: Name used in locations and diagnostics

        Returns:
            ParsedSource with every scope and every marker-decorated item

        Raises:
            SourceSyntaxError: If tree-sitter reports a syntax error
        """
        if isinstance(source, str):
            source = source.encode("utf8")

        self.filename = filename
        self.source = source
        self._marker_errors = {}

        logger.debug(f"Parsing {filename} ({len(source)} bytes)")
        tree = self.parser.parse(source)
        root = tree.root_node

        if root.has_error:
            error_node = self._find_first_error_node(root)
            location = self._location(error_node) if error_node else None
            logger.error(f"Syntax error in {filename} near {location}")
            raise SourceSyntaxError("invalid Python syntax", location)

        parsed = ParsedSource(filename=filename, source=source)
        self._scan_scope(root, owner=None, kind="module", prefix="", parsed=parsed)
        parsed.items.sort(key=lambda item: (item.location.line, item.location.column))

        logger.info(
            f"Parsed {filename}: {len(parsed.scopes)} scopes, "
            f"{len(parsed.items)} annotated items"
        )
        return parsed

    # ------------------------------------------------------------------
    # Scope scanning
    # ------------------------------------------------------------------

    def _scan_scope(
        self,
        body: Node,
        owner: Optional[str],
        kind: str,
        prefix: Optional[str],
        parsed: ParsedSource,
        conditional: bool = False,
    ) -> None:
        """Build the scope for one body and recurse into nested scopes.

        Args:
            body: module or block node
            owner: Name of the enclosing class or function
            kind: "module", "class" or "function"
            prefix: Qualified name prefix ("" for the module), None when
                    definitions in this body are not reachable from the
                    module namespace
            parsed: Accumulator for scopes and annotated items
            conditional: The enclosing class itself is defined inside a
                         guarded block
        """
        functions: List[Tuple[Node, Node, List[Node], bool]] = []
        classes: List[Tuple[Node, Node, List[Node], bool]] = []
        self._collect_definitions(body, functions, classes, guarded=False)

        descriptors = [
            self._build_descriptor(item, definition, decorators, kind, prefix, guarded or conditional)
            for item, definition, decorators, guarded in functions
        ]
        scope = Scope(functions=tuple(descriptors), owner=owner, kind=kind)
        parsed.scopes.append(scope)
        logger.debug(f"Scope {owner or '<module>'} ({kind}): {scope.names()}")

        for descriptor in descriptors:
            if descriptor.is_annotated or descriptor.marker_decorators:
                parsed.items.append(self._annotate(descriptor, scope))

        for item, definition, decorators, guarded in functions:
            name = _text(definition.child_by_field_name("name"))
            self._scan_scope(definition.child_by_field_name("body"), name, "function", None, parsed)

        for item, definition, decorators, guarded in classes:
            name = _text(definition.child_by_field_name("name"))
            marker = next((d for d in decorators if self.marker_handler.is_marker(d)), None)
            if marker is not None:
                location = self._location(definition)
                parsed.items.append(AnnotatedItem(
                    scope=scope,
                    location=location,
                    name=name,
                    error=MalformedInputError(
                        f"'{self.marker_handler.marker_name}' is attached to class '{name}'; "
                        "only functions can be expanded",
                        location,
                    ),
                ))
            if prefix is None:
                class_prefix = None
            else:
                class_prefix = f"{prefix}.{name}" if prefix else name
            self._scan_scope(
                definition.child_by_field_name("body"), name, "class", class_prefix, parsed,
                conditional=guarded or conditional,
            )

    def _collect_definitions(self, body: Node, functions: list, classes: list, guarded: bool) -> None:
        """Collect function and class definitions belonging to the scope of body.

        Blocks of if/for/while/try/with/match statements share the enclosing
        scope, so their definitions are collected too (marked as guarded).
        """
        for child in body.named_children:
            if child.type == grammar.FUNCTION_DEFINITION:
                functions.append((child, child, [], guarded))
            elif child.type == grammar.CLASS_DEFINITION:
                classes.append((child, child, [], guarded))
            elif child.type == grammar.DECORATED_DEFINITION:
                definition = child.child_by_field_name("definition")
                decorators = [c for c in child.named_children if c.type == grammar.DECORATOR]
                if definition is None:
                    continue
                if definition.type == grammar.FUNCTION_DEFINITION:
                    functions.append((child, definition, decorators, guarded))
                elif definition.type == grammar.CLASS_DEFINITION:
                    classes.append((child, definition, decorators, guarded))
            elif child.type in _COMPOUND_STATEMENTS:
                for block in self._nested_blocks(child):
                    self._collect_definitions(block, functions, classes, guarded=True)

    def _nested_blocks(self, node: Node) -> Iterator[Node]:
        """Yield the blocks of a compound statement, including its clauses."""
        for child in node.named_children:
            if child.type == grammar.BLOCK:
                yield child
            elif child.type not in _SCOPE_BOUNDARIES:
                yield from self._nested_blocks(child)

    # ------------------------------------------------------------------
    # Descriptor extraction
    # ------------------------------------------------------------------

    def _build_descriptor(
        self,
        item: Node,
        definition: Node,
        decorator_nodes: List[Node],
        scope_kind: str,
        prefix: Optional[str],
        guarded: bool,
    ) -> FunctionDescriptor:
        """Extract a FunctionDescriptor from a (possibly decorated) function node."""
        name = _text(definition.child_by_field_name("name"))
        location = self._location(definition)

        decorators: List[Decorator] = []
        markers: List[Decorator] = []
        marker_nodes: List[Node] = []
        for node in decorator_nodes:
            decorator = Decorator(
                text=_text(node),
                span=Span(node.start_byte, node.end_byte),
                location=self._location(node),
            )
            if self.marker_handler.is_marker(node):
                markers.append(decorator)
                marker_nodes.append(node)
            else:
                decorators.append(decorator)

        kind = self._function_kind(scope_kind, decorators)
        parameters = self._extract_parameters(definition.child_by_field_name("parameters"))
        receiver = None
        if kind.has_receiver and parameters and not parameters[0].variadic:
            receiver, parameters = parameters[0], parameters[1:]

        return_node = definition.child_by_field_name("return_type")
        type_params_node = definition.child_by_field_name("type_parameters")
        body = definition.child_by_field_name("body")
        colon = self._signature_colon(definition, body)
        first_statement = self._first_statement(body)
        inline_body = first_statement.start_point[0] == colon.end_point[0]

        if prefix is None:
            qualname = None
        else:
            qualname = f"{prefix}.{name}" if prefix else name

        header = Span(item.start_byte, colon.end_byte)
        marker_args = None
        if len(marker_nodes) == 1:
            # Argument errors surface when the item is annotated
            try:
                marker_args = self.marker_handler.parse(marker_nodes[0], location)
            except MalformedInputError as e:
                self._marker_errors[header] = e

        return FunctionDescriptor(
            name=name,
            visibility=Visibility.for_name(name),
            parameters=tuple(parameters),
            return_type=self._type_ref(return_node),
            body=Span(body.start_byte, body.end_byte),
            location=location,
            kind=kind,
            receiver=receiver,
            is_async=bool(definition.children) and definition.children[0].type == grammar.ASYNC,
            decorators=tuple(decorators),
            marker=marker_args,
            marker_decorators=tuple(markers),
            type_parameters=_text(type_params_node) if type_params_node is not None else None,
            header=header,
            inline_body=inline_body,
            body_indent="" if inline_body else self._indent_of(first_statement),
            qualname=qualname,
            guarded=guarded,
        )

    def _annotate(self, descriptor: FunctionDescriptor, scope: Scope) -> AnnotatedItem:
        """Check that a marker-decorated function can be expanded at all."""
        location, name = descriptor.location, descriptor.name
        try:
            self._check_annotated(descriptor)
        except ExpansionError as e:
            logger.debug(f"Rejected {name}: {e}")
            return AnnotatedItem(scope=scope, location=location, name=name, error=e)
        return AnnotatedItem(scope=scope, location=location, name=name, descriptor=descriptor)

    def _check_annotated(self, descriptor: FunctionDescriptor) -> None:
        marker_name = self.marker_handler.marker_name
        location = descriptor.location

        if len(descriptor.marker_decorators) > 1:
            raise MalformedInputError(f"'{marker_name}' is applied more than once", location)

        if descriptor.marker is None:
            raise self._marker_errors.get(
                descriptor.header,
                MalformedInputError(f"invalid '{marker_name}' marker", location),
            )

        if descriptor.kind in (FunctionKind.STATICMETHOD, FunctionKind.CLASSMETHOD):
            raise MalformedInputError(
                f"'{marker_name}' cannot be applied to a {descriptor.kind.value}", location
            )

        variadic = [p for p in descriptor.parameters if p.variadic]
        if variadic:
            raise MalformedInputError(
                f"variadic parameter '{variadic[0].text}' is not supported", location
            )

    def _function_kind(self, scope_kind: str, decorators: List[Decorator]) -> FunctionKind:
        if scope_kind != "class":
            return FunctionKind.FUNCTION
        expressions = {decorator.expression for decorator in decorators}
        if "staticmethod" in expressions:
            return FunctionKind.STATICMETHOD
        if "classmethod" in expressions:
            return FunctionKind.CLASSMETHOD
        return FunctionKind.METHOD

    def _extract_parameters(self, parameters: Optional[Node]) -> List[Parameter]:
        """Extract Parameter objects from a parameters node (separators skipped)."""
        result: List[Parameter] = []
        if parameters is None:
            return result

        for node in parameters.named_children:
            if node.type in grammar.SEPARATOR_TYPES or node.type == grammar.COMMENT:
                continue
            if node.type not in grammar.PARAMETER_TYPES:
                logger.debug(f"Treating unexpected parameter node '{node.type}' as untyped")

            annotation = None
            variadic = node.type in (grammar.LIST_SPLAT_PATTERN, grammar.DICTIONARY_SPLAT_PATTERN)
            name_node = node.child_by_field_name("name")

            if node.type == grammar.TYPED_PARAMETER:
                annotation = self._type_ref(node.child_by_field_name("type"))
                name_node = node.named_children[0]
                variadic = name_node.type in (grammar.LIST_SPLAT_PATTERN, grammar.DICTIONARY_SPLAT_PATTERN)
            elif node.type == grammar.TYPED_DEFAULT_PARAMETER:
                annotation = self._type_ref(node.child_by_field_name("type"))

            if name_node is None:
                name_node = node
            name = _text(name_node).lstrip("*")

            result.append(Parameter(
                name=name,
                annotation=annotation,
                text=_text(node),
                location=self._location(node),
                variadic=variadic,
            ))
        return result

    def _type_ref(self, node: Optional[Node]) -> Optional[TypeRef]:
        if node is None:
            return None
        return TypeRef(text=_text(node), tokens=_leaf_tokens(node))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _signature_colon(self, definition: Node, body: Node) -> Node:
        """Find the ':' token that ends the signature."""
        colon = None
        for child in definition.children:
            if child.start_byte >= body.start_byte:
                break
            if child.type == ":":
                colon = child
        if colon is None:
            raise SourceSyntaxError("function definition without ':'", self._location(definition))
        return colon

    def _first_statement(self, body: Node) -> Node:
        return next((c for c in body.named_children if c.type != grammar.COMMENT), body)

    def _indent_of(self, node: Node) -> str:
        """Leading whitespace of the line node starts on."""
        line_start = self.source.rfind(b"\n", 0, node.start_byte) + 1
        return self.source[line_start:node.start_byte].decode("utf8")

    def _location(self, node: Node) -> SourceLocation:
        # tree-sitter columns are byte offsets; report characters
        line_start = self.source.rfind(b"\n", 0, node.start_byte) + 1
        column = len(self.source[line_start:node.start_byte].decode("utf8", errors="replace"))
        return SourceLocation(self.filename, node.start_point[0] + 1, column + 1)

    def _find_first_error_node(self, node: Node) -> Optional[Node]:
        """Depth-first search for the first ERROR or missing node."""
        if node.type == "ERROR" or node.is_missing:
            return node
        for child in node.children:
            found = self._find_first_error_node(child)
            if found is not None:
                return found
        return None
