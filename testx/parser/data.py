# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Data structures for the annotated-function parser.

This module defines the normalized description of Python function definitions
extracted from the tree-sitter syntax tree: source locations, type references,
parameters, decorators, function descriptors and the scopes they live in.

All structures are immutable; a descriptor refers back to the source only
through byte spans, so the original text can be spliced verbatim.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class SourceLocation:
    """1-based line/column position inside a source file."""
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Span:
    """Half-open byte range [start, end) into the source."""
    start: int
    end: int

    def slice(self, source: bytes) -> bytes:
        return source[self.start:self.end]


class Visibility(Enum):
    """Visibility of a definition, derived from Python naming conventions."""
    DEFAULT = "default"     # single leading underscore, module private
    EXPORTED = "exported"

    @classmethod
    def for_name(cls, name: str) -> "Visibility":
        if name.startswith("_") and not name.startswith("__"):
            return cls.DEFAULT
        return cls.EXPORTED


class FunctionKind(Enum):
    """Where and how a function is bound."""
    FUNCTION = "function"           # module level or nested in a function body
    METHOD = "method"               # instance method, first parameter is the receiver
    STATICMETHOD = "staticmethod"
    CLASSMETHOD = "classmethod"     # first parameter is the class receiver

    @property
    def has_receiver(self) -> bool:
        return self in (FunctionKind.METHOD, FunctionKind.CLASSMETHOD)


@dataclass(frozen=True, eq=False)
class TypeRef:
    """A type annotation as written by the author.

    Two references are equal when their token sequences are equal, so
    ``Tuple[int,str]`` and ``Tuple[int, str]`` match while ``int`` and
    ``"int"`` do not.
    """
    text: str
    tokens: Tuple[str, ...]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeRef):
            return NotImplemented
        return self.tokens == other.tokens

    def __hash__(self) -> int:
        return hash(self.tokens)

    @property
    def is_single_line(self) -> bool:
        return "\n" not in self.text

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Parameter:
    """A single entry of a parameter list.

    Attributes:
        name: Parameter identifier (without ``*``/``**`` prefixes)
        annotation: Declared type, if any
        text: Raw source text of the parameter
        location: Position of the parameter
        variadic: True for ``*args`` and ``**kwargs``
    """
    name: str
    annotation: Optional[TypeRef]
    text: str
    location: SourceLocation
    variadic: bool = False


@dataclass(frozen=True)
class Decorator:
    """A decorator attached to a definition."""
    text: str
    span: Span
    location: SourceLocation

    @property
    def expression(self) -> str:
        """Decorator expression without the leading ``@``."""
        return self.text.lstrip("@").strip()


@dataclass(frozen=True)
class MarkerArgs:
    """Arguments given to the testx marker.

    Attributes:
        setup_name: Setup function named explicitly with ``setup=...``;
                    None selects the configured default name.
        no_setup: ``no_setup=True`` was given; the test never gets a setup
    """
    setup_name: Optional[str] = None
    no_setup: bool = False


@dataclass(frozen=True)
class FunctionDescriptor:
    """Normalized description of a function definition.

    Attributes:
        name: Function identifier
        visibility: DEFAULT or EXPORTED
        parameters: Parameters visible to callers (receiver excluded)
        return_type: Declared return type, if any
        body: Byte span of the body block
        location: Position of the ``def`` keyword (or ``async``)
        kind: Binding kind (function, method, static/class method)
        receiver: The ``self``/``cls`` parameter of methods
        is_async: Declared with ``async def``
        decorators: Decorators other than the testx marker
        marker: Marker arguments when the function is annotated
        marker_decorators: The marker decorators themselves
        type_parameters: Raw PEP 695 type parameter list, if any
        header: Byte span from the first decorator through the signature colon
        inline_body: Body written on the same line as the colon
        body_indent: Leading whitespace of the first body line
        qualname: Dotted name reachable from the module namespace, None when
                  the function is nested inside another function
        guarded: Defined, or reached through a class defined, inside an
                 if/for/while/try/with/match block, so the name may be
                 unbound at run time
    """
    name: str
    visibility: Visibility
    parameters: Tuple[Parameter, ...]
    return_type: Optional[TypeRef]
    body: Span
    location: SourceLocation
    kind: FunctionKind = FunctionKind.FUNCTION
    receiver: Optional[Parameter] = None
    is_async: bool = False
    decorators: Tuple[Decorator, ...] = ()
    marker: Optional[MarkerArgs] = None
    marker_decorators: Tuple[Decorator, ...] = ()
    type_parameters: Optional[str] = None
    header: Span = Span(0, 0)
    inline_body: bool = False
    body_indent: str = ""
    qualname: Optional[str] = None
    guarded: bool = False

    @property
    def is_annotated(self) -> bool:
        return self.marker is not None

    @property
    def arity(self) -> int:
        return len(self.parameters)


@dataclass(frozen=True)
class Scope:
    """Sibling function definitions sharing one enclosing body.

    Attributes:
        functions: Descriptors in source order
        owner: Name of the enclosing class or function, None for the module
        kind: "module", "class" or "function"
    """
    functions: Tuple[FunctionDescriptor, ...] = ()
    owner: Optional[str] = None
    kind: str = "module"

    def lookup(self, name: str) -> Optional[FunctionDescriptor]:
        """Find a function by exact name; the last definition wins."""
        found = None
        for function in self.functions:
            if function.name == name:
                found = function
        return found

    def names(self) -> List[str]:
        return [function.name for function in self.functions]

    def __iter__(self) -> Iterator[FunctionDescriptor]:
        return iter(self.functions)

    def __len__(self) -> int:
        return len(self.functions)


@dataclass(frozen=True)
class AnnotatedItem:
    """A marker-decorated item found by the parser.

    Exactly one of ``descriptor`` and ``error`` is set: the descriptor when the
    item could be normalized, the MalformedInputError otherwise.
    """
    scope: Scope
    location: SourceLocation
    name: str
    descriptor: Optional[FunctionDescriptor] = None
    error: Optional[Exception] = None


@dataclass
class ParsedSource:
    """Result of parsing one source file."""
    filename: str
    source: bytes
    items: List[AnnotatedItem] = field(default_factory=list)
    scopes: List[Scope] = field(default_factory=list)

    @property
    def descriptors(self) -> List[FunctionDescriptor]:
        return [item.descriptor for item in self.items if item.descriptor is not None]
