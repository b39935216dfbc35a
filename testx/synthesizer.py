# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Code synthesizer for expanded test functions.

Renders the replacement header of an annotated test from a validated plan.
Only the header (first decorator through the signature colon) is replaced;
the body is left byte for byte where it was, so every body line keeps its
original line number and column.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from jinja2 import Environment, FileSystemLoader

from .parser.data import FunctionDescriptor, FunctionKind, SourceLocation, Span, Visibility
from .plan import ExpansionPlan, RequiresSetup

logger = logging.getLogger(__name__)

_CONTINUATION = re.compile(r"\s*\n\s*")


def one_line(text: Optional[str]) -> Optional[str]:
    """Join an expression written over several lines, if that is safe.

    Newlines inside brackets are plain whitespace, so they can be collapsed
    unless the text holds comments, backslashes or triple-quoted strings.
    """
    if text is None or "\n" not in text:
        return text
    if "#" in text or "\\" in text or '"""' in text or "'''" in text:
        return None
    return _CONTINUATION.sub(" ", text)


def presence_check(qualname: str) -> str:
    """Expression that is true when ``qualname`` is bound at module scope.

    ``TestThing.check`` becomes
    ``"TestThing" in globals() and hasattr(TestThing, "check")``.
    """
    head, *rest = qualname.split(".")
    checks = [f'"{head}" in globals()']
    path = head
    for part in rest:
        checks.append(f'hasattr({path}, "{part}")')
        path = f"{path}.{part}"
    return " and ".join(checks)


@dataclass(frozen=True)
class EmittedDefinition:
    """The synthesized replacement for one annotated test.

    Attributes:
        name: Original test name
        visibility: Original visibility
        qualname: Name reachable from the module namespace, if any
        span: Header span of the original definition
        header_text: Replacement text for ``span``
        text: Full emitted definition (header and untouched body)
        location: Location of the original test
        setup_name: Setup function bound in the header, None for NoSetup
        guarded: The name is bound only if a surrounding block ran
    """
    name: str
    visibility: Visibility
    qualname: Optional[str]
    span: Span
    header_text: str
    text: str
    location: SourceLocation
    setup_name: Optional[str] = None
    guarded: bool = False

    @property
    def requires_setup(self) -> bool:
        return self.setup_name is not None


class CodeSynthesizer:
    """Renders emitted definitions from validated plans."""

    def __init__(self, template_dir: Optional[Path] = None):
        if template_dir is None:
            template_dir = Path(__file__).parent / "templates"

        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True
        )

    def synthesize(self, plan: ExpansionPlan, source: bytes) -> EmittedDefinition:
        """Produce the emitted definition for a validated plan.

        Args:
            plan: Plan that passed signature validation
            source: Source bytes the plan's spans refer to

        Returns:
            EmittedDefinition whose header occupies as many lines as the
            original header
        """
        test = plan.test
        original = test.header.slice(source).decode("utf8")
        newlines = original.count("\n")

        decorators = [d.text for d in test.decorators]
        decorator_lines = sum(text.count("\n") + 1 for text in decorators)

        binding = self._binding(plan) if isinstance(plan, RequiresSetup) else None
        binding_lines = 1 if binding and not test.inline_body else 0
        padding = newlines - decorator_lines - binding_lines
        if padding < 0:
            raise RuntimeError(
                f"{test.location}: replacement header for '{test.name}' does not fit "
                f"the original {newlines + 1} lines"
            )

        template = self.env.get_template("header.py.j2")
        header_text = template.render(
            lines=decorators + [""] * padding + [self._signature(test)],
            indent=self._line_indent(source, test.header.start),
            binding=binding,
            inline=test.inline_body,
            body_indent=test.body_indent,
        ).rstrip("\n")

        if header_text.count("\n") != newlines:
            raise RuntimeError(
                f"{test.location}: rendered header for '{test.name}' spans "
                f"{header_text.count(chr(10)) + 1} lines, expected {newlines + 1}"
            )

        body = source[test.header.end:test.body.end].decode("utf8")
        logger.debug(f"Synthesized {test.name} ({padding} padding lines)")

        return EmittedDefinition(
            name=test.name,
            visibility=test.visibility,
            qualname=test.qualname,
            span=test.header,
            header_text=header_text,
            text=header_text + body,
            location=test.location,
            setup_name=plan.setup.name if isinstance(plan, RequiresSetup) else None,
            guarded=test.guarded,
        )

    def render_discovery(self, definitions: Iterable[EmittedDefinition]) -> str:
        """Render the footer marking emitted tests for the runner.

        Definitions without a qualname cannot be addressed from module scope
        and are skipped. Guarded definitions are marked only if their name
        is bound when the footer runs.
        """
        marks = [
            {
                "qualname": d.qualname,
                "condition": presence_check(d.qualname) if d.guarded else None,
            }
            for d in definitions
            if d.qualname is not None
        ]
        if not marks:
            return ""
        return self.env.get_template("discovery.py.j2").render(marks=marks)

    def _signature(self, test: FunctionDescriptor) -> str:
        parts: List[str] = []
        if test.is_async:
            parts.append("async ")
        parts.append(f"def {test.name}")

        type_parameters = one_line(test.type_parameters)
        return_type = one_line(test.return_type.text) if test.return_type else None
        if test.type_parameters and type_parameters is None:
            # The return annotation may refer to the dropped type parameters
            return_type = None
        if type_parameters:
            parts.append(type_parameters)

        receiver = ""
        if test.receiver is not None:
            receiver = one_line(test.receiver.text) or test.receiver.name
        parts.append(f"({receiver})")

        if return_type:
            parts.append(f" -> {return_type}")
        parts.append(":")
        return "".join(parts)

    def _binding(self, plan: RequiresSetup) -> str:
        test, setup, parameter = plan.test, plan.setup, plan.parameter

        call = f"{setup.name}()"
        if test.kind == FunctionKind.METHOD and test.receiver is not None:
            call = f"{test.receiver.name}.{call}"
        if test.is_async and setup.is_async:
            call = f"await {call}"

        annotation = one_line(parameter.annotation.text) if parameter.annotation else None
        if annotation:
            return f"{parameter.name}: {annotation} = {call}"
        return f"{parameter.name} = {call}"

    @staticmethod
    def _line_indent(source: bytes, offset: int) -> str:
        line_start = source.rfind(b"\n", 0, offset) + 1
        return source[line_start:offset].decode("utf8")
