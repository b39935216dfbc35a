# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Expansion driver.

Runs the parse, resolve, validate and synthesize stages for every annotated
function of a source file, splices the emitted headers into the source and
appends the runner discovery footer.

A failure on one function is recorded as a diagnostic and leaves that
function's text untouched; its siblings are still expanded.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Union

from .diagnostics import Diagnostic
from .errors import ExpansionError, SourceSyntaxError
from .parser import FunctionParser
from .plan import RequiresSetup
from .resolver import DEFAULT_SETUP_NAME, SetupLookup, SetupResolver
from .synthesizer import CodeSynthesizer, EmittedDefinition
from .validator import SignatureValidator

if TYPE_CHECKING:
    from .settings import ExpansionConfig

logger = logging.getLogger(__name__)

DEFAULT_MARKER = "testx"
DEFAULT_INCLUDE = "test_*.py"


@dataclass
class ExpansionResult:
    """Outcome of expanding one source file.

    Attributes:
        filename: Name of the expanded file
        original: Input source text
        source: Expanded source text
        emitted: Emitted definitions in source order
        diagnostics: Failures, one per rejected function (or file)
    """
    filename: str
    original: str
    source: str
    emitted: List[EmittedDefinition] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    @property
    def changed(self) -> bool:
        return self.source != self.original


class Expander:
    """Expands ``@testx`` functions into runner-compatible definitions.

    Args:
        marker_name: Decorator name identifying annotated tests
        setup_name: Default name of the setup function
        lookup: Setup lookup used by the resolver (defaults to scope lookup)
    """

    def __init__(
        self,
        marker_name: str = DEFAULT_MARKER,
        setup_name: str = DEFAULT_SETUP_NAME,
        lookup: Optional[SetupLookup] = None,
    ):
        self.marker_name = marker_name
        self.resolver = SetupResolver(lookup=lookup, setup_name=setup_name)
        self.validator = SignatureValidator()
        self.synthesizer = CodeSynthesizer()

    @classmethod
    def from_config(cls, config: "ExpansionConfig") -> "Expander":
        return cls(marker_name=config.marker, setup_name=config.setup_name)

    def expand_source(self, source: Union[str, bytes], filename: str = "<string>") -> ExpansionResult:
        """Expand every annotated function of a source text.

        Raises:
            SourceSyntaxError: If the source is not valid Python
        """
        if isinstance(source, str):
            source = source.encode("utf8")

        # One parser per call, so concurrent expansions share nothing
        parser = FunctionParser(marker_name=self.marker_name)
        parsed = parser.parse_source(source, filename)

        emitted: List[EmittedDefinition] = []
        diagnostics: List[Diagnostic] = []
        setups = set()

        for item in parsed.items:
            if item.error is not None:
                logger.warning(str(item.error))
                diagnostics.append(Diagnostic.from_error(item.error))
                continue

            try:
                plan = self.resolver.resolve(item.descriptor, item.scope)
                plan = self.validator.validate(plan)
                emitted.append(self.synthesizer.synthesize(plan, parsed.source))
            except ExpansionError as e:
                logger.warning(str(e))
                diagnostics.append(Diagnostic.from_error(e))
                continue

            if isinstance(plan, RequiresSetup):
                setups.add(plan.setup.location)

        # A marked function that feeds another test is a setup, not a test
        supplying = [e.name for e in emitted if e.location in setups]
        if supplying:
            logger.info(f"{filename}: used as setup, no discovery mark: {supplying}")

        text = self._splice(parsed.source, emitted).decode("utf8")
        footer = self.synthesizer.render_discovery(
            e for e in emitted if e.location not in setups
        )
        if footer:
            if text and not text.endswith("\n"):
                text += "\n"
            text += footer

        unreachable = [e.name for e in emitted if e.qualname is None]
        if unreachable:
            logger.info(f"{filename}: not reachable from module scope, no discovery mark: {unreachable}")

        logger.info(f"{filename}: expanded {len(emitted)} tests, {len(diagnostics)} errors")
        return ExpansionResult(
            filename=filename,
            original=source.decode("utf8"),
            source=text,
            emitted=emitted,
            diagnostics=diagnostics,
        )

    def expand_file(self, path: Union[str, Path]) -> ExpansionResult:
        """Expand a UTF-8 source file."""
        path = Path(path)
        return self.expand_source(path.read_bytes(), str(path))

    def expand_paths(
        self,
        paths: Sequence[Union[str, Path]],
        jobs: int = 1,
        include: str = DEFAULT_INCLUDE,
    ) -> List[ExpansionResult]:
        """Expand files and directories, optionally in parallel.

        Syntax errors reject only the affected file; it is reported as a
        result with one diagnostic and its source unchanged.

        Returns:
            Results in the order the files were collected
        """
        files = collect_files(paths, include)
        logger.info(f"Expanding {len(files)} files with {jobs} job(s)")

        if jobs > 1 and len(files) > 1:
            results: List[Optional[ExpansionResult]] = [None] * len(files)
            with ThreadPoolExecutor(max_workers=jobs) as executor:
                futures = {
                    executor.submit(self._expand_checked, path): i
                    for i, path in enumerate(files)
                }
                for future in as_completed(futures):
                    results[futures[future]] = future.result()
            return results

        return [self._expand_checked(path) for path in files]

    def _expand_checked(self, path: Path) -> ExpansionResult:
        try:
            return self.expand_file(path)
        except SourceSyntaxError as e:
            original = path.read_text(encoding="utf-8")
            return ExpansionResult(
                filename=str(path),
                original=original,
                source=original,
                diagnostics=[Diagnostic.from_error(e)],
            )

    @staticmethod
    def _splice(source: bytes, emitted: Iterable[EmittedDefinition]) -> bytes:
        """Replace header spans back to front so earlier offsets stay valid."""
        out = bytearray(source)
        for definition in sorted(emitted, key=lambda d: d.span.start, reverse=True):
            out[definition.span.start:definition.span.end] = definition.header_text.encode("utf8")
        return bytes(out)


def collect_files(paths: Iterable[Union[str, Path]], include: str = DEFAULT_INCLUDE) -> List[Path]:
    """Resolve files and directories into a sorted, de-duplicated file list.

    Files given explicitly are always included; directories are searched
    recursively for names matching ``include``.
    """
    files: List[Path] = []
    seen = set()
    for entry in paths:
        entry = Path(entry)
        if entry.is_dir():
            candidates = sorted(p for p in entry.rglob(include) if p.is_file())
        elif entry.exists():
            candidates = [entry]
        else:
            raise FileNotFoundError(f"No such file or directory: {entry}")
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                files.append(candidate)
    return files
