# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import logging
from pathlib import Path

import click

from testx.expander import Expander, ExpansionResult

from ..context import ApplicationContext
from ..exceptions import ExpansionFailedError, InputError
from ..messages import EXPANSION_ERROR_HINTS, NOTHING_TO_EXPAND, STRICT_SKIP_HINT
from ..utils import print_diagnostics, progress_spinner, success, tip, warning

logger = logging.getLogger(__name__)


def _root_for(path: Path, roots: tuple[Path, ...]) -> Path | None:
    """The directory argument a collected file was found under."""
    resolved = path.resolve()
    for root in roots:
        if root.is_dir() and resolved.is_relative_to(root.resolve()):
            return root
    return None


def run_expansion(ctx: ApplicationContext, paths: tuple[Path, ...], config) -> list[ExpansionResult]:
    """Expand paths with the given configuration."""
    expander = Expander.from_config(config)
    try:
        with progress_spinner("Expanding tests...", no_progress=ctx.no_progress):
            return expander.expand_paths(paths, jobs=config.jobs, include=config.include)
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Failed to read input: {e}") from e


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--output-dir", "-o", type=click.Path(file_okay=False, path_type=Path),
              help="Directory where expanded files will be saved (default: rewrite in place)")
@click.option("--no-strict", is_flag=True,
              help="Write files even when some of their tests failed to expand")
@click.option("--jobs", "-j", type=click.IntRange(min=1),
              help="Number of files to expand in parallel")
@click.option("--include", type=str,
              help="Glob selecting files inside directories (default: test_*.py)")
@click.pass_obj
def expand(
    ctx: ApplicationContext,
    paths: tuple[Path, ...],
    output_dir: Path | None,
    no_strict: bool,
    jobs: int | None,
    include: str | None,
) -> None:
    """Rewrite @testx functions into plain pytest tests.

    PATHS: Python files or directories to expand
    """
    config = ctx.get_effective_config(
        output_dir=output_dir,
        strict=False if no_strict else None,
        jobs=jobs,
        include=include,
    )
    results = run_expansion(ctx, paths, config)

    written = 0
    skipped = 0
    expanded = 0
    diagnostics = []

    for result in results:
        print_diagnostics(result.diagnostics)
        diagnostics.extend(result.diagnostics)

        if result.diagnostics and config.strict:
            logger.info(f"Not writing {result.filename}: {len(result.diagnostics)} error(s)")
            skipped += 1
            continue

        source = Path(result.filename)
        target = config.resolve_output(source, _root_for(source, paths))
        if target == source and not result.changed:
            continue

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(result.source, encoding="utf-8")
        logger.debug(f"Wrote {target}")
        written += 1
        expanded += len(result.emitted)

    if not results or (not expanded and not diagnostics):
        warning(NOTHING_TO_EXPAND)
    else:
        success(f"Expanded {expanded} test(s), wrote {written} file(s)")

    if skipped:
        tip(STRICT_SKIP_HINT)

    if diagnostics:
        raise ExpansionFailedError(
            f"{len(diagnostics)} function(s) could not be expanded",
            details=EXPANSION_ERROR_HINTS,
        )
