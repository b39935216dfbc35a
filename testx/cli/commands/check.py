# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from pathlib import Path

import click
from rich.table import Table

from testx.diagnostics import count_by_kind

from ..context import ApplicationContext
from ..exceptions import ExpansionFailedError
from ..messages import EXPANSION_ERROR_HINTS
from ..utils import console, format_status, print_diagnostics, success
from .expand import run_expansion


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--include", type=str,
              help="Glob selecting files inside directories (default: test_*.py)")
@click.pass_obj
def check(ctx: ApplicationContext, paths: tuple[Path, ...], include: str | None) -> None:
    """Report expansion errors without writing any file.

    PATHS: Python files or directories to check
    """
    config = ctx.get_effective_config(include=include)
    results = run_expansion(ctx, paths, config)

    table = Table(title="testx check")
    table.add_column("File", style="cyan")
    table.add_column("Tests", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Status")

    diagnostics = []
    for result in results:
        diagnostics.extend(result.diagnostics)
        table.add_row(
            result.filename,
            str(len(result.emitted)),
            str(len(result.diagnostics)),
            format_status("ok" if result.ok else "failed", result.ok),
        )

    console.print(table)
    print_diagnostics(diagnostics)

    if diagnostics:
        summary = ", ".join(f"{kind}: {count}" for kind, count in count_by_kind(diagnostics))
        raise ExpansionFailedError(
            f"{len(diagnostics)} function(s) could not be expanded ({summary})",
            details=EXPANSION_ERROR_HINTS,
        )

    success(f"All annotated tests in {len(results)} file(s) can be expanded")
