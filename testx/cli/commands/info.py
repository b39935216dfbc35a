# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from pathlib import Path

import click
from rich.table import Table

from testx.errors import SourceSyntaxError
from testx.expander import Expander

from ..context import ApplicationContext
from ..exceptions import InputError
from ..messages import SYNTAX_ERROR_HINT
from ..utils import console, format_status


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--show-source", is_flag=True, help="Print the expanded source after the table")
@click.pass_obj
def info(ctx: ApplicationContext, file: Path, show_source: bool) -> None:
    """Display the annotated tests of FILE and how each one expands."""
    config = ctx.get_effective_config()
    expander = Expander.from_config(config)

    try:
        result = expander.expand_file(file)
    except SourceSyntaxError as e:
        raise InputError(str(e), details=[SYNTAX_ERROR_HINT]) from e

    table = Table(title=str(file))
    table.add_column("Line", justify="right")
    table.add_column("Test", style="cyan")
    table.add_column("Setup")
    table.add_column("Status")

    rows = []
    for emitted in result.emitted:
        rows.append((
            emitted.location.line,
            emitted.qualname or emitted.name,
            emitted.setup_name or "-",
            format_status("ok", True),
        ))
    for diagnostic in result.diagnostics:
        rows.append((
            diagnostic.location.line if diagnostic.location else 0,
            diagnostic.message,
            "-",
            format_status(diagnostic.kind, False),
        ))

    for line, name, setup, status in sorted(rows, key=lambda row: row[0]):
        table.add_row(str(line), name, setup, status)

    console.print(table)

    if show_source:
        console.print(result.source, markup=False, highlight=False)
