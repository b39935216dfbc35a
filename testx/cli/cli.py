# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import logging
import sys
from pathlib import Path

import click

from .constants import CLI_NAME, ENV_CONFIG_FILE, ENV_NO_PROGRESS, ExitCode
from .context import ApplicationContext
from .utils import err_console

logger = logging.getLogger(__name__)


def _version_callback(ctx, param, value):
    if not value or ctx.resilient_parsing:
        return
    import importlib.metadata
    from .messages import PACKAGE_NAME
    try:
        version = importlib.metadata.version(PACKAGE_NAME)
    except importlib.metadata.PackageNotFoundError:
        from testx import __version__ as version
    click.echo(f"{CLI_NAME}, version {version}")
    ctx.exit()


class LazyGroup(click.Group):
    def __init__(self, *args, lazy_commands=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.lazy_commands = lazy_commands or {}

    def list_commands(self, ctx):
        lazy_names = set(self.lazy_commands.keys())
        manual_names = set(super().list_commands(ctx))
        return sorted(lazy_names | manual_names)

    def get_command(self, ctx, name):
        if name in self.lazy_commands:
            from importlib import import_module
            module_path, attr_name = self.lazy_commands[name]
            module = import_module(module_path)
            return getattr(module, attr_name)

        return super().get_command(ctx, name)


def create_cli() -> click.Group:
    from testx.cli.commands import COMMAND_MAP

    @click.pass_context
    def callback(
        ctx: click.Context,
        config: Path | None,
        log_level: str | None,
        no_progress: bool
    ) -> None:
        ctx.obj = ApplicationContext.from_cli_args(
            config_file=config,
            log_level=log_level,
            no_progress=no_progress,
        )

    cli = LazyGroup(
        name=CLI_NAME,
        callback=callback,
        context_settings={"help_option_names": ["-h", "--help"]},
        lazy_commands=dict(COMMAND_MAP)
    )

    cli.params.append(click.Option(
        ["-c", "--config"],
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        envvar=ENV_CONFIG_FILE,
        help="Use this configuration file instead of testx.yaml"
    ))
    cli.params.append(click.Option(
        ["-l", "--log-level"],
        type=click.Choice(["error", "warning", "info", "debug"]),
        default=None,
        metavar="LEVEL",
        help="Set log verbosity (error|warning|info|debug)"
    ))
    cli.params.append(click.Option(
        ["--no-progress"],
        is_flag=True,
        envvar=ENV_NO_PROGRESS,
        help="Disable progress spinners"
    ))
    cli.params.append(click.Option(
        ["--version"],
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=_version_callback,
        help="Show the version and exit."
    ))

    cli.help = """testx - Expand @testx functions into plain pytest tests.

\b
COMMANDS:
  testx expand PATH...      Rewrite annotated tests in place or into -o DIR
  testx check PATH...       Report expansion errors without writing
  testx info FILE           Show how each annotated test expands

\b
Use --help with any command for detailed options."""

    return cli


def main(args: list[str] | None = None) -> None:
    """Run CLI with consistent error handling."""
    from .exceptions import CLIError

    try:
        cli = create_cli()
        rv = cli.main(args=args, prog_name=CLI_NAME, standalone_mode=False)
    except (KeyboardInterrupt, click.exceptions.Abort):
        err_console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(ExitCode.INTERRUPTED)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except CLIError as e:
        # Structured CLI errors - format nicely
        err_console.print(e.format_for_console())
        sys.exit(e.exit_code)
    except Exception as e:
        err_console.print(f"[red]Unexpected error:[/red] {e}")
        logger.exception(f"Unexpected error in {CLI_NAME} CLI")
        sys.exit(ExitCode.ERROR)

    sys.exit(rv if isinstance(rv, int) else ExitCode.SUCCESS)


if __name__ == "__main__":
    main()
