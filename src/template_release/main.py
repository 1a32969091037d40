# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

"""Main CLI for the release tool."""

import sys
import logging
from typing import Optional
import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from .config import load_config
from .commands.release import release
from .commands.status import status

console = Console()


def configure_logging(debug: bool) -> None:
    """Route log records through rich; GitPython stays quiet unless debugging."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    logging.getLogger('git').setLevel(logging.DEBUG if debug else logging.WARNING)


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration file'
)
@click.option(
    '--auto',
    is_flag=True,
    help='Run in non-interactive mode (every prompt becomes a hard failure)'
)
@click.option(
    '-y', '--assume-yes',
    is_flag=True,
    help='Assume "yes" for all confirmation prompts'
)
@click.option(
    '--debug',
    is_flag=True,
    help='Show detailed debug output'
)
@click.pass_context
def cli(ctx, config: Optional[str], auto: bool, assume_yes: bool, debug: bool):
    """Publish a project template as a version branch and tag."""
    ctx.ensure_object(dict)
    ctx.obj['auto'] = auto
    ctx.obj['assume_yes'] = assume_yes
    ctx.obj['debug'] = debug
    ctx.obj['config_path'] = config
    configure_logging(debug)
    try:
        ctx.obj['config'] = load_config(config)
    except (FileNotFoundError, ValidationError, ValueError) as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        sys.exit(1)


# Register commands
cli.add_command(release)
cli.add_command(status)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
