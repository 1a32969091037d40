# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

import sys
from pathlib import Path
from typing import Optional
import click
from rich.console import Console
from rich.table import Table

from ..config import Config, load_config
from ..errors import ReleaseError
from ..git_ops import GitOperations
from ..state import RepositoryState
from ..version_file import resolve_version

console = Console()


def _yes_no(value: bool) -> str:
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


@click.command(context_settings={'help_option_names': ['-h', '--help']})
@click.argument('version', required=False)
@click.option(
    '--repo-path',
    type=click.Path(exists=True, file_okay=False),
    default='.',
    help='Path to local git repository'
)
@click.pass_context
def status(ctx, version: Optional[str], repo_path: str):
    """
    Show the release state of VERSION without changing anything.

    Reports which branches and tags exist locally and on the remote, how the
    version branch compares with its remote copy, and what the VERSION file
    and companion config currently record.
    """
    config: Config = ctx.obj['config']
    if 'config_path' in ctx.obj and ctx.obj['config_path'] is None:
        # No --config: the repository's own config file applies
        try:
            config = load_config(search_dir=Path(repo_path))
        except ValueError as e:
            console.print(f"[red]Error loading config: {e}[/red]")
            sys.exit(1)

    try:
        git_ops = GitOperations(repo_path, remote=config.remote)
        target = resolve_version(version, git_ops.working_dir / config.version_policy.version_file)
        snapshot = RepositoryState(git_ops, config).snapshot(target)
    except ReleaseError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        sys.exit(1)

    branch = config.branch_name(target)
    tag = config.tag_name(target)

    console.print(f"[bold]Release state for {target}[/bold]")
    console.print(f"  Current branch:   {snapshot.current_branch or '(detached)'}")
    console.print(f"  Working tree:     {'clean' if snapshot.is_clean else '[yellow]dirty[/yellow]'}")
    console.print(f"  Recorded version: {snapshot.recorded_version or '(none)'}")
    if snapshot.companion_config_present:
        console.print(f"  {config.companion.path}: {config.companion.field} = "
                      f"{snapshot.recorded_branch or '(unset)'}")

    table = Table()
    table.add_column("Ref")
    table.add_column("Local", justify="center")
    table.add_column("Remote", justify="center")
    table.add_row(f"branch {branch}", _yes_no(snapshot.local_branch_exists(branch)),
                  _yes_no(snapshot.remote_branch_exists(branch)))
    table.add_row(f"tag {tag}", _yes_no(snapshot.local_tag_exists(tag)),
                  _yes_no(snapshot.remote_tag_exists(tag)))
    console.print(table)

    remote_ref = snapshot.remote_ref(branch)
    if (branch, remote_ref) in snapshot.divergences:
        ahead, behind = snapshot.ahead_behind(branch, remote_ref)
        console.print(f"  {branch} vs {remote_ref}: {ahead} ahead, {behind} behind")
