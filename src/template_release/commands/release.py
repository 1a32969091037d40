# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

"""Release command: plan and publish a version branch and tag."""

import sys
from pathlib import Path
from typing import Optional
import click
from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from ..config import Config, load_config
from ..errors import ExecutionError, ReleaseError, VersionDowngradeRejected
from ..executor import ReleaseExecutor
from ..git_ops import GitOperations
from ..models import Plan, ReleasePolicy, ReleaseResult, SemanticVersion
from ..planner import ReleasePlanner, confirm_all
from ..state import RepositoryState
from ..template_utils import TemplateError, build_release_context, render_template
from ..version_file import resolve_version

console = Console()


def _prompt_confirm(prompt: str) -> bool:
    return Confirm.ask(prompt, default=False, console=console)


def _fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


def _repo_config(ctx, repo_path: str) -> Config:
    """The group's config, or the one found in repo_path when no --config was given."""
    if 'config_path' in ctx.obj and ctx.obj['config_path'] is None:
        try:
            return load_config(search_dir=Path(repo_path))
        except ValueError as e:
            _fail(f"Error loading config: {e}")
    return ctx.obj['config']


def _print_release_header(config: Config, version: SemanticVersion) -> None:
    console.print("\n[bold]Release Plan:[/bold]")
    console.print(f"  Version: {version}")
    console.print(f"  Branch:  {config.branch_name(version)}")
    console.print(f"  Tag:     {config.tag_name(version)}\n")


def _print_plan(plan: Plan) -> None:
    table = Table(title=f"Actions for {plan.version}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Action", style="cyan")
    table.add_column("Destructive", justify="center")
    for index, action in enumerate(plan, start=1):
        table.add_row(str(index), action.describe(), "[red]yes[/red]" if action.destructive else "")
    console.print(table)


def _print_execution_failure(plan: Plan, error: ExecutionError) -> None:
    console.print(f"\n[red]Release failed at: {error.failed.describe()}[/red]")
    console.print(f"[red]{error.cause}[/red]")
    console.print("\n[bold]Completed actions (not reverted):[/bold]")
    if not error.completed:
        console.print("  [dim](none)[/dim]")
    for action in error.completed:
        console.print(f"  [green]✓[/green] {action.describe()}")
    console.print(f"  [red]✗[/red] {error.failed.describe()}")
    remaining = list(plan.actions)[len(error.completed) + 1:]
    for action in remaining:
        console.print(f"  [dim]- {action.describe()} (not run)[/dim]")
    console.print("\n[yellow]Fix the problem and run the release again, "
                  "or continue the remaining steps manually.[/yellow]")


def _print_summary(config: Config, result: ReleaseResult, remote_url: str) -> None:
    console.print(f"\n[bold green]Release {result.branch_name} completed![/bold green]")
    console.print(f"  Branch '{result.branch_name}' pushed to {config.remote}")
    console.print(f"  Tag '{result.tag_name}' pushed to {config.remote}")
    console.print(f"  Commit: {result.commit_id}")

    if remote_url:
        context = build_release_context(result.branch_name, result.branch_name, result.tag_name, remote_url)
        try:
            hint = render_template(config.templates.install_hint, context)
        except TemplateError as e:
            console.print(f"[yellow]Warning: could not render install hint: {e}[/yellow]")
        else:
            console.print("\n[bold]Install command:[/bold]")
            console.print(f"  {hint}")

    console.print(f"\n[dim]Next: create a GitHub release from tag '{result.tag_name}'[/dim]")


@click.command(context_settings={'help_option_names': ['-h', '--help']})
@click.argument('version', required=False)
@click.option(
    '--force',
    '-f',
    is_flag=True,
    help='Allow downgrades and recreate an existing tag without asking'
)
@click.option(
    '--message',
    '-m',
    help='Commit message used if there are uncommitted changes'
)
@click.option(
    '--dry-run',
    is_flag=True,
    help='Show the planned actions without changing anything'
)
@click.option(
    '--repo-path',
    type=click.Path(exists=True, file_okay=False),
    default='.',
    help='Path to local git repository'
)
@click.pass_context
def release(
    ctx,
    version: Optional[str],
    force: bool,
    message: Optional[str],
    dry_run: bool,
    repo_path: str
):
    """
    Release VERSION (MAJOR.MINOR.PATCH).

    Creates or updates the version branch (e.g. 0.1.3), records the version
    in the VERSION file and companion config, and publishes the annotated
    tag (e.g. v0.1.3). Without VERSION, the VERSION file is used.
    """
    config = _repo_config(ctx, repo_path)
    debug = ctx.obj.get('debug', False)
    auto = ctx.obj.get('auto', False)
    assume_yes = ctx.obj.get('assume_yes', False)

    policy = ReleasePolicy(force=force, interactive=not auto)
    try:
        git_ops = GitOperations(repo_path, remote=config.remote)
        target = resolve_version(version, git_ops.working_dir / config.version_policy.version_file)
    except ReleaseError as e:
        _fail(e.message)

    def prompt_message() -> Optional[str]:
        console.print(git_ops.repo.git.status("--short"))
        return Prompt.ask("Commit message (empty for the default)", console=console) or None

    if assume_yes:
        planner = ReleasePlanner(config, confirmer=confirm_all)
    else:
        planner = ReleasePlanner(config, confirmer=_prompt_confirm, message_prompt=prompt_message)

    source = "specified version" if version else f"{config.version_policy.version_file} file"
    console.print(f"[blue]Using {source}: {target}[/blue]")
    _print_release_header(config, target)

    state = RepositoryState(git_ops, config)
    try:
        console.print("[blue]Fetching latest changes...[/blue]")
        snapshot = state.snapshot(target)
        console.print(f"Current branch: {snapshot.current_branch or '(detached)'}")

        if debug:
            console.print(f"[dim]Snapshot: {snapshot}[/dim]")

        plan = planner.plan(target, snapshot, policy, dirty_commit_message=message)
    except VersionDowngradeRejected as e:
        console.print(f"[red]Error: {e.message}[/red]")
        console.print("[yellow]Use one of:[/yellow]")
        for label, suggestion in zip(("patch", "minor", "major"), e.suggestions):
            console.print(f"  {label}: {suggestion}")
        console.print("[yellow]or --force to release it anyway.[/yellow]")
        sys.exit(1)
    except ReleaseError as e:
        _fail(f"{e.message} [{e.kind.value}]")

    _print_plan(plan)

    if dry_run:
        console.print("[yellow]Dry run: nothing was changed.[/yellow]")
        return

    executor = ReleaseExecutor(git_ops, config, console=console, debug=debug)
    try:
        result = executor.run(plan)
    except ExecutionError as e:
        _print_execution_failure(plan, e)
        sys.exit(1)

    _print_summary(config, result, snapshot.remote_url)
