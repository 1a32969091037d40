# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

"""Execution of release plans against the git backend."""

import logging
from typing import Callable, Dict, List, Optional
from rich.console import Console

from .config import Config
from .config_mutator import ConfigMutator, ConfigMutatorError, TomlConfigMutator
from .errors import ExecutionError, ReleaseError
from .git_ops import GitOperations
from .models import (
    Action, Checkout, Commit, CommitAll, CreateBranch, CreateTag,
    DeleteConflictingBranch, DeleteConflictingTag, DeleteLocalTag, DeleteRemoteTag,
    Plan, PushBranch, PushTag, ReleaseResult, Sync, SyncStrategy, UpdateCompanionConfig,
    WriteVersionMarker
)
from .version_file import write_version_file

logger = logging.getLogger(__name__)

console = Console()


class ReleaseExecutor:
    """
    Runs a Plan action by action.

    Execution stops at the first failing action. Nothing that already ran is
    reverted; the raised ExecutionError lists exactly what completed so the
    operator can continue by hand.
    """

    def __init__(
        self,
        git_ops: GitOperations,
        config: Config,
        config_mutator: Optional[ConfigMutator] = None,
        console: Console = console,
        debug: bool = False
    ):
        self.git_ops = git_ops
        self.config = config
        self.config_mutator = config_mutator or TomlConfigMutator()
        self.console = console
        self.debug = debug
        self._handlers: Dict[type, Callable[[Action], None]] = {
            DeleteConflictingBranch: self._delete_conflicting_branch,
            DeleteConflictingTag: self._delete_conflicting_tag,
            CommitAll: self._commit_all,
            Checkout: self._checkout,
            CreateBranch: self._create_branch,
            Sync: self._sync,
            WriteVersionMarker: self._write_version_marker,
            UpdateCompanionConfig: self._update_companion_config,
            Commit: self._commit,
            PushBranch: self._push_branch,
            DeleteLocalTag: self._delete_local_tag,
            DeleteRemoteTag: self._delete_remote_tag,
            CreateTag: self._create_tag,
            PushTag: self._push_tag,
        }

    def run(self, plan: Plan) -> ReleaseResult:
        """
        Execute every action of plan in order.

        Returns:
            ReleaseResult with the branch, tag and commit that were published

        Raises:
            ExecutionError: On the first failing action
        """
        completed: List[Action] = []
        total = len(plan)

        for index, action in enumerate(plan, start=1):
            self.console.print(f"[blue]({index}/{total}) {action.describe()}[/blue]")
            handler = self._handlers[type(action)]
            try:
                handler(action)
            except (ReleaseError, ConfigMutatorError, OSError) as e:
                logger.debug("Action %s failed", action.describe(), exc_info=True)
                raise ExecutionError(completed, action, e) from e
            completed.append(action)

        commit_id = self.git_ops.head_commit()
        return ReleaseResult(
            branch_name=plan.branch_name,
            tag_name=plan.tag_name,
            commit_id=commit_id or "",
            actions=[a.describe() for a in completed]
        )

    def _dim(self, message: str) -> None:
        if self.debug:
            self.console.print(f"[dim]{message}[/dim]")

    def _delete_conflicting_branch(self, action: DeleteConflictingBranch) -> None:
        if action.local and self.git_ops.branch_exists(action.branch):
            self.git_ops.delete_branch(action.branch)
        if action.remote:
            self.git_ops.delete_remote_branch(action.branch, expected_sha=action.expected_sha)

    def _delete_conflicting_tag(self, action: DeleteConflictingTag) -> None:
        if action.local and self.git_ops.tag_exists(action.tag):
            self.git_ops.delete_tag(action.tag)
        if action.remote:
            self.git_ops.delete_remote_tag(action.tag, expected_sha=action.expected_sha)

    def _commit_all(self, action: CommitAll) -> None:
        self.git_ops.stage_all()
        self.git_ops.commit(action.message)

    def _checkout(self, action: Checkout) -> None:
        self.git_ops.checkout_branch(action.branch)

    def _create_branch(self, action: CreateBranch) -> None:
        self.git_ops.checkout_branch(action.branch, create=True, start_point=action.start_point)

    def _sync(self, action: Sync) -> None:
        if action.strategy is SyncStrategy.FAST_FORWARD:
            self.git_ops.fast_forward(action.remote_ref)
        else:
            self.git_ops.merge_prefer_local(
                action.remote_ref,
                message=f"Merge {action.remote_ref} into {action.branch} (prefer local)"
            )

    def _write_version_marker(self, action: WriteVersionMarker) -> None:
        path = self.git_ops.working_dir / self.config.version_policy.version_file
        if write_version_file(path, action.version):
            self.git_ops.stage_paths(self.config.version_policy.version_file)
        else:
            self._dim(f"{path.name} already holds {action.version}")

    def _update_companion_config(self, action: UpdateCompanionConfig) -> None:
        path = self.git_ops.working_dir / self.config.companion.path
        if self.config_mutator.set_field(path, self.config.companion.field, action.branch_name):
            self.git_ops.stage_paths(self.config.companion.path)
        else:
            self._dim(f"{self.config.companion.path} already points at {action.branch_name}")

    def _commit(self, action: Commit) -> None:
        # Earlier steps may have turned out to be no-ops after a checkout
        if not self.git_ops.has_staged_changes():
            self._dim("No changes to commit")
            return
        self.git_ops.commit(action.message)

    def _push_branch(self, action: PushBranch) -> None:
        self.git_ops.push_branch(action.branch, set_upstream=action.set_upstream)

    def _delete_local_tag(self, action: DeleteLocalTag) -> None:
        if self.git_ops.tag_exists(action.tag):
            self.git_ops.delete_tag(action.tag)

    def _delete_remote_tag(self, action: DeleteRemoteTag) -> None:
        self.git_ops.delete_remote_tag(action.tag, expected_sha=action.expected_sha)

    def _create_tag(self, action: CreateTag) -> None:
        self.git_ops.create_tag(action.tag, action.message)

    def _push_tag(self, action: PushTag) -> None:
        self.git_ops.push_tag(action.tag)
