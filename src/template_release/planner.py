# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

"""Release planning.

The planner turns a target version, a repository snapshot and a policy into
an ordered Plan of actions. It never touches the repository: every blocking
condition is raised as a ReleaseError before anything is mutated, and every
confirmation a destructive action needs is collected here, up front.

Order of decisions:
1. Detached HEAD
2. Tag named like the version branch, branch named like the release tag
3. Uncommitted changes
4. Version downgrade
5. Version branch: reuse, check out, or create (from current or a trunk);
   then sync with the remote
6. Version marker and companion config
7. Commit of the metadata changes
8. Push of the version branch
9. Tag: drop stale copies, create, push
"""

import logging
from typing import Callable, List, Optional, Tuple

from .config import Config
from .errors import (
    AmbiguousForkPoint, DetachedHead, DirtyWorkingTree, DivergedHistory,
    NameCollision, TagAlreadyExists, VersionDowngradeRejected
)
from .models import (
    Action, Checkout, Commit, CommitAll, CreateBranch, CreateTag,
    DeleteConflictingBranch, DeleteConflictingTag, DeleteLocalTag, DeleteRemoteTag,
    Plan, PushBranch, PushTag, ReleasePolicy, RepositorySnapshot, SemanticVersion, Sync,
    SyncStrategy, UpdateCompanionConfig, VersionComparison, WriteVersionMarker,
    is_version_name
)
from .template_utils import build_release_context, render_template

logger = logging.getLogger(__name__)

Confirmer = Callable[[str], bool]
MessagePrompt = Callable[[], Optional[str]]


def deny_all(prompt: str) -> bool:
    return False


def confirm_all(prompt: str) -> bool:
    return True


class ReleasePlanner:
    """Computes the plan for a release. Pure apart from confirmations."""

    def __init__(
        self,
        config: Config,
        confirmer: Optional[Confirmer] = None,
        message_prompt: Optional[MessagePrompt] = None
    ):
        self.config = config
        self.confirmer = confirmer or deny_all
        # Asked for a commit message once committing uncommitted changes is agreed
        self.message_prompt = message_prompt

    def _confirm(self, policy: ReleasePolicy, prompt: str) -> bool:
        # Non-interactive runs fail closed without asking
        if not policy.interactive:
            return False
        return bool(self.confirmer(prompt))

    def plan(
        self,
        target: SemanticVersion,
        snapshot: RepositorySnapshot,
        policy: ReleasePolicy,
        dirty_commit_message: Optional[str] = None
    ) -> Plan:
        """
        Plan the release of target.

        Args:
            target: Version to release
            snapshot: Repository state captured at the start of the run
            policy: force / interactive flags
            dirty_commit_message: Message for committing uncommitted changes

        Returns:
            Plan to hand to the executor

        Raises:
            ReleaseError: A blocking reason; nothing has been changed
        """
        branch = self.config.branch_name(target)
        tag = self.config.tag_name(target)
        context = build_release_context(target.to_string(), branch, tag, snapshot.remote_url)
        actions: List[Action] = []

        if snapshot.is_detached:
            raise DetachedHead("Not on any branch (detached HEAD); check out a branch first")

        actions.extend(self._resolve_name_collision(branch, tag, snapshot, policy))

        commit_all = self._resolve_dirty_tree(snapshot, policy, dirty_commit_message, context)
        if commit_all:
            actions.append(commit_all)

        write_marker = self._check_downgrade(target, snapshot, policy)

        branch_actions = self._resolve_branch(branch, snapshot, policy, commit_all is not None)
        actions.extend(branch_actions)
        # Marker and companion facts were read from the current branch, not the trunk
        from_trunk = any(
            isinstance(a, CreateBranch) and a.start_point != snapshot.current_branch
            for a in branch_actions
        )

        metadata_changed = False
        if write_marker or from_trunk:
            actions.append(WriteVersionMarker(version=target))
            metadata_changed = True
        if snapshot.companion_config_present and (from_trunk or snapshot.recorded_branch != branch):
            actions.append(UpdateCompanionConfig(branch_name=branch))
            metadata_changed = True

        if metadata_changed:
            actions.append(Commit(
                message=render_template(self.config.templates.commit_message, context)
            ))

        actions.append(PushBranch(
            branch=branch,
            set_upstream=not snapshot.remote_branch_exists(branch)
        ))

        actions.extend(self._resolve_tag(tag, snapshot, policy))
        actions.append(CreateTag(
            tag=tag,
            message=render_template(self.config.templates.tag_message, context)
        ))
        actions.append(PushTag(tag=tag))

        plan = Plan(version=target, branch_name=branch, tag_name=tag, actions=tuple(actions))
        logger.debug("Planned %s", ", ".join(a.describe() for a in plan))
        return plan

    def _resolve_name_collision(
        self,
        branch: str,
        tag: str,
        snapshot: RepositorySnapshot,
        policy: ReleasePolicy
    ) -> List[Action]:
        actions: List[Action] = []
        tag_local = snapshot.local_tag_exists(branch)
        tag_remote = snapshot.remote_tag_exists(branch)
        if tag_local or tag_remote:
            where = " and ".join(
                w for w, flag in (("locally", tag_local), ("remotely", tag_remote)) if flag
            )
            if not (policy.force or self._confirm(
                policy, f"Tag '{branch}' exists {where} and clashes with the version branch. Delete it?"
            )):
                raise NameCollision(
                    f"A tag named '{branch}' exists {where} and would be ambiguous with the "
                    f"version branch; delete or rename it first"
                )
            actions.append(DeleteConflictingTag(
                tag=branch,
                local=tag_local,
                remote=tag_remote,
                expected_sha=snapshot.remote_tags.get(branch)
            ))

        local = snapshot.local_branch_exists(tag)
        remote = snapshot.remote_branch_exists(tag)
        if not (local or remote):
            return actions

        if snapshot.current_branch == tag:
            raise NameCollision(
                f"The checked out branch '{tag}' has the same name as the release tag; "
                f"switch to another branch first"
            )

        where = " and ".join(w for w, flag in (("locally", local), ("remotely", remote)) if flag)
        if not (policy.force or self._confirm(
            policy, f"Branch '{tag}' exists {where} and clashes with the release tag. Delete it?"
        )):
            raise NameCollision(
                f"Branch '{tag}' exists {where} and clashes with the release tag name"
            )

        actions.append(DeleteConflictingBranch(
            branch=tag,
            local=local,
            remote=remote,
            expected_sha=snapshot.remote_branches.get(tag)
        ))
        return actions

    def _resolve_dirty_tree(
        self,
        snapshot: RepositorySnapshot,
        policy: ReleasePolicy,
        message: Optional[str],
        context: dict
    ) -> Optional[CommitAll]:
        if snapshot.is_clean:
            return None

        if not policy.interactive:
            raise DirtyWorkingTree("Uncommitted changes detected; commit or stash them first")

        if not self._confirm(policy, "Uncommitted changes detected. Commit these changes?"):
            raise DirtyWorkingTree("Please commit or stash your changes first")

        if not message and self.message_prompt:
            message = self.message_prompt()
        if not message:
            message = render_template(self.config.templates.dirty_commit_message, context)
        return CommitAll(message=message)

    def _check_downgrade(
        self,
        target: SemanticVersion,
        snapshot: RepositorySnapshot,
        policy: ReleasePolicy
    ) -> bool:
        """Return True when the version marker has to be rewritten."""
        current = snapshot.recorded_version or SemanticVersion.zero()
        comparison = target.compare(current)

        if comparison is VersionComparison.LESS and not policy.force:
            suggestions = current.suggestions()
            raise VersionDowngradeRejected(
                f"Version {target} is lower than the current version {current}. "
                f"Suggested versions: {', '.join(str(s) for s in suggestions)}",
                current=current,
                suggestions=suggestions
            )

        if comparison is VersionComparison.EQUAL:
            # Only an absent marker needs writing
            return snapshot.recorded_version is None
        return True

    def _resolve_branch(
        self,
        branch: str,
        snapshot: RepositorySnapshot,
        policy: ReleasePolicy,
        commits_on_current: bool
    ) -> List[Action]:
        current = snapshot.current_branch

        if current == branch:
            return self._sync_actions(branch, branch, snapshot, policy, commits_on_current)

        if snapshot.local_branch_exists(branch):
            return [Checkout(branch=branch)] + self._sync_actions(
                branch, branch, snapshot, policy, extra_local_commit=False
            )

        if not self._is_known_fork_point(current) and not self._confirm(
            policy,
            f"You're not on a trunk branch. Create version branch '{branch}' "
            f"from current branch '{current}'?"
        ):
            trunk = self._local_trunk(snapshot)
            if trunk and self._confirm(
                policy, f"Switch to '{trunk}' and create version branch '{branch}' from it?"
            ):
                return [CreateBranch(branch=branch, start_point=trunk)] + self._sync_actions(
                    trunk, branch, snapshot, policy, extra_local_commit=False
                )
            raise AmbiguousForkPoint(
                f"Refusing to fork version branch '{branch}' from '{current}'; "
                f"switch to one of {', '.join(self.config.branch_policy.trunk_branches)} "
                f"or an existing release branch"
            )

        # The new branch starts at current, so it diverges from any existing
        # remote copy exactly like current does
        return [CreateBranch(branch=branch, start_point=current)] + self._sync_actions(
            current, branch, snapshot, policy, commits_on_current
        )

    def _is_known_fork_point(self, current: str) -> bool:
        if current in self.config.branch_policy.trunk_branches:
            return True
        # An existing release branch, e.g. releasing 0.1.4 from 0.1.3
        return is_version_name(current)

    def _local_trunk(self, snapshot: RepositorySnapshot) -> Optional[str]:
        """First configured trunk branch that exists locally."""
        for trunk in self.config.branch_policy.trunk_branches:
            if snapshot.local_branch_exists(trunk):
                return trunk
        return None

    def _sync_actions(
        self,
        local_ref: str,
        branch: str,
        snapshot: RepositorySnapshot,
        policy: ReleasePolicy,
        extra_local_commit: bool
    ) -> List[Action]:
        if not snapshot.remote_branch_exists(branch):
            return []

        remote_ref = snapshot.remote_ref(branch)
        ahead, behind = self._divergence(local_ref, remote_ref, snapshot, extra_local_commit)
        logger.debug("%s vs %s: ahead %d, behind %d", local_ref, remote_ref, ahead, behind)

        if behind == 0:
            return []
        if ahead == 0:
            return [Sync(branch=branch, remote_ref=remote_ref, strategy=SyncStrategy.FAST_FORWARD)]

        if not policy.interactive:
            raise DivergedHistory(
                f"'{branch}' and '{remote_ref}' have diverged "
                f"({ahead} local and {behind} remote commits); reconcile them manually"
            )
        if policy.force or self._confirm(
            policy,
            f"'{branch}' and '{remote_ref}' have diverged ({ahead} local, {behind} remote commits). "
            f"Merge remote changes, preferring local changes on conflict?"
        ):
            return [Sync(branch=branch, remote_ref=remote_ref, strategy=SyncStrategy.MERGE_PREFER_LOCAL)]

        raise DivergedHistory(f"'{branch}' and '{remote_ref}' have diverged; release aborted")

    @staticmethod
    def _divergence(
        local_ref: str,
        remote_ref: str,
        snapshot: RepositorySnapshot,
        extra_local_commit: bool
    ) -> Tuple[int, int]:
        ahead, behind = snapshot.ahead_behind(local_ref, remote_ref)
        if extra_local_commit:
            # CommitAll lands on local_ref before the sync runs
            ahead += 1
        return ahead, behind

    def _resolve_tag(
        self,
        tag: str,
        snapshot: RepositorySnapshot,
        policy: ReleasePolicy
    ) -> List[Action]:
        actions: List[Action] = []
        if snapshot.local_tag_exists(tag):
            actions.append(DeleteLocalTag(tag=tag))

        if snapshot.remote_tag_exists(tag):
            if not (policy.force or self._confirm(
                policy, f"Remote tag '{tag}' already exists. Delete and recreate it?"
            )):
                raise TagAlreadyExists(f"Cannot proceed with existing remote tag '{tag}'")
            actions.append(DeleteRemoteTag(tag=tag, expected_sha=snapshot.remote_tags[tag]))

        return actions
