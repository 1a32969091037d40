# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

"""Read-only view of the repository used to plan a release."""

import logging
from typing import Dict, Optional, Tuple

from .config import Config
from .config_mutator import ConfigMutator, TomlConfigMutator
from .git_ops import GitOperations
from .models import RefLocation, RepositorySnapshot, SemanticVersion
from .version_file import read_recorded_version

logger = logging.getLogger(__name__)


class RepositoryState:
    """
    Queries against the version-control backend.

    Nothing here mutates the repository. ``snapshot`` fetches once and
    captures every fact the planner needs; the individual query methods
    answer one question against the live repository.
    """

    def __init__(
        self,
        git_ops: GitOperations,
        config: Config,
        config_mutator: Optional[ConfigMutator] = None
    ):
        self.git_ops = git_ops
        self.config = config
        self.config_mutator = config_mutator or TomlConfigMutator()

    def current_branch(self) -> Optional[str]:
        return self.git_ops.get_current_branch()

    def is_working_tree_clean(self) -> bool:
        return self.git_ops.is_working_tree_clean()

    def branch_exists(self, name: str, location: RefLocation = RefLocation.LOCAL) -> bool:
        return self.git_ops.branch_exists(name, remote=location is RefLocation.REMOTE)

    def tag_exists(self, name: str, location: RefLocation = RefLocation.LOCAL) -> bool:
        return self.git_ops.tag_exists(name, remote=location is RefLocation.REMOTE)

    def divergence(self, local_ref: str, remote_ref: str) -> Tuple[int, int]:
        return self.git_ops.divergence(local_ref, remote_ref)

    def snapshot(self, version: SemanticVersion) -> RepositorySnapshot:
        """
        Capture the repository state for releasing version.

        Fetches the remote exactly once (with prune) so existence checks and
        ahead/behind counts are consistent with each other.

        Raises:
            BackendUnavailable: If the remote cannot be reached
            InvalidVersionFormat: If the VERSION file holds garbage
        """
        remote = self.config.remote
        branch_name = self.config.branch_name(version)

        self.git_ops.fetch_remote_refs(prune=True)

        current = self.git_ops.get_current_branch()
        local_branches = self.git_ops.get_branch_shas(remote=False)
        remote_branches = self.git_ops.get_branch_shas(remote=True)
        remote_tags = self.git_ops.get_remote_tags()

        divergences: Dict[Tuple[str, str], Tuple[int, int]] = {}
        if branch_name in remote_branches:
            remote_ref = f"{remote}/{branch_name}"
            # The version branch itself, and the branches it could be forked from
            fork_points = {current, *self.config.branch_policy.trunk_branches}
            for local_ref in ({branch_name} | fork_points) - {None}:
                if local_ref in local_branches:
                    divergences[(local_ref, remote_ref)] = self.git_ops.divergence(local_ref, remote_ref)

        root = self.git_ops.working_dir
        companion_path = root / self.config.companion.path
        companion_present = companion_path.exists()
        recorded_branch = None
        if companion_present:
            value = self.config_mutator.read_field(companion_path, self.config.companion.field)
            recorded_branch = str(value) if value is not None else None

        snapshot = RepositorySnapshot(
            current_branch=current,
            is_clean=self.git_ops.is_working_tree_clean(),
            head_commit=self.git_ops.head_commit(),
            local_branches=frozenset(local_branches),
            remote_branches=remote_branches,
            local_tags=frozenset(self.git_ops.get_tags()),
            remote_tags=remote_tags,
            divergences=divergences,
            recorded_version=read_recorded_version(root / self.config.version_policy.version_file),
            recorded_branch=recorded_branch,
            companion_config_present=companion_present,
            remote=remote,
            remote_url=self.git_ops.get_remote_url(),
        )
        logger.debug("Captured snapshot: %s", snapshot)
        return snapshot
