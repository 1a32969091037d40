# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

"""Git operations for the release tool."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple
from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from .errors import BackendUnavailable, DivergedHistory, RemoteRejected

logger = logging.getLogger(__name__)


class GitOperations:
    """Git operations wrapper."""

    def __init__(self, repo_path: str, remote: str = "origin"):
        """Initialize with path to git repository."""
        self.repo_path = Path(repo_path)
        self.remote = remote
        try:
            self.repo = Repo(str(self.repo_path))
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise BackendUnavailable(f"Not a git repository: {repo_path} ({e})")

    @property
    def working_dir(self) -> Path:
        return Path(self.repo.working_tree_dir)

    def _git(self, *args: str) -> str:
        """Run a git command, translating failures into BackendUnavailable."""
        logger.debug("git %s", " ".join(args))
        try:
            return self.repo.git.execute(["git", *args])
        except GitCommandError as e:
            raise BackendUnavailable(f"git {' '.join(args)} failed: {e.stderr.strip() or e}")

    def _push(self, *args: str) -> None:
        """Run git push; a failure means the remote refused the update."""
        logger.debug("git push %s", " ".join(args))
        try:
            self.repo.git.push(*args)
        except GitCommandError as e:
            raise RemoteRejected(
                f"Push to {self.remote} rejected ({' '.join(args)}): {e.stderr.strip() or e}"
            )

    # Queries

    def fetch_remote_refs(self, prune: bool = True) -> None:
        """
        Fetch remote references so remote-tracking branches are up to date.

        Tags are not fetched: local tags must stay exactly what the user
        created, remote tags are read with ls-remote.

        Raises:
            BackendUnavailable: If the remote cannot be reached
        """
        args = ["fetch", "--no-tags", self.remote]
        if prune:
            args.append("--prune")
        self._git(*args)

    def get_current_branch(self) -> Optional[str]:
        """Get the current branch name, or None when HEAD is detached."""
        if self.repo.head.is_detached:
            return None
        return self.repo.active_branch.name

    def is_working_tree_clean(self) -> bool:
        """True iff tracked files have no staged or unstaged modifications."""
        if not self.repo.head.is_valid():
            return not self.repo.index.entries
        return not self.repo.is_dirty(index=True, working_tree=True, untracked_files=False)

    def has_staged_changes(self) -> bool:
        """True if the index differs from HEAD."""
        if not self.repo.head.is_valid():
            return bool(self.repo.index.entries)
        return bool(self.repo.index.diff("HEAD"))

    def head_commit(self) -> Optional[str]:
        """SHA of the commit HEAD points at."""
        if not self.repo.head.is_valid():
            return None
        return self.repo.head.commit.hexsha

    def get_remote_url(self) -> str:
        """URL of the configured remote, or an empty string."""
        try:
            return self.repo.remote(self.remote).url
        except ValueError:
            return ""

    def get_all_branches(self, remote: bool = False) -> List[str]:
        """Get all branch names (local or remote)."""
        return list(self.get_branch_shas(remote=remote))

    def get_branch_shas(self, remote: bool = False) -> Dict[str, str]:
        """Map branch names to the commit they point at."""
        if not remote:
            return {head.name: head.commit.hexsha for head in self.repo.heads}
        try:
            origin = self.repo.remote(self.remote)
        except ValueError:
            raise BackendUnavailable(f"Remote '{self.remote}' is not configured")
        return {
            ref.remote_head: ref.commit.hexsha
            for ref in origin.refs
            if ref.remote_head != 'HEAD'
        }

    def branch_exists(self, branch_name: str, remote: bool = False) -> bool:
        """Check if a branch exists (locally or remotely)."""
        return branch_name in self.get_all_branches(remote=remote)

    def get_tags(self) -> List[str]:
        """Get all local tags."""
        return [tag.name for tag in self.repo.tags]

    def get_remote_tags(self) -> Dict[str, str]:
        """
        Map tags advertised by the remote to the object they point at.

        Uses ls-remote, so tags deleted on the remote are never reported from
        stale local copies.
        """
        output = self._git("ls-remote", "--tags", self.remote)
        tags: Dict[str, str] = {}
        for line in output.splitlines():
            if not line.strip():
                continue
            sha, ref = line.split(None, 1)
            if not ref.startswith("refs/tags/") or ref.endswith("^{}"):
                continue
            tags[ref[len("refs/tags/"):]] = sha
        return tags

    def tag_exists(self, tag_name: str, remote: bool = False) -> bool:
        """
        Check if a tag exists.

        Args:
            tag_name: Name of the tag to check
            remote: Check remote tags if True, local if False

        Returns:
            True if tag exists, False otherwise
        """
        if remote:
            return tag_name in self.get_remote_tags()
        return tag_name in self.get_tags()

    def divergence(self, local_ref: str, remote_ref: str) -> Tuple[int, int]:
        """
        Count commits reachable only from each side.

        Returns:
            (ahead, behind): commits only on local_ref, commits only on remote_ref
        """
        output = self._git("rev-list", "--left-right", "--count", f"{local_ref}...{remote_ref}")
        ahead, behind = output.split()
        return int(ahead), int(behind)

    # Mutations

    def checkout_branch(self, branch_name: str, create: bool = False, start_point: str = "HEAD") -> None:
        """Checkout a branch, optionally creating it first."""
        if create:
            self._git("checkout", "-b", branch_name, start_point)
        else:
            self._git("checkout", branch_name)

    def delete_branch(self, branch_name: str) -> None:
        """Force-delete a local branch."""
        self._git("branch", "-D", branch_name)

    def delete_remote_branch(self, branch_name: str, expected_sha: Optional[str] = None) -> None:
        """Delete a branch on the remote, refusing if it moved since expected_sha."""
        self._delete_remote_ref(f"refs/heads/{branch_name}", expected_sha)

    def stage_all(self) -> None:
        """Stage every change, including untracked files."""
        self._git("add", "-A")

    def stage_paths(self, *paths: str) -> None:
        self._git("add", "--", *paths)

    def commit(self, message: str) -> str:
        """Commit the index and return the new commit SHA."""
        self._git("commit", "-m", message)
        return self.head_commit()

    def fast_forward(self, remote_ref: str) -> None:
        """Advance the current branch to remote_ref without a merge commit."""
        self._git("merge", "--ff-only", remote_ref)

    def merge_prefer_local(self, remote_ref: str, message: Optional[str] = None) -> None:
        """
        Merge remote_ref into the current branch.

        Conflicting hunks resolve to the local side (-X ours); non-conflicting
        remote changes are kept. Conflicts -X ours cannot settle (modify/delete,
        rename/delete) are resolved to the local side by hand and committed.
        If that fails the merge is aborted, leaving the branch as it was.

        Raises:
            DivergedHistory: If the merge could not be completed
        """
        args = ["merge", "--no-edit", "-X", "ours"]
        if message:
            args.extend(["-m", message])
        try:
            self._git(*args, remote_ref)
        except BackendUnavailable as e:
            if not self.merge_in_progress():
                raise DivergedHistory(f"Cannot merge {remote_ref}: {e.message}")
            try:
                self._take_ours_for_conflicts()
                commit = ["commit", "-m", message] if message else ["commit", "--no-edit"]
                self._git(*commit)
            except BackendUnavailable as resolve_error:
                self._git("merge", "--abort")
                raise DivergedHistory(
                    f"Merging {remote_ref} preferring local changes failed, merge aborted: "
                    f"{resolve_error.message}"
                )

    def merge_in_progress(self) -> bool:
        return (Path(self.repo.git_dir) / "MERGE_HEAD").exists()

    def unmerged_paths(self) -> Dict[str, Set[int]]:
        """Map each conflicted path to the index stages present (1 base, 2 ours, 3 theirs)."""
        stages: Dict[str, Set[int]] = {}
        for line in self._git("ls-files", "--unmerged").splitlines():
            if not line.strip():
                continue
            info, path = line.split("\t", 1)
            stages.setdefault(path, set()).add(int(info.split()[2]))
        return stages

    def _take_ours_for_conflicts(self) -> None:
        for path, stages in self.unmerged_paths().items():
            if 2 in stages:
                self._git("checkout", "--ours", "--", path)
                self._git("add", "--", path)
            else:
                # Deleted on our side
                self._git("rm", "--force", "--quiet", "--", path)
        if self.unmerged_paths():
            raise BackendUnavailable("Conflicts remain after preferring local changes")

    def push_branch(self, branch_name: str, set_upstream: bool = True) -> None:
        """
        Push a branch to remote repository.

        Args:
            branch_name: Name of the branch to push
            set_upstream: Whether to set upstream tracking (default: True)
        """
        if set_upstream:
            self._push("-u", self.remote, branch_name)
        else:
            self._push(self.remote, branch_name)

    def create_tag(self, tag_name: str, message: str, ref: str = "HEAD") -> None:
        """Create an annotated tag."""
        self._git("tag", "-a", tag_name, "-m", message, ref)

    def delete_tag(self, tag_name: str) -> None:
        """Delete a local tag."""
        self._git("tag", "-d", tag_name)

    def push_tag(self, tag_name: str) -> None:
        """Push a tag; never forced, the remote copy must be gone already."""
        self._push(self.remote, f"refs/tags/{tag_name}")

    def delete_remote_tag(self, tag_name: str, expected_sha: Optional[str] = None) -> None:
        """Delete a tag on the remote, refusing if it moved since expected_sha."""
        self._delete_remote_ref(f"refs/tags/{tag_name}", expected_sha)

    def _delete_remote_ref(self, ref: str, expected_sha: Optional[str]) -> None:
        if expected_sha:
            self._push(f"--force-with-lease={ref}:{expected_sha}", self.remote, f":{ref}")
        else:
            self._push(self.remote, f":{ref}")
