# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

"""Data models for the release tool."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Mapping, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidVersionFormat

VERSION_PATTERN = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)")


class VersionComparison(str, Enum):
    """Result of comparing two versions."""
    GREATER = "greater"
    EQUAL = "equal"
    LESS = "less"


class SemanticVersion(BaseModel):
    """Semantic version model (MAJOR.MINOR.PATCH only)."""
    model_config = ConfigDict(frozen=True)

    major: int = Field(ge=0)
    minor: int = Field(ge=0)
    patch: int = Field(ge=0)

    @classmethod
    def parse(cls, version_str: str) -> "SemanticVersion":
        """
        Parse a semantic version string.

        Args:
            version_str: Version string to parse (e.g., "1.2.3")

        Returns:
            SemanticVersion instance

        Raises:
            InvalidVersionFormat: If the string is not exactly MAJOR.MINOR.PATCH
        """
        match = VERSION_PATTERN.fullmatch(version_str) if isinstance(version_str, str) else None
        if not match:
            raise InvalidVersionFormat(
                f"Invalid version format: {version_str!r} "
                f"(must be MAJOR.MINOR.PATCH, e.g. 0.1.3)"
            )
        major, minor, patch = match.groups()
        return cls(major=int(major), minor=int(minor), patch=int(patch))

    @classmethod
    def zero(cls) -> "SemanticVersion":
        return cls(major=0, minor=0, patch=0)

    def to_string(self, include_v: bool = False) -> str:
        """Convert to string representation."""
        version = f"{self.major}.{self.minor}.{self.patch}"
        if include_v:
            version = f"v{version}"
        return version

    def __str__(self) -> str:
        return self.to_string()

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def compare(self, other: "SemanticVersion") -> VersionComparison:
        """Compare major, then minor, then patch."""
        mine, theirs = self.as_tuple(), other.as_tuple()
        if mine > theirs:
            return VersionComparison.GREATER
        if mine < theirs:
            return VersionComparison.LESS
        return VersionComparison.EQUAL

    def __lt__(self, other: "SemanticVersion") -> bool:
        return self.compare(other) is VersionComparison.LESS

    def __le__(self, other: "SemanticVersion") -> bool:
        return self.compare(other) is not VersionComparison.GREATER

    def __gt__(self, other: "SemanticVersion") -> bool:
        return self.compare(other) is VersionComparison.GREATER

    def __ge__(self, other: "SemanticVersion") -> bool:
        return self.compare(other) is not VersionComparison.LESS

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return False
        return self.as_tuple() == other.as_tuple()

    def __hash__(self) -> int:
        return hash(self.as_tuple())

    def bump_major(self) -> "SemanticVersion":
        """Create a new version with major version bumped."""
        return SemanticVersion(major=self.major + 1, minor=0, patch=0)

    def bump_minor(self) -> "SemanticVersion":
        """Create a new version with minor version bumped."""
        return SemanticVersion(major=self.major, minor=self.minor + 1, patch=0)

    def bump_patch(self) -> "SemanticVersion":
        """Create a new version with patch version bumped."""
        return SemanticVersion(major=self.major, minor=self.minor, patch=self.patch + 1)

    def suggestions(self) -> List["SemanticVersion"]:
        """The conventional next versions: patch, minor and major bumps."""
        return [self.bump_patch(), self.bump_minor(), self.bump_major()]


def is_version_name(name: str) -> bool:
    """True if a ref name looks like a release branch (e.g. "0.1.3")."""
    return VERSION_PATTERN.fullmatch(name) is not None


class ReleasePolicy(BaseModel):
    """
    Policy flags for a release run.

    force waives downgrade and tag-collision confirmations. When interactive
    is False, every decision that would prompt fails closed instead.
    """
    model_config = ConfigDict(frozen=True)

    force: bool = False
    interactive: bool = True


class RefLocation(str, Enum):
    """Where a branch or tag is looked up."""
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class RepositorySnapshot:
    """
    Repository facts captured once at the start of a run.

    Remote facts reflect a single fetch of the remote's advertised refs.
    remote_branches and remote_tags map names to the sha observed then.
    """
    current_branch: Optional[str]
    is_clean: bool
    head_commit: Optional[str] = None
    local_branches: FrozenSet[str] = frozenset()
    remote_branches: Mapping[str, str] = field(default_factory=dict)
    local_tags: FrozenSet[str] = frozenset()
    remote_tags: Mapping[str, str] = field(default_factory=dict)
    divergences: Mapping[Tuple[str, str], Tuple[int, int]] = field(default_factory=dict)
    recorded_version: Optional[SemanticVersion] = None
    recorded_branch: Optional[str] = None
    companion_config_present: bool = False
    remote: str = "origin"
    remote_url: str = ""

    @property
    def is_detached(self) -> bool:
        return self.current_branch is None

    def local_branch_exists(self, name: str) -> bool:
        return name in self.local_branches

    def remote_branch_exists(self, name: str) -> bool:
        return name in self.remote_branches

    def local_tag_exists(self, name: str) -> bool:
        return name in self.local_tags

    def remote_tag_exists(self, name: str) -> bool:
        return name in self.remote_tags

    def remote_ref(self, branch: str) -> str:
        """Remote-tracking ref name for a branch (e.g. "origin/0.1.3")."""
        return f"{self.remote}/{branch}"

    def ahead_behind(self, local_ref: str, remote_ref: str) -> Tuple[int, int]:
        """
        Commits only on local_ref (ahead) and only on remote_ref (behind).

        Raises:
            KeyError: If the pair was not captured with the snapshot
        """
        return self.divergences[(local_ref, remote_ref)]


class SyncStrategy(str, Enum):
    """How a local branch is reconciled with its remote counterpart."""
    FAST_FORWARD = "fast-forward"
    MERGE_PREFER_LOCAL = "merge-prefer-local"


@dataclass(frozen=True)
class Action:
    """One step of a release plan."""
    destructive = False

    @property
    def name(self) -> str:
        return type(self).__name__

    def describe(self) -> str:
        return self.name


@dataclass(frozen=True)
class DeleteConflictingBranch(Action):
    """Remove a branch whose name equals the release tag."""
    branch: str
    local: bool
    remote: bool
    expected_sha: Optional[str] = None
    destructive = True

    def describe(self) -> str:
        where = [w for w, flag in (("local", self.local), ("remote", self.remote)) if flag]
        return f"DeleteConflictingBranch({self.branch}, {'+'.join(where)})"


@dataclass(frozen=True)
class DeleteConflictingTag(Action):
    """Remove a tag whose name equals the version branch."""
    tag: str
    local: bool
    remote: bool
    expected_sha: Optional[str] = None
    destructive = True

    def describe(self) -> str:
        where = [w for w, flag in (("local", self.local), ("remote", self.remote)) if flag]
        return f"DeleteConflictingTag({self.tag}, {'+'.join(where)})"


@dataclass(frozen=True)
class CommitAll(Action):
    """Stage every change in the working tree and commit it."""
    message: str

    def describe(self) -> str:
        return f"CommitAll({self.message!r})"


@dataclass(frozen=True)
class Checkout(Action):
    branch: str

    def describe(self) -> str:
        return f"Checkout({self.branch})"


@dataclass(frozen=True)
class CreateBranch(Action):
    branch: str
    start_point: str

    def describe(self) -> str:
        return f"CreateBranch({self.branch} from {self.start_point})"


@dataclass(frozen=True)
class Sync(Action):
    """Bring a local branch up to date with its remote counterpart."""
    branch: str
    remote_ref: str
    strategy: SyncStrategy

    def describe(self) -> str:
        return f"Sync({self.branch} <- {self.remote_ref}, {self.strategy.value})"


@dataclass(frozen=True)
class WriteVersionMarker(Action):
    version: SemanticVersion

    def describe(self) -> str:
        return f"WriteVersionMarker({self.version})"


@dataclass(frozen=True)
class UpdateCompanionConfig(Action):
    branch_name: str

    def describe(self) -> str:
        return f"UpdateCompanionConfig({self.branch_name})"


@dataclass(frozen=True)
class Commit(Action):
    """Commit whatever the previous actions staged."""
    message: str

    def describe(self) -> str:
        return f"Commit({self.message!r})"


@dataclass(frozen=True)
class PushBranch(Action):
    branch: str
    set_upstream: bool

    def describe(self) -> str:
        return f"PushBranch({self.branch}, set_upstream={self.set_upstream})"


@dataclass(frozen=True)
class DeleteLocalTag(Action):
    tag: str

    def describe(self) -> str:
        return f"DeleteLocalTag({self.tag})"


@dataclass(frozen=True)
class DeleteRemoteTag(Action):
    tag: str
    expected_sha: Optional[str] = None
    destructive = True

    def describe(self) -> str:
        return f"DeleteRemoteTag({self.tag})"


@dataclass(frozen=True)
class CreateTag(Action):
    """Create an annotated tag at HEAD."""
    tag: str
    message: str

    def describe(self) -> str:
        return f"CreateTag({self.tag})"


@dataclass(frozen=True)
class PushTag(Action):
    tag: str

    def describe(self) -> str:
        return f"PushTag({self.tag})"


@dataclass(frozen=True)
class Plan:
    """Ordered sequence of actions. Building it has no side effects."""
    version: SemanticVersion
    branch_name: str
    tag_name: str
    actions: Tuple[Action, ...] = ()

    def __iter__(self):
        return iter(self.actions)

    def __len__(self) -> int:
        return len(self.actions)

    def names(self) -> List[str]:
        """Action type names, in order."""
        return [action.name for action in self.actions]

    def of_type(self, action_type: type) -> List[Action]:
        return [a for a in self.actions if isinstance(a, action_type)]

    def has(self, action_type: type) -> bool:
        return any(isinstance(a, action_type) for a in self.actions)

    def destructive_actions(self) -> List[Action]:
        return [a for a in self.actions if a.destructive]


class ReleaseResult(BaseModel):
    """Outcome of a successful release run."""
    branch_name: str
    tag_name: str
    commit_id: str
    actions: List[str] = Field(default_factory=list)

    def as_tuple(self) -> Tuple[str, str, str]:
        return (self.branch_name, self.tag_name, self.commit_id)
