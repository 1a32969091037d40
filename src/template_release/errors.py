# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

"""Exceptions raised while planning and executing a release."""

from enum import Enum
from typing import List, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Action, SemanticVersion


class ErrorKind(str, Enum):
    """Release error taxonomy."""
    INVALID_VERSION_FORMAT = "InvalidVersionFormat"
    DETACHED_HEAD = "DetachedHead"
    DIRTY_WORKING_TREE = "DirtyWorkingTree"
    VERSION_DOWNGRADE_REJECTED = "VersionDowngradeRejected"
    NAME_COLLISION = "NameCollision"
    AMBIGUOUS_FORK_POINT = "AmbiguousForkPoint"
    DIVERGED_HISTORY = "DivergedHistory"
    TAG_ALREADY_EXISTS = "TagAlreadyExists"
    REMOTE_REJECTED = "RemoteRejected"
    BACKEND_UNAVAILABLE = "BackendUnavailable"


class ReleaseError(Exception):
    """Base class for all release errors."""
    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidVersionFormat(ReleaseError, ValueError):
    kind = ErrorKind.INVALID_VERSION_FORMAT


class MissingVersionError(ReleaseError):
    """No version argument was given and no VERSION file exists."""
    kind = ErrorKind.INVALID_VERSION_FORMAT


class DetachedHead(ReleaseError):
    kind = ErrorKind.DETACHED_HEAD


class DirtyWorkingTree(ReleaseError):
    kind = ErrorKind.DIRTY_WORKING_TREE


class VersionDowngradeRejected(ReleaseError):
    """Target version is lower than the recorded one."""
    kind = ErrorKind.VERSION_DOWNGRADE_REJECTED

    def __init__(
        self,
        message: str,
        current: "SemanticVersion",
        suggestions: Sequence["SemanticVersion"]
    ):
        super().__init__(message)
        self.current = current
        self.suggestions = list(suggestions)


class NameCollision(ReleaseError):
    kind = ErrorKind.NAME_COLLISION


class AmbiguousForkPoint(ReleaseError):
    kind = ErrorKind.AMBIGUOUS_FORK_POINT


class DivergedHistory(ReleaseError):
    kind = ErrorKind.DIVERGED_HISTORY


class TagAlreadyExists(ReleaseError):
    kind = ErrorKind.TAG_ALREADY_EXISTS


class RemoteRejected(ReleaseError):
    kind = ErrorKind.REMOTE_REJECTED


class BackendUnavailable(ReleaseError):
    kind = ErrorKind.BACKEND_UNAVAILABLE


class ExecutionError(Exception):
    """
    Raised when an action fails after mutation has started.

    Already applied actions are not reverted; ``completed`` lists them in
    order so the operator can continue by hand.
    """

    def __init__(
        self,
        completed: List["Action"],
        failed: "Action",
        cause: Exception
    ):
        self.completed = list(completed)
        self.failed = failed
        self.cause = cause
        super().__init__(
            f"Action '{failed.describe()}' failed after "
            f"{len(self.completed)} completed action(s): {cause}"
        )

    @property
    def last_successful(self) -> Optional["Action"]:
        """The last action that completed before the failure."""
        return self.completed[-1] if self.completed else None

    @property
    def kind(self) -> Optional[ErrorKind]:
        """Kind of the underlying release error, if any."""
        return getattr(self.cause, 'kind', None)
