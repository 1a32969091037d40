# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

"""Reading and writing the VERSION marker file."""

from pathlib import Path
from typing import Optional

from .errors import MissingVersionError
from .models import SemanticVersion


def read_version_text(path: Path) -> Optional[str]:
    """Return the trimmed marker contents, or None if the file is absent."""
    if not path.exists():
        return None
    return path.read_text(encoding='utf-8').strip()


def read_recorded_version(path: Path) -> Optional[SemanticVersion]:
    """
    Read the previously recorded version.

    Returns:
        The parsed version, or None if the marker file does not exist

    Raises:
        InvalidVersionFormat: If the file holds something else
    """
    text = read_version_text(path)
    if text is None:
        return None
    return SemanticVersion.parse(text)


def write_version_file(path: Path, version: SemanticVersion) -> bool:
    """
    Write the version marker.

    Returns:
        True if the file changed, False if it already held this version
    """
    if read_version_text(path) == version.to_string():
        return False
    path.write_text(f"{version.to_string()}\n", encoding='utf-8')
    return True


def resolve_version(argument: Optional[str], path: Path) -> SemanticVersion:
    """
    Determine the version to release.

    An explicit argument wins; otherwise the marker file is read.

    Raises:
        InvalidVersionFormat: If the argument or file content is malformed
        MissingVersionError: If there is no argument and no marker file
    """
    if argument is not None:
        return SemanticVersion.parse(argument)

    text = read_version_text(path)
    if text is None:
        raise MissingVersionError(
            f"No {path.name} file found and no version given. "
            f"Create one: echo '0.1.0' > {path.name}"
        )
    return SemanticVersion.parse(text)
