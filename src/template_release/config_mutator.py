# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

"""Format-preserving updates of the companion TOML config."""

from pathlib import Path
from typing import Any, List, Optional, Protocol
import tomlkit
from tomlkit.exceptions import TOMLKitError


class ConfigMutatorError(Exception):
    """Raised when the companion config cannot be read or updated."""
    pass


class ConfigMutator(Protocol):
    """Applies a single field value to a structured config file."""

    def read_field(self, file_path: Path, field_name: str) -> Optional[Any]:
        ...

    def set_field(self, file_path: Path, field_name: str, new_value: Any) -> bool:
        ...


class TomlConfigMutator:
    """
    ConfigMutator for TOML files, backed by tomlkit.

    Field names are dotted paths ("template.branch"). tomlkit keeps comments,
    ordering and whitespace, so everything except the edited value is written
    back byte for byte.
    """

    def _load(self, file_path: Path) -> tomlkit.TOMLDocument:
        try:
            return tomlkit.parse(Path(file_path).read_text(encoding='utf-8'))
        except TOMLKitError as e:
            raise ConfigMutatorError(f"Cannot parse {file_path}: {e}")

    @staticmethod
    def _split(field_name: str) -> List[str]:
        parts = field_name.split('.')
        if any(not part for part in parts):
            raise ConfigMutatorError(f"Invalid field path: {field_name!r}")
        return parts

    def read_field(self, file_path: Path, field_name: str) -> Optional[Any]:
        """
        Read a field value.

        Returns:
            The plain value, or None if the file or field does not exist
        """
        if not Path(file_path).exists():
            return None
        node: Any = self._load(file_path)
        for part in self._split(field_name):
            if not hasattr(node, 'get') or part not in node:
                return None
            node = node[part]
        return node.unwrap() if hasattr(node, 'unwrap') else node

    def set_field(self, file_path: Path, field_name: str, new_value: Any) -> bool:
        """
        Set a field value, creating missing tables.

        Returns:
            True if the file was rewritten, False if the field already held new_value
        """
        path = Path(file_path)
        if self.read_field(path, field_name) == new_value:
            return False

        doc = self._load(path) if path.exists() else tomlkit.document()
        *tables, key = self._split(field_name)

        node: Any = doc
        for part in tables:
            if part not in node:
                node[part] = tomlkit.table()
            node = node[part]
            if not hasattr(node, 'get'):
                raise ConfigMutatorError(
                    f"Cannot set {field_name!r} in {path}: {part!r} is not a table"
                )

        node[key] = new_value
        path.write_text(tomlkit.dumps(doc), encoding='utf-8')
        return True
