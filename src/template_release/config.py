# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

"""Configuration management for the release tool."""

from pathlib import Path
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator
import tomli


DEFAULT_CONFIG_PATHS = [
    "template_release.toml",
    ".template_release.toml",
    "config/template_release.toml",
]


class CompanionConfig(BaseModel):
    """Companion structured config whose branch field mirrors the release branch."""
    path: str = Field(
        default="cargo-generate.toml",
        description="Path of the companion TOML file, relative to the repository root"
    )
    field: str = Field(
        default="template.branch",
        description="Dotted path of the field holding the release branch name"
    )

    @field_validator('field')
    @classmethod
    def validate_field(cls, value: str) -> str:
        if not value or any(not part for part in value.split('.')):
            raise ValueError(f"Invalid dotted field path: {value!r}")
        return value


class BranchPolicyConfig(BaseModel):
    """Branch management policy for releases."""
    trunk_branches: List[str] = Field(
        default_factory=lambda: ["main", "master"],
        description="Branches a new version branch may be created from without confirmation"
    )


class VersionPolicyConfig(BaseModel):
    """Version marker and tag naming policy."""
    version_file: str = Field(
        default="VERSION",
        description="Single-line file holding the current version"
    )
    tag_prefix: str = Field(
        default="v",
        description="Prefix for version tags"
    )

    @field_validator('tag_prefix')
    @classmethod
    def validate_tag_prefix(cls, value: str) -> str:
        # Branches are named after the bare version, so an empty prefix
        # would make every tag collide with its branch
        if not value:
            raise ValueError("tag_prefix must not be empty")
        return value


class TemplatesConfig(BaseModel):
    """Jinja2 templates for generated messages."""
    commit_message: str = Field(
        default="chore(release): prepare version {{ version }}",
        description="Message of the commit that records version metadata"
    )
    dirty_commit_message: str = Field(
        default="chore: commit pending changes before release {{ version }}",
        description="Default message when committing a dirty working tree"
    )
    tag_message: str = Field(
        default=(
            "Release {{ version }}\n"
            "{% if remote_url %}\n"
            "Template installation:\n"
            "- Via branch: cargo generate --git {{ remote_url }} --branch {{ branch }}\n"
            "- Via tag: cargo generate --git {{ remote_url }} --tag {{ tag }}\n"
            "{% endif %}"
        ),
        description="Annotated tag message"
    )
    install_hint: str = Field(
        default="cargo generate --git {{ remote_url }} --branch {{ branch }} --name myapp",
        description="Install command printed after a successful release"
    )


class Config(BaseModel):
    """Main configuration model."""
    remote: str = Field(default="origin", description="Remote to publish to")
    companion: CompanionConfig = Field(default_factory=CompanionConfig)
    branch_policy: BranchPolicyConfig = Field(default_factory=BranchPolicyConfig)
    version_policy: VersionPolicyConfig = Field(default_factory=VersionPolicyConfig)
    templates: TemplatesConfig = Field(default_factory=TemplatesConfig)

    @classmethod
    def from_file(cls, config_path: str) -> "Config":
        """Load configuration from TOML file."""
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(path, 'rb') as f:
            data = tomli.load(f)

        return cls(**data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Load configuration from dictionary."""
        return cls(**data)

    def branch_name(self, version) -> str:
        """Release branch name: the version string verbatim."""
        return version.to_string()

    def tag_name(self, version) -> str:
        """Release tag name: tag prefix plus version."""
        return f"{self.version_policy.tag_prefix}{version.to_string()}"


def load_config(config_path: Optional[str] = None, search_dir: Optional[Path] = None) -> Config:
    """Load configuration from file or use defaults.

    Args:
        config_path: Path to config file (optional, will search default locations if not provided)
        search_dir: Directory the default locations are relative to (defaults to cwd)

    Returns:
        Config object
    """
    if config_path:
        return Config.from_file(config_path)

    base = search_dir or Path.cwd()
    for default_path in DEFAULT_CONFIG_PATHS:
        candidate = base / default_path
        if candidate.exists():
            return Config.from_file(str(candidate))

    # Every setting has a default, so a missing file is fine
    return Config()
