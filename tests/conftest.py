# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

"""Shared pytest fixtures."""

import pytest
from git import Repo

from template_release.config import Config
from template_release.git_ops import GitOperations
from helpers.git_helpers import (
    add_remote, add_template_files, clone_repo, init_bare_remote, init_git_repo
)
from helpers.config_helpers import create_test_config


@pytest.fixture
def bare_remote(tmp_path) -> Repo:
    """
    Create a bare repository acting as 'origin'.

    Returns:
        Bare Repo object
    """
    return init_bare_remote(tmp_path / "remote.git")


@pytest.fixture
def tmp_git_repo(tmp_path, bare_remote):
    """
    Create a temporary git repository with 'main' pushed to a bare origin.

    Returns:
        Tuple of (repo_path, Repo object)
    """
    repo_path = tmp_path / "test_repo"
    repo_path.mkdir()

    repo = init_git_repo(repo_path)
    add_remote(repo, bare_remote)

    yield repo_path, repo

    # Cleanup handled by tmp_path


@pytest.fixture
def template_repo(tmp_git_repo):
    """
    A repository that already carries a committed cargo-generate.toml.

    Returns:
        Tuple of (repo_path, Repo object)
    """
    repo_path, repo = tmp_git_repo
    add_template_files(repo)
    return repo_path, repo


@pytest.fixture
def other_clone(tmp_path, bare_remote, tmp_git_repo) -> Repo:
    """
    A second working copy of origin, standing in for a concurrent user.

    Returns:
        Repo object
    """
    return clone_repo(bare_remote, tmp_path / "other_clone")


@pytest.fixture
def test_config_dict():
    """
    Create a basic test configuration dictionary.

    Returns:
        Configuration dictionary
    """
    return create_test_config()


@pytest.fixture
def test_config(test_config_dict) -> Config:
    """
    Create a Config object from test configuration.

    Returns:
        Config instance
    """
    return Config.from_dict(test_config_dict)


@pytest.fixture
def git_ops(tmp_git_repo, test_config) -> GitOperations:
    """GitOperations bound to the temporary repository."""
    repo_path, _ = tmp_git_repo
    return GitOperations(str(repo_path), remote=test_config.remote)
