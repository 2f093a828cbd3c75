"""Shared pytest fixtures for uat-sync tests."""

import subprocess
from pathlib import Path

import pytest


def git(repo: Path, *args: str) -> str:
    """Run git in repo for test setup and return its stdout."""
    result = subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True
    )
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def isolated_git_env(tmp_path, monkeypatch):
    """Keep the user's git configuration out of the tests and fix the identity."""
    global_config = tmp_path / "gitconfig"
    global_config.write_text("")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.delenv("GIT_DIR", raising=False)
    monkeypatch.delenv("GIT_WORK_TREE", raising=False)


@pytest.fixture
def commit_file():
    """
    Return a helper that writes a file and commits it.

    Usage: commit_file(repo, "a.txt", "content", "Add a") -> commit hash
    """
    def _commit(repo: Path, name: str, content: str, message: str | None = None) -> str:
        (repo / name).write_text(content)
        git(repo, "add", name)
        git(repo, "commit", "-q", "-m", message or f"Update {name}")
        return git(repo, "rev-parse", "HEAD")

    return _commit


@pytest.fixture
def git_repo(tmp_path, commit_file):
    """
    Create a temporary git repository on master with one commit.

    Returns:
        Path: Path to the temporary git repository
    """
    repo = tmp_path / "test-repo"
    repo.mkdir()
    git(repo, "init", "-q", "--initial-branch=master")
    commit_file(repo, "README.md", "# Test Repo\n", "Initial commit")
    return repo


@pytest.fixture
def git_repo_with_remote(tmp_path, git_repo):
    """
    Create a git repository with a remote (bare repo).

    Returns:
        tuple: (main_repo_path, remote_repo_path)
    """
    remote_repo = tmp_path / "remote.git"
    git(tmp_path, "init", "-q", "--bare", "--initial-branch=master", str(remote_repo))
    git(git_repo, "remote", "add", "origin", str(remote_repo))
    git(git_repo, "push", "-q", "-u", "origin", "master")
    return git_repo, remote_repo


@pytest.fixture
def project(git_repo_with_remote, commit_file):
    """
    A remote laid out like a project that uses a UAT branch.

    Branches on the remote:
        master      README.md
        uat         master + a stale commit
        feature-a   master + a.txt
        feature/b   master + b.txt
        release     master + release.txt

    Returns:
        tuple: (seed_repo_path, remote_repo_path); the seed repo can be used
        to push further changes.
    """
    seed, remote = git_repo_with_remote

    for branch, name in [
        ("uat", "stale.txt"),
        ("feature-a", "a.txt"),
        ("feature/b", "b.txt"),
        ("release", "release.txt"),
    ]:
        git(seed, "checkout", "-q", "-b", branch, "master")
        commit_file(seed, name, f"{branch}\n", f"Add {name}")
        git(seed, "push", "-q", "origin", branch)

    git(seed, "checkout", "-q", "master")
    return seed, remote
