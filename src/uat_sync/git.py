"""Core git operations."""

import logging
import os
import shlex
import subprocess
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .branches import RemoteRef
from .paths import resolve_path, resolve_repo

logger = logging.getLogger(__name__)


def run_git(
    *args: str,
    repo: Path | None = None,
    check: bool = True,
    capture: bool = False,
    env: Mapping[str, str] | None = None,
    **kwargs: Any,
) -> subprocess.CompletedProcess:
    """
    Run a git command and return the result.

    Args:
        *args: Git command arguments (e.g., "status", "--porcelain")
        repo: Optional repository path. If None, runs in current directory.
        check: Whether to raise CalledProcessError on non-zero exit (default: True)
        capture: Whether to capture stdout/stderr (default: False)
        env: Extra environment variables layered over the current environment.
        **kwargs: Additional arguments to pass to subprocess.run()

    Returns:
        CompletedProcess result

    Example:
        # Run in current directory
        run_git("status", "--short", capture=True)

        # Run in specific repo, with ssh settings for the remote
        run_git("fetch", "origin", repo=Path("/path/to/repo"), env=ssh_env)
    """
    cmd = ["git"]

    # Add -C flag if repo is specified
    if repo is not None:
        cmd.extend(["-C", str(repo)])

    cmd.extend(args)
    logger.debug("running %s", shlex.join(cmd))

    if env:
        kwargs["env"] = {**os.environ, **env}

    # Set up capture if requested
    if capture:
        return subprocess.run(
            cmd, capture_output=True, text=True, check=check, **kwargs
        )

    return subprocess.run(cmd, check=check, **kwargs)


def git_config(
    key: str,
    repo: Path | None = None,
    default: str | None = None,
) -> str | None:
    """
    Get a git config value.

    Example:
        email = git_config("user.email")
    """
    result = run_git("config", key, repo=repo, capture=True, check=False)
    if result.returncode == 0 and result.stdout.strip():
        return result.stdout.strip()
    return default


def is_repository(path: str | Path) -> bool:
    """
    Check whether path is the top level of a git working copy.

    A directory nested inside some other working copy does not count, so a
    clone target inside an unrelated checkout is still treated as empty.
    """
    path = resolve_path(path)
    if not path.is_dir():
        return False
    result = run_git("rev-parse", "--show-toplevel", repo=path, capture=True, check=False)
    return result.returncode == 0 and Path(result.stdout.strip()).resolve() == path


def clone(
    url: str,
    path: str | Path,
    *,
    remote: str = "origin",
    env: Mapping[str, str] | None = None,
) -> Path:
    """
    Clone url into path and return the working copy location.

    Example:
        repo = clone("git@github.com:acme/shop.git", Path("~/uat/shop"))
    """
    path = resolve_path(path)
    logger.info("Cloning %s into %s", url, path)
    run_git("clone", "--origin", remote, url, str(path), capture=True, env=env)
    return resolve_repo(path)


def fetch(
    repo: Path,
    remote: str = "origin",
    *,
    env: Mapping[str, str] | None = None,
) -> None:
    """Fetch remote into repo, pruning deleted remote-tracking refs."""
    logger.info("Fetching %s", remote)
    run_git("fetch", "--prune", remote, repo=repo, capture=True, env=env)


def rev_parse(rev: str, repo: Path | None = None) -> str:
    """
    Resolve a revision to a full commit hash.

    Raises:
        CalledProcessError: If rev does not name a commit.
    """
    result = run_git("rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}", repo=repo, capture=True)
    return result.stdout.strip()


def discard_local_changes(repo: Path) -> None:
    """
    Throw away uncommitted changes and any interrupted merge.

    Does nothing in a repository without commits.
    """
    head = run_git("rev-parse", "--verify", "--quiet", "HEAD", repo=repo, capture=True, check=False)
    if head.returncode != 0:
        return
    if has_uncommitted_changes(repo):
        logger.warning("Discarding local changes in %s", repo)
    run_git("reset", "--hard", "--quiet", repo=repo, capture=True)


def list_remote_refs(repo: Path, remote: str = "origin") -> list[RemoteRef]:
    """
    List the remote's branches as recorded by the last fetch or clone.

    Remote-tracking refs are mapped back to the names the remote uses
    (``refs/remotes/origin/feature`` becomes ``refs/heads/feature``);
    ``origin/HEAD`` becomes ``HEAD``. Every returned branch therefore has a
    ``<remote>/<branch>`` ref to start a local branch from.

    Returns:
        RemoteRef entries sorted by name, as git lists them.
    """
    prefix = f"refs/remotes/{remote}/"
    result = run_git(
        "for-each-ref", "--format=%(objectname) %(refname)", prefix,
        repo=repo,
        capture=True,
    )

    refs = []
    for line in result.stdout.splitlines():
        if not line.strip():
            continue
        commit, ref = line.split(" ", 1)
        short = ref.removeprefix(prefix)
        refs.append(RemoteRef(ref="HEAD" if short == "HEAD" else f"refs/heads/{short}", commit=commit))
    return refs


def remote_url(repo: Path, remote: str = "origin") -> str | None:
    """URL configured for remote, or None when the remote does not exist."""
    return git_config(f"remote.{remote}.url", repo=repo)


def set_remote_url(repo: Path, url: str, remote: str = "origin") -> None:
    """Point remote at url, adding the remote when it does not exist."""
    if remote_url(repo, remote) is None:
        run_git("remote", "add", remote, url, repo=repo, capture=True)
    else:
        run_git("remote", "set-url", remote, url, repo=repo, capture=True)


def branch_exists(branch: str, repo: Path | None = None) -> bool:
    """Whether a local branch of that name exists."""
    result = run_git(
        "show-ref", "--verify", "--quiet", f"refs/heads/{branch}",
        repo=repo,
        check=False,
    )
    return result.returncode == 0


def checkout(branch: str, repo: Path | None = None) -> None:
    """Check out an existing local branch."""
    run_git("checkout", "--quiet", branch, repo=repo, capture=True)


def force_checkout(branch: str, start_point: str, repo: Path | None = None) -> None:
    """
    Check out branch, creating it or moving it to start_point.

    Local modifications are discarded.
    """
    run_git("checkout", "--quiet", "--force", "-B", branch, start_point, repo=repo, capture=True)


def reset_hard(commit: str, repo: Path | None = None) -> None:
    """Point the current branch, index and working tree at commit."""
    run_git("reset", "--hard", "--quiet", commit, repo=repo, capture=True)


def set_upstream(branch: str, upstream: str, repo: Path | None = None) -> None:
    """Make branch track upstream (e.g. ``origin/feature``)."""
    run_git("branch", "--quiet", f"--set-upstream-to={upstream}", branch, repo=repo, capture=True)


def create_tracking_branch(branch: str, upstream: str, repo: Path | None = None) -> str:
    """
    Create (or move) a local branch to the tip of upstream and track it.

    The branch must not be the one currently checked out.

    Returns:
        The commit the branch now points at.
    """
    run_git("branch", "--force", "--no-track", branch, upstream, repo=repo, capture=True)
    set_upstream(branch, upstream, repo=repo)
    return rev_parse(branch, repo=repo)


def merge(source: str, repo: Path | None = None, *, no_ff: bool = False) -> str:
    """
    Merge source into the current branch.

    Args:
        source: Branch or commit to merge.
        repo: Optional repository path. If None, uses current directory.
        no_ff: Always create a merge commit.

    Returns:
        The commit the current branch points at afterwards.

    Raises:
        CalledProcessError: On conflicts; the working copy is left mid-merge.
    """
    args = ["merge", "--no-edit"]
    if no_ff:
        args.append("--no-ff")
    args.append(source)

    run_git(*args, repo=repo, capture=True)
    return rev_parse("HEAD", repo=repo)


def push(
    repo: Path,
    refspecs: list[str],
    remote: str = "origin",
    *,
    force_with_lease: bool = False,
    env: Mapping[str, str] | None = None,
) -> None:
    """
    Push refspecs to remote.

    Example:
        push(repo, ["refs/heads/uat:refs/heads/uat"], force_with_lease=True)
    """
    args = ["push", "--porcelain"]
    if force_with_lease:
        args.append("--force-with-lease")
    args.append(remote)
    args.extend(refspecs)
    run_git(*args, repo=repo, capture=True, env=env)


def current_branch(repo: Path | None = None) -> str:
    """
    Get the currently checked out branch name.

    Example:
        branch = current_branch(Path("/path/to/repo"))
    """
    result = run_git("branch", "--show-current", repo=repo, capture=True)
    return result.stdout.strip()


def has_uncommitted_changes(repo: Path | None = None) -> bool:
    """
    Check if there are uncommitted changes in the working tree.

    This includes both tracked and untracked files.
    """
    result = run_git("status", "--porcelain", repo=repo, capture=True)
    return bool(result.stdout.strip())


def is_ancestor(ancestor: str, descendant: str, repo: Path | None = None) -> bool:
    """Whether ancestor is reachable from descendant."""
    result = run_git(
        "merge-base", "--is-ancestor", ancestor, descendant,
        repo=repo,
        check=False,
    )
    return result.returncode == 0
