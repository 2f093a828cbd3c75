"""
Staging branch synchronization.

The run rebuilds the staging branch from scratch on every invocation:

1. obtain a working copy (clone, or open and fetch)
2. resolve the main branch's commit
3. list remote branches, minus HEAD, main and the blacklist
4. create a local tracking branch for each of them
5. hard-reset staging to the main commit
6. merge every feature branch into staging with ``--no-ff``
7. push staging

Steps run strictly one after another. The first failing git command raises
and ends the run; nothing is rolled back.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from . import git
from .branches import RemoteRef, filter_branches
from .config import SyncConfig
from .paths import is_empty_or_missing
from .ssh import ssh_environment

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of a successful sync run."""

    repo: Path
    main_commit: str
    tracked: list[str] = field(default_factory=list)
    merged: list[str] = field(default_factory=list)
    staging_commit: str = ""
    pushed: bool = False


def obtain_working_copy(config: SyncConfig, env: dict[str, str] | None = None) -> Path:
    """
    Clone the remote, or reuse and refresh an existing working copy.

    Leftovers from an earlier run that failed halfway (local edits, a
    conflicted merge) are discarded.

    Raises:
        FileExistsError: If path exists, is not empty and is not a repository.
    """
    path = config.path
    if git.is_repository(path):
        logger.info("Using existing working copy %s", path)
        git.discard_local_changes(path)
        if (current := git.remote_url(path, config.remote)) != config.url:
            logger.warning("Pointing %s at %s (was %s)", config.remote, config.url, current)
            git.set_remote_url(path, config.url, config.remote)
        git.fetch(path, config.remote, env=env)
        return path

    if not is_empty_or_missing(path):
        raise FileExistsError(f"{path} exists and is not a git working copy")

    return git.clone(config.url, path, remote=config.remote, env=env)


def resolve_main_commit(repo: Path, config: SyncConfig) -> str:
    """
    Check out the main branch at the remote's tip and return its commit.
    """
    upstream = f"{config.remote}/{config.main_branch}"
    commit = git.rev_parse(upstream, repo=repo)
    git.force_checkout(config.main_branch, upstream, repo=repo)
    git.set_upstream(config.main_branch, upstream, repo=repo)
    logger.info("%s is at %s", config.main_branch, commit[:12])
    return commit


def list_candidate_branches(repo: Path, config: SyncConfig) -> list[RemoteRef]:
    """
    List the remote's branches that take part in the run.

    Works from the refs fetched in the first step. Excludes HEAD, the main
    branch and everything matched by the blacklist. Branches whose local
    name would shadow main or staging (``hotfix/master``) are skipped with a
    warning.
    """
    refs = [
        ref for ref in git.list_remote_refs(repo, config.remote)
        if ref.short_name != config.main_branch
    ]
    candidates = filter_branches(
        refs,
        config.blacklist,
        reserved=(config.main_branch, config.staging_branch),
    )
    logger.info(
        "Remote branches in scope: %s",
        ", ".join(ref.short_name for ref in candidates) or "(none)",
    )
    return candidates


def track_branches(repo: Path, refs: list[RemoteRef], config: SyncConfig) -> list[str]:
    """
    Point a local branch at each remote branch and set its upstream.

    Returns:
        Local branch names, in the order given.
    """
    names = []
    for ref in refs:
        upstream = f"{config.remote}/{ref.short_name}"
        logger.info("Creating %s and setting upstream to %s", ref.name, upstream)
        git.create_tracking_branch(ref.name, upstream, repo=repo)
        names.append(ref.name)
    return names


def reset_staging(repo: Path, main_commit: str, config: SyncConfig) -> None:
    """Check out staging, creating it if needed, and hard-reset it to main."""
    staging = config.staging_branch
    logger.info("Resetting %s to head of %s", staging, config.main_branch)
    if git.branch_exists(staging, repo=repo):
        git.checkout(staging, repo=repo)
    else:
        logger.info("%s does not exist yet, creating it", staging)
        git.force_checkout(staging, main_commit, repo=repo)
    git.reset_hard(main_commit, repo=repo)


def merge_features(repo: Path, branches: list[str], config: SyncConfig) -> str:
    """
    Merge each branch into the checked out staging branch, without fast-forward.

    Returns:
        Staging's commit after the last merge.

    Raises:
        CalledProcessError: On the first merge that fails; later branches are
            not attempted.
    """
    commit = git.rev_parse("HEAD", repo=repo)
    for branch in branches:
        logger.info("Merging %s into %s", branch, config.staging_branch)
        commit = git.merge(branch, repo=repo, no_ff=True)
        logger.debug("%s is now at %s", config.staging_branch, commit)
    return commit


def push_staging(repo: Path, config: SyncConfig, env: dict[str, str] | None = None) -> None:
    """Push staging to the same branch on the remote."""
    ref = f"refs/heads/{config.staging_branch}"
    logger.info("Pushing %s to %s", config.staging_branch, config.remote)
    git.push(
        repo,
        [f"{ref}:{ref}"],
        config.remote,
        force_with_lease=config.force_push,
        env=env,
    )


def sync_staging(config: SyncConfig, *, dry_run: bool = False) -> SyncResult:
    """
    Rebuild the staging branch from main plus every feature branch.

    Args:
        config: What to sync and where.
        dry_run: Do everything locally but never push.

    Returns:
        SyncResult describing the new staging branch.

    Example:
        config = load_config("uat-sync.json")
        result = sync_staging(config)
        print(result.staging_commit)
    """
    env = ssh_environment(config.url, config.ssh)

    repo = obtain_working_copy(config, env)
    main_commit = resolve_main_commit(repo, config)
    refs = list_candidate_branches(repo, config)
    tracked = track_branches(repo, refs, config)

    reset_staging(repo, main_commit, config)
    features = [name for name in tracked if name != config.staging_branch]
    staging_commit = merge_features(repo, features, config)

    result = SyncResult(
        repo=repo,
        main_commit=main_commit,
        tracked=tracked,
        merged=features,
        staging_commit=staging_commit,
    )

    if dry_run:
        logger.info("Dry run, not pushing %s", config.staging_branch)
    elif config.push:
        push_staging(repo, config, env)
        result.pushed = True

    return result
