"""Remote branch references and blacklist filtering."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import pathspec

logger = logging.getLogger(__name__)

HEAD = "HEAD"
HEADS_PREFIX = "refs/heads/"


def branch_name(ref: str) -> str:
    """
    Return the final path segment of a fully qualified reference.

    >>> branch_name("refs/heads/feature/login")
    'login'
    >>> branch_name("HEAD")
    'HEAD'

    """
    return ref.rsplit("/", 1)[-1]


def short_branch_name(ref: str) -> str:
    """
    Strip the ``refs/heads/`` prefix from a reference.

    >>> short_branch_name("refs/heads/feature/login")
    'feature/login'

    """
    return ref.removeprefix(HEADS_PREFIX)


@dataclass(frozen=True)
class RemoteRef:
    """A reference advertised by the remote, with the commit it points at."""

    ref: str
    commit: str = ""

    @property
    def name(self) -> str:
        """Local branch name used for this reference."""
        return branch_name(self.ref)

    @property
    def short_name(self) -> str:
        """Branch path on the remote, e.g. ``feature/login``."""
        return short_branch_name(self.ref)


def _blacklist_spec(blacklist: Iterable[str]) -> pathspec.PathSpec:
    return pathspec.PathSpec.from_lines("gitwildmatch", blacklist)


def _is_listed(name: str, entries: tuple[str, ...], spec: pathspec.PathSpec) -> bool:
    # Literal names first: "#123" or "!urgent" are valid branch names but
    # gitignore syntax reads them as a comment and a negation.
    return name in entries or branch_name(name) in entries or spec.match_file(name)


def is_blacklisted(name: str, blacklist: Iterable[str]) -> bool:
    """
    Check a branch against blacklist entries.

    An entry equal to the branch path or its final segment always matches.
    Otherwise entries use gitignore syntax: a plain name matches that branch
    at any depth, ``release/*`` matches a namespace, ``!keep`` re-includes.

    Args:
        name: Branch path as shown on the remote (``short_name``).
        blacklist: Names or patterns to exclude.

    """
    entries = tuple(blacklist)
    return _is_listed(name, entries, _blacklist_spec(entries))


def filter_branches(
    refs: Iterable[RemoteRef],
    blacklist: Iterable[str] = (),
    reserved: Iterable[str] = (),
) -> list[RemoteRef]:
    """
    Drop HEAD and blacklisted branches from a reference listing.

    The result holds unique local names in listing order. When two refs
    collapse to the same local name only the first is kept. A reserved
    local name can only be taken by the branch of exactly that name, so
    ``hotfix/master`` never stands in for ``master``.

    Args:
        refs: References as listed on the remote.
        blacklist: Branch names or gitignore-style patterns to exclude.
        reserved: Local names other branches may not collapse into.

    Returns:
        Remaining references.

    Example:
        refs = [RemoteRef("HEAD"), RemoteRef("refs/heads/master"), RemoteRef("refs/heads/f1")]
        filter_branches(refs, ["master"])
        # Returns: [RemoteRef("refs/heads/f1")]

    """
    entries = tuple(blacklist)
    spec = _blacklist_spec(entries)
    reserved = set(reserved)

    kept: list[RemoteRef] = []
    seen: set[str] = set()
    for ref in refs:
        if ref.ref == HEAD or _is_listed(ref.short_name, entries, spec):
            continue
        if ref.name in reserved and ref.short_name != ref.name:
            logger.warning(
                "Skipping %s: its local name %r is reserved for %s",
                ref.ref, ref.name, HEADS_PREFIX + ref.name,
            )
            continue
        if ref.name in seen:
            logger.warning("Skipping %s: local branch %r already taken", ref.ref, ref.name)
            continue
        seen.add(ref.name)
        kept.append(ref)
    return kept
