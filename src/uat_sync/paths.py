"""Working copy path resolution."""

from pathlib import Path


class NotARepositoryError(FileNotFoundError):
    """Raised when a path expected to hold a working copy does not."""


def resolve_path(path: str | Path | None = None, base: Path | None = None) -> Path:
    """
    Resolve a path to an absolute Path object.

    Args:
        path: Path to resolve. If None or empty string, returns current directory.
        base: Directory that relative paths are resolved against.
              Defaults to the current directory.

    Returns:
        Absolute Path object

    Example:
        resolve_path("~/work/uat")              # Returns /home/user/work/uat
        resolve_path("checkout", Path("/etc"))  # Returns /etc/checkout
    """
    if not path:
        return Path.cwd()

    resolved = Path(path).expanduser()
    if base is not None and not resolved.is_absolute():
        resolved = base / resolved
    return resolved.resolve()


def is_working_copy(path: Path) -> bool:
    """
    Check if the given path is the root of a non-bare git working copy.

    Args:
        path: Path to check

    Returns:
        True if path is a directory containing .git
    """
    return path.is_dir() and (path / ".git").exists()


def is_empty_or_missing(path: Path) -> bool:
    """Whether a clone may be placed at path."""
    return not path.exists() or (path.is_dir() and not any(path.iterdir()))


def resolve_repo(repo: str | Path | None = None) -> Path:
    """
    Resolve a path to a working copy and validate it exists.

    Args:
        repo: Path to repository. Uses current directory if not provided.

    Returns:
        Absolute path to the repository.

    Raises:
        NotARepositoryError: If the path doesn't point to a git working copy.
    """
    repo_path = resolve_path(repo)
    if not is_working_copy(repo_path):
        raise NotARepositoryError(f"not a git working copy: {repo_path}")
    return repo_path
