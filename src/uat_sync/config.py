"""Sync configuration loading."""

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .paths import resolve_path
from .ssh import SshSettings

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised for missing, malformed or inconsistent configuration."""


@dataclass(frozen=True)
class SyncConfig:
    """
    Everything a sync run needs to know.

    Attributes:
        url: Remote URL to clone from and push to.
        path: Local working copy location.
        remote: Name given to the remote in the working copy.
        main_branch: Branch staging is rebuilt from.
        staging_branch: Branch that receives the feature merges.
        blacklist: Branch names or gitignore-style patterns to leave alone.
        push: Push staging when done.
        force_push: Push with ``--force-with-lease``.
        ssh: ssh transport settings.
    """

    url: str
    path: Path
    remote: str = "origin"
    main_branch: str = "master"
    staging_branch: str = "uat"
    blacklist: tuple[str, ...] = ()
    push: bool = True
    force_push: bool = False
    ssh: SshSettings = field(default_factory=SshSettings)

    def __post_init__(self):
        if not self.url:
            raise ConfigError("url is required")
        if not self.path:
            raise ConfigError("path is required")
        for key in ("remote", "main_branch", "staging_branch"):
            if not getattr(self, key):
                raise ConfigError(f"{key} must not be empty")
        if self.main_branch == self.staging_branch:
            raise ConfigError(
                f"main_branch and staging_branch are both {self.main_branch!r}"
            )
        object.__setattr__(self, "path", resolve_path(self.path))
        object.__setattr__(self, "blacklist", tuple(self.blacklist))

    def replace(self, **overrides: Any) -> "SyncConfig":
        """
        Return a copy with overrides applied; None values are ignored.

        Example:
            config = config.replace(staging_branch="qa", push=None)
        """
        changes = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **changes)


def _parse_csv_config(value: str) -> list[str]:
    """
    Parse a comma-separated config value into a list.

    Splits on commas, strips whitespace, and filters out empty strings.

    """
    return [stripped for item in value.split(",") if (stripped := item.strip())]


def _parse_blacklist(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(_parse_csv_config(value))
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return tuple(value)
    raise ConfigError("blacklist must be a list of strings or a comma-separated string")


def _parse_ssh(value: Any) -> SshSettings:
    if not isinstance(value, dict):
        raise ConfigError("ssh must be an object")
    known = {f.name for f in dataclasses.fields(SshSettings)}
    if unknown := sorted(set(value) - known):
        raise ConfigError(f"unknown ssh setting(s): {', '.join(unknown)}")
    if not isinstance(value.get("command", ""), str):
        raise ConfigError("ssh.command must be a string")
    if not isinstance(value.get("strict_host_key_checking", True), bool):
        raise ConfigError("ssh.strict_host_key_checking must be true or false")
    return SshSettings(**value)


def config_from_dict(data: dict[str, Any], base: Path | None = None) -> SyncConfig:
    """
    Build a SyncConfig from decoded JSON.

    Args:
        data: Mapping with SyncConfig field names as keys.
        base: Directory a relative ``path`` is resolved against.

    Raises:
        ConfigError: On unknown keys, missing keys or wrong value types.
    """
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a JSON object")

    known = {f.name for f in dataclasses.fields(SyncConfig)}
    if unknown := sorted(set(data) - known):
        raise ConfigError(f"unknown setting(s): {', '.join(unknown)}")
    if missing := sorted({"url", "path"} - set(data)):
        raise ConfigError(f"missing setting(s): {', '.join(missing)}")

    values = dict(data)
    for key in ("url", "path", "remote", "main_branch", "staging_branch"):
        if key in values and not isinstance(values[key], str):
            raise ConfigError(f"{key} must be a string")
    for key in ("push", "force_push"):
        if key in values and not isinstance(values[key], bool):
            raise ConfigError(f"{key} must be true or false")

    values["path"] = resolve_path(values["path"], base=base)
    if "blacklist" in values:
        values["blacklist"] = _parse_blacklist(values["blacklist"])
    if "ssh" in values:
        values["ssh"] = _parse_ssh(values["ssh"])

    return SyncConfig(**values)


def load_config(path: str | Path) -> SyncConfig:
    """
    Read a JSON configuration file.

    A relative ``path`` setting is taken relative to the file's directory.

    Example:
        {
            "url": "git@github.com:acme/shop.git",
            "path": "./checkout",
            "main_branch": "master",
            "staging_branch": "uat",
            "blacklist": ["master", "release/*"]
        }
    """
    config_path = resolve_path(path)
    logger.debug("Loading configuration from %s", config_path)
    try:
        data = json.loads(config_path.read_text())
    except OSError as e:
        raise ConfigError(f"cannot read {config_path}: {e.strerror}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"{config_path}: invalid JSON: {e}") from e
    return config_from_dict(data, base=config_path.parent)
