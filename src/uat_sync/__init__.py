"""Rebuild a staging/UAT branch from main plus every feature branch.

The git work itself is done by the ``git`` executable; this package clones
or refreshes a working copy, picks the branches to merge, and runs the
reset, merge and push steps in order.
"""

# Re-export the public API from submodules
from .branches import (
    RemoteRef,
    branch_name,
    filter_branches,
    is_blacklisted,
    short_branch_name,
)
from .config import (
    ConfigError,
    SyncConfig,
    config_from_dict,
    load_config,
)
from .paths import NotARepositoryError
from .ssh import SshSettings
from .workflow import SyncResult, sync_staging

__all__ = (
    "ConfigError",
    "NotARepositoryError",
    "RemoteRef",
    "SshSettings",
    "SyncConfig",
    "SyncResult",
    "branch_name",
    "config_from_dict",
    "filter_branches",
    "is_blacklisted",
    "load_config",
    "short_branch_name",
    "sync_staging",
)
