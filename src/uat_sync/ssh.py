"""SSH transport settings handed to git."""

import logging
import os
import shlex
import shutil
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SshSettings:
    """
    How git should run ssh.

    Authentication always goes through the SSH agent: ssh runs in batch
    mode, so it never falls back to prompting for a password or passphrase.

    Attributes:
        command: ssh executable (default: ``ssh``).
        strict_host_key_checking: Verify the server's host key against
            known_hosts. Turning this off accepts any host key.
    """

    command: str = "ssh"
    strict_host_key_checking: bool = True


def is_ssh_url(url: str) -> bool:
    """
    Whether git would reach url over ssh.

    >>> is_ssh_url("git@github.com:acme/shop.git")
    True
    >>> is_ssh_url("ssh://git@example.com/shop.git")
    True
    >>> is_ssh_url("https://github.com/acme/shop.git")
    False
    >>> is_ssh_url("/srv/git/shop.git")
    False

    """
    if url.startswith(("ssh://", "git+ssh://", "ssh+git://")):
        return True
    if "://" in url:
        return False
    # scp-like syntax: [user@]host:path, with no slash before the colon
    head, sep, _ = url.partition(":")
    return bool(sep) and "/" not in head and len(head) > 1


def is_agent_available() -> bool:
    """Check that an SSH agent socket is advertised in the environment."""
    sock = os.environ.get("SSH_AUTH_SOCK")
    return bool(sock) and os.path.exists(sock)


def ssh_command(settings: SshSettings) -> str:
    """
    Build the GIT_SSH_COMMAND value for settings.

    >>> ssh_command(SshSettings())
    'ssh -o BatchMode=yes -o StrictHostKeyChecking=yes'

    """
    host_keys = "yes" if settings.strict_host_key_checking else "no"
    parts = [
        *shlex.split(settings.command),
        "-o", "BatchMode=yes",
        "-o", f"StrictHostKeyChecking={host_keys}",
    ]
    if not settings.strict_host_key_checking:
        parts += ["-o", "UserKnownHostsFile=/dev/null"]
    return shlex.join(parts)


def ssh_environment(url: str, settings: SshSettings) -> dict[str, str]:
    """
    Environment variables git needs to reach url.

    Returns an empty mapping for non-ssh URLs. Logs a warning when the SSH
    agent is unavailable or when host key checking is disabled.

    Example:
        env = ssh_environment(config.url, config.ssh)
        run_git("ls-remote", "origin", repo=repo, env=env)
    """
    if not is_ssh_url(url):
        return {}

    if shutil.which(shlex.split(settings.command)[0]) is None:
        logger.warning("ssh command %r not found in PATH", settings.command)
    if not is_agent_available():
        logger.warning("SSH_AUTH_SOCK is not set; ssh agent authentication will fail")
    if not settings.strict_host_key_checking:
        logger.warning("Host key checking is disabled for %s", url)

    return {"GIT_SSH_COMMAND": ssh_command(settings)}
