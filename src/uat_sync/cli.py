"""Command line entry point."""

import logging
import subprocess

import click

from .config import ConfigError, SyncConfig, load_config
from .ssh import SshSettings
from .workflow import sync_staging

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbosity: int) -> None:
    """WARNING by default, INFO with -v, DEBUG (git command lines) with -vv."""
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("uat_sync").setLevel(level)


def build_config(
    config_file: str | None,
    url: str | None,
    path: str | None,
    blacklist: tuple[str, ...],
    insecure_host_keys: bool,
    **overrides,
) -> SyncConfig:
    """
    Combine the config file (if any) with command line overrides.

    Blacklist entries given on the command line are added to the file's.
    """
    if config_file:
        config = load_config(config_file).replace(url=url, path=path, **overrides)
    else:
        if not url or not path:
            raise ConfigError("--url and --path are required without --config")
        config = SyncConfig(url=url, path=path).replace(**overrides)

    if blacklist:
        config = config.replace(blacklist=config.blacklist + blacklist)
    if insecure_host_keys:
        config = config.replace(
            ssh=SshSettings(command=config.ssh.command, strict_host_key_checking=False)
        )
    return config


def describe_failure(error: Exception) -> str:
    """One message for any failure, including git's own stderr."""
    if isinstance(error, subprocess.CalledProcessError):
        command = " ".join(str(arg) for arg in error.cmd)
        detail = (error.stderr or error.stdout or "").strip()
        message = f"{command} failed with exit status {error.returncode}"
        return f"{message}\n{detail}" if detail else message
    return str(error)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="uat-sync")
@click.option("-c", "--config", "config_file", type=click.Path(dir_okay=False),
              help="JSON configuration file.")
@click.option("--url", help="Remote repository URL.")
@click.option("--path", help="Local working copy; cloned when missing.")
@click.option("--remote", help="Remote name in the working copy [origin].")
@click.option("--main", "main_branch", help="Branch staging is rebuilt from [master].")
@click.option("--staging", "staging_branch", help="Branch to rebuild [uat].")
@click.option("-b", "--blacklist", multiple=True,
              help="Branch name or pattern to leave out. Repeatable.")
@click.option("--no-push", is_flag=True, help="Leave the remote untouched.")
@click.option("--force-push", is_flag=True,
              help="Push with --force-with-lease.")
@click.option("--insecure-host-keys", is_flag=True,
              help="Accept any ssh host key. Only for throwaway environments.")
@click.option("-n", "--dry-run", is_flag=True, help="Do everything except pushing.")
@click.option("-v", "--verbose", count=True, help="More logging; repeat for git commands.")
def main(config_file, url, path, remote, main_branch, staging_branch, blacklist,
         no_push, force_push, insecure_host_keys, dry_run, verbose):
    """Reset the staging branch to main and merge every feature branch into it."""
    configure_logging(verbose)

    try:
        config = build_config(
            config_file,
            url,
            path,
            blacklist,
            insecure_host_keys,
            remote=remote,
            main_branch=main_branch,
            staging_branch=staging_branch,
            push=False if no_push else None,
            force_push=force_push or None,
        )
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    try:
        result = sync_staging(config, dry_run=dry_run)
    except (subprocess.CalledProcessError, OSError) as e:
        logger.error("Sync of %s failed", config.staging_branch)
        raise click.ClickException(describe_failure(e)) from e

    state = "pushed" if result.pushed else "not pushed"
    logger.info("Merged %d branch(es) into %s", len(result.merged), config.staging_branch)
    click.echo(f"{config.staging_branch} is at {result.staging_commit} ({state})")
