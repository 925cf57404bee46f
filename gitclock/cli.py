"""
GitClock CLI - Mirror local changes into a daily changelog on GitHub.

Commands:
    init       - Write a sample gitclock.yml
    login      - Authenticate with GitHub (browser OAuth or --token)
    logout     - Forget the stored access token
    interval   - Show or set the sync interval (minutes)
    bootstrap  - Make sure the changelog repository exists
    status     - Show detected local changes
    sync       - Run one sync cycle now
    watch      - Sync on a timer until interrupted
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

# Load .env file from current directory or repo root
load_dotenv()
from .config import get_repo_root
load_dotenv(get_repo_root() / ".env")

from . import __version__
from .auth import login_with_browser
from .bootstrap import BootstrapError, BootstrapOutcome, ensure_repository
from .changelog import UNKNOWN_COUNT, changelog_filename, render_rows
from .config import (
    CONFIG_FILENAME,
    ConfigError,
    GitClockConfig,
    IntervalError,
    MIN_INTERVAL_MINUTES,
)
from .git import DetectionError, detect_changes
from .github import GitHubClient
from .scheduler import CycleStatus, SyncScheduler, run_sync_cycle
from .session import AuthError, Session, SettingsStore


SAMPLE_CONFIG = f"""\
# GitClock Configuration

# Repository (under your GitHub account) that receives the daily changelogs
repo_name: gitclock-logs

# GitHub API base URL (change for GitHub Enterprise)
api_url: https://api.github.com

# Minutes between sync cycles (minimum {MIN_INTERVAL_MINUTES})
interval_minutes: {MIN_INTERVAL_MINUTES}

# OAuth app used by `gitclock login` (or set CLIENT_ID, CLIENT_SECRET, ... in .env)
oauth:
  client_id: ""
  client_secret: ""
  auth_url: https://github.com/login/oauth/authorize?scope=repo
  token_url: https://github.com/login/oauth/access_token
  redirect_uri: http://localhost:5000/oauthCallback
"""


class EchoNotifier:
    """Notifier that prints to the terminal."""

    def info(self, message: str) -> None:
        click.echo(message)

    def error(self, message: str) -> None:
        click.secho(message, fg="red", err=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _load_session() -> Session:
    try:
        config = GitClockConfig.load(get_repo_root())
    except ConfigError as e:
        click.echo(f"Invalid {CONFIG_FILENAME}: {e}", err=True)
        sys.exit(1)
    return Session(config=config, settings=SettingsStore(), notifier=EchoNotifier())


def _client(session: Session) -> GitHubClient:
    try:
        token = session.require_token()
    except AuthError as e:
        session.notifier.error(str(e))
        sys.exit(1)
    return GitHubClient(token, api_url=session.config.api_url)


def _bootstrap(session: Session, client: GitHubClient) -> bool:
    repo_name = session.config.repo_name
    if repo_name in session.bootstrapped:
        return True
    try:
        outcome = ensure_repository(client, repo_name)
    except BootstrapError as e:
        session.notifier.error(str(e))
        return False
    if outcome == BootstrapOutcome.CREATED:
        session.notifier.info(f'Repository "{repo_name}" created successfully.')
    else:
        session.notifier.info(f'Repository "{repo_name}" exists.')
    session.bootstrapped.add(repo_name)
    return True


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """GitClock - Mirror local changes into a daily changelog on GitHub."""
    _configure_logging(verbose)


@main.command()
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Write a sample gitclock.yml in the current repository."""
    repo_root = get_repo_root()
    config_path = repo_root / CONFIG_FILENAME
    if not config_path.exists() or force:
        config_path.write_text(SAMPLE_CONFIG)
        click.echo(f"  Created: {config_path}")
    else:
        click.echo(f"  Skipped: {config_path} (already exists)")

    click.echo("\nNext steps:")
    click.echo(f"  1. Edit {CONFIG_FILENAME} (repo_name, OAuth app)")
    click.echo("  2. Run: gitclock login")
    click.echo("  3. Run: gitclock watch")


@main.command()
@click.option("--token", default=None, help="Store this access token instead of running OAuth")
@click.option("--no-bootstrap", is_flag=True, help="Skip creating the changelog repository")
def login(token: str | None, no_bootstrap: bool):
    """Authenticate with GitHub."""
    session = _load_session()

    if not token:
        click.echo("Opening GitHub login page...")
        try:
            token = login_with_browser(session.config.oauth)
        except AuthError as e:
            session.notifier.error(str(e))
            sys.exit(1)
        except OSError as e:
            session.notifier.error(f"Error starting OAuth flow: {e}")
            sys.exit(1)

    session.save_token(token)
    session.notifier.info("GitHub login successful!")

    if not no_bootstrap:
        if not _bootstrap(session, _client(session)):
            sys.exit(1)


@main.command()
def logout():
    """Forget the stored access token."""
    session = _load_session()
    session.clear_token()
    click.echo("Logged out.")


@main.command()
@click.argument("minutes", required=False)
def interval(minutes: str | None):
    """Show or set the sync interval in minutes."""
    session = _load_session()

    if minutes is None:
        click.echo(f"Commit interval: {session.interval_minutes} minutes (minimum {MIN_INTERVAL_MINUTES})")
        return

    try:
        session.set_interval(minutes)
    except IntervalError as e:
        session.notifier.error(str(e))
        sys.exit(1)


@main.command()
def bootstrap():
    """Make sure the changelog repository exists."""
    session = _load_session()
    if not _bootstrap(session, _client(session)):
        sys.exit(1)


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def status(as_json: bool):
    """Show local changes that the next sync would log."""
    working_dir = Path.cwd()
    try:
        records = detect_changes(working_dir)
    except DetectionError as e:
        click.echo(f"Cannot read git status: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([
            {
                "path": r.path,
                "status": r.status.value,
                "code": r.code,
                "additions": r.additions,
                "deletions": r.deletions,
            }
            for r in records
        ], indent=2))
        return

    if not records:
        click.echo("No local changes.")
        return

    click.echo(f"{len(records)} changed path(s) in {working_dir}:\n")
    for r in records:
        adds = UNKNOWN_COUNT if r.additions is None else r.additions
        dels = UNKNOWN_COUNT if r.deletions is None else r.deletions
        click.echo(f"  [{r.code:>2}] {r.path}  (+{adds} / -{dels})")


@main.command()
@click.option("--dry-run", is_flag=True, help="Print the rows instead of publishing")
def sync(dry_run: bool):
    """Run one sync cycle now."""
    session = _load_session()
    working_dir = Path.cwd()

    if dry_run:
        try:
            records = detect_changes(working_dir)
        except DetectionError as e:
            click.echo(f"Cannot read git status: {e}", err=True)
            sys.exit(1)
        if not records:
            click.echo("No local changes.")
            return
        click.echo(f"Rows for {changelog_filename()}:")
        for row in render_rows(records):
            click.echo(row)
        return

    result = run_sync_cycle(session, working_dir)
    if result.status == CycleStatus.DETECTION_FAILED:
        click.echo(f"Cannot read git status: {result.error}", err=True)
    elif result.status == CycleStatus.NO_CHANGES:
        click.echo("No local changes.")

    if result.status in (
        CycleStatus.UNAUTHENTICATED,
        CycleStatus.DETECTION_FAILED,
        CycleStatus.PUBLISH_FAILED,
    ):
        sys.exit(1)


@main.command()
@click.option("--now", "sync_now", is_flag=True, help="Also run a cycle immediately")
def watch(sync_now: bool):
    """Sync on a timer until interrupted (Ctrl+C)."""
    session = _load_session()
    client = _client(session)
    if not _bootstrap(session, client):
        sys.exit(1)

    scheduler = SyncScheduler(session, Path.cwd())
    scheduler.start()
    click.echo(f"Watching {Path.cwd()} every {session.interval_minutes} minutes. Press Ctrl+C to stop.")
    if sync_now:
        scheduler.tick()

    try:
        scheduler.wait()
    except KeyboardInterrupt:
        click.echo("\nStopping.")
    finally:
        scheduler.stop()


if __name__ == "__main__":
    main()
