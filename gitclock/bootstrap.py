"""
Make sure the changelog repository exists.

Runs once per activation: if the authenticated user has no repository with
the configured name, create it (public) and seed a README.
"""

from __future__ import annotations

import logging
from enum import Enum

from .github import GitHubAPIError, GitHubClient

logger = logging.getLogger(__name__)


README_CONTENT = """\
# Git Clock

This repository is maintained by GitClock. It keeps one changelog per day
(`CHANGELOG_<YYYY-MM-DD>.md`) summarising the files you changed locally and
how many lines were added and removed.

## How it works

- GitClock checks your working directory with `git status` on a fixed interval
  (30 minutes by default, never less).
- Each changed file becomes one row in today's changelog table.
- Rows are only ever appended; earlier entries are left untouched.

## Usage

```
gitclock login          # authenticate with GitHub
gitclock interval 45    # optional: change the sync interval
gitclock watch          # keep syncing until interrupted
```
"""


class BootstrapError(Exception):
    """Could not check for or create the changelog repository."""
    pass


class BootstrapOutcome(str, Enum):
    EXISTS = "exists"
    CREATED = "created"


def ensure_repository(client: GitHubClient, repo_name: str) -> BootstrapOutcome:
    """
    Ensure repo_name exists under the authenticated user.

    Raises:
        BootstrapError: listing or creation failed (not retried)
    """
    try:
        owner = client.get_login()
        if repo_name in client.list_repo_names():
            logger.info("Repository %s/%s exists", owner, repo_name)
            return BootstrapOutcome.EXISTS

        client.create_repo(repo_name, private=False)
        logger.info("Created repository %s/%s", owner, repo_name)
        client.put_file(owner, repo_name, "README.md", README_CONTENT, message="Add initial README.md")
    except GitHubAPIError as e:
        raise BootstrapError(f"Error checking repository: {e}") from e

    return BootstrapOutcome.CREATED
