"""
Publish change records into today's changelog on GitHub.

Flow:
1. Resolve the authenticated login
2. List the target repository root
3. Today's CHANGELOG_<date>.md present -> download, append rows, update with its sha
   absent (or repository listing 404s) -> create a new document
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Sequence

from .changelog import changelog_filename, merge_rows, render_document, render_rows
from .git import ChangeRecord
from .github import GitHubAPIError, GitHubClient

logger = logging.getLogger(__name__)


class PublishError(Exception):
    """Listing, reading or writing the changelog failed."""
    pass


class PublishOutcome(str, Enum):
    SKIPPED = "skipped"
    CREATED = "created"
    UPDATED = "updated"


def _create(client: GitHubClient, owner: str, repo_name: str, filename: str, content: str) -> None:
    client.put_file(
        owner,
        repo_name,
        filename,
        content,
        message=f"Create {filename} with initial content",
    )


def merge_and_publish(
    client: GitHubClient,
    repo_name: str,
    records: Sequence[ChangeRecord],
    clock: Callable[[], datetime] = datetime.now,
) -> PublishOutcome:
    """
    Merge change records into today's changelog and write it back.

    Args:
        client: Authenticated GitHub client
        repo_name: Target repository (under the authenticated user)
        records: Detected changes; empty means nothing is sent
        clock: Local time source (date picks the document, time stamps the rows)

    Returns:
        PublishOutcome

    Raises:
        PublishError: any remote call failed
    """
    if not records:
        return PublishOutcome.SKIPPED

    now = clock()
    filename = changelog_filename(now.date())

    try:
        owner = client.get_login()

        try:
            entries = client.list_contents(owner, repo_name)
        except GitHubAPIError as e:
            if not e.not_found:
                raise
            logger.info("%s/%s has no contents yet; creating %s", owner, repo_name, filename)
            _create(client, owner, repo_name, filename, render_document(records, now))
            return PublishOutcome.CREATED

        existing = next((entry for entry in entries if entry.get("name") == filename), None)

        if existing is None:
            _create(client, owner, repo_name, filename, render_document(records, now))
            logger.info("Created %s with %d row(s)", filename, len(records))
            return PublishOutcome.CREATED

        current = client.get_file_text(existing)
        updated = merge_rows(current, render_rows(records, now))
        client.put_file(
            owner,
            repo_name,
            existing.get("path", filename),
            updated,
            message=f"Update {filename} with change log",
            sha=existing["sha"],
        )
        logger.info("Appended %d row(s) to %s", len(records), filename)
        return PublishOutcome.UPDATED

    except GitHubAPIError as e:
        raise PublishError(str(e)) from e
