"""
Change detection for GitClock.

Runs `git status --short` in the working directory, parses each line into
a ChangeRecord and, for modified/added/deleted paths, fills in line counts
from `git diff --numstat`.

Additions/deletions of None mean "could not determine" (binary files,
failed diff), which is different from 0.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)


class DetectionError(Exception):
    """git status could not run (not a repository, git missing, ...)."""
    pass


class GitCommandError(Exception):
    """A git invocation exited non-zero or could not start."""
    pass


class ChangeStatus(str, Enum):
    UNTRACKED = "Untracked"
    MODIFIED = "Modified"
    ADDED = "Added"
    DELETED = "Deleted"
    OTHER = "Other"


@dataclass
class ChangeRecord:
    """One changed path with its line-delta statistics."""
    path: str
    status: ChangeStatus
    additions: int | None = None
    deletions: int | None = None
    code: str = ""  # raw two-character status code from git


# Runs `git <args>` in cwd and returns stdout; raises GitCommandError
GitRunner = Callable[[list[str], Path], str]

# XY code (one or two chars once leading blanks are kept) followed by the path
_STATUS_LINE = re.compile(r"^(?P<code>[ MTADRCU?!]{1,2}) +(?P<path>\S.*?)\s*$")

# Without this git octal-escapes non-ASCII names ("caf\303\251.txt")
GIT_OPTIONS = ["-c", "core.quotePath=false"]

_DIFF_CODES = {
    "M": ChangeStatus.MODIFIED,
    "T": ChangeStatus.MODIFIED,
    "A": ChangeStatus.ADDED,
    "D": ChangeStatus.DELETED,
}


def run_git(args: list[str], cwd: Path) -> str:
    """
    Run a git command and return its stdout.

    Paths come back verbatim (UTF-8, no octal escaping) so they can be fed
    to later git commands and written to the changelog as-is.
    """
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(
            ["git", *GIT_OPTIONS, *args],
            cwd=cwd,
            capture_output=True,
            encoding="utf-8",
            errors="surrogateescape",
            check=True,
        )
    except FileNotFoundError as e:
        raise GitCommandError(f"git not available: {e}") from e
    except subprocess.CalledProcessError as e:
        raise GitCommandError(
            f"git {' '.join(args)} failed ({e.returncode}): {(e.stderr or '').strip()}"
        ) from e
    return result.stdout


def _unquote(path: str) -> str:
    # git wraps names with special characters in double quotes
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        return path[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return path


def parse_status_line(line: str) -> tuple[str, str] | None:
    """
    Split one `git status --short` line into (code, path).

    Returns None for lines that do not have the code + path shape.
    Renames ("R  old -> new") report the new path.
    """
    match = _STATUS_LINE.match(line.rstrip("\r\n"))
    if not match:
        return None

    code = match.group("code").strip()
    if not code:
        return None

    path = match.group("path")
    if "R" in code or "C" in code:
        _, sep, new_path = path.partition(" -> ")
        if sep:
            path = new_path
    return code, _unquote(path)


def parse_status_output(output: str) -> list[tuple[str, str]]:
    """Parse full `git status --short` output, skipping blank and malformed lines."""
    entries = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parsed = parse_status_line(line)
        if parsed is None:
            logger.debug("Ignoring status line: %r", line)
            continue
        entries.append(parsed)
    return entries


def parse_numstat(output: str) -> tuple[int | None, int | None]:
    """
    Parse `git diff --numstat` output ("<added>\\t<removed>[\\t<path>]").

    Empty or non-numeric output (binary files show "-") gives (None, None).
    """
    for line in output.splitlines():
        fields = line.strip().split("\t")
        if len(fields) < 2:
            continue
        added, removed = fields[0].strip(), fields[1].strip()
        if added.isdigit() and removed.isdigit():
            return int(added), int(removed)
        return None, None
    return None, None


def classify(code: str) -> ChangeStatus:
    """Map a status code to a ChangeStatus."""
    if code == "??":
        return ChangeStatus.UNTRACKED
    for char in code:
        if char in _DIFF_CODES:
            return _DIFF_CODES[char]
    return ChangeStatus.OTHER


def get_diff_stats(
    working_dir: Path,
    path: str,
    runner: GitRunner = run_git,
) -> tuple[int | None, int | None]:
    """Line counts for one path against HEAD; (None, None) when unknown."""
    try:
        output = runner(["diff", "--numstat", "HEAD", "--", path], working_dir)
    except GitCommandError as e:
        logger.debug("diff stat unavailable for %s: %s", path, e)
        return None, None
    return parse_numstat(output)


def detect_changes(
    working_dir: Path | str,
    runner: GitRunner = run_git,
) -> list[ChangeRecord]:
    """
    Detect local changes in a working directory.

    Args:
        working_dir: Directory inside a git working tree
        runner: git invocation port (swap for a fake in tests)

    Returns:
        ChangeRecords in the order git reported them; empty means nothing to report

    Raises:
        DetectionError: git status could not run
    """
    working_dir = Path(working_dir)
    try:
        output = runner(["status", "--short"], working_dir)
    except GitCommandError as e:
        raise DetectionError(str(e)) from e

    records = []
    for code, path in parse_status_output(output):
        status = classify(code)

        if status in (ChangeStatus.UNTRACKED, ChangeStatus.OTHER):
            records.append(ChangeRecord(path, status, 0, 0, code))
        else:
            additions, deletions = get_diff_stats(working_dir, path, runner)
            records.append(ChangeRecord(path, status, additions, deletions, code))

    logger.debug("Detected %d changed path(s) in %s", len(records), working_dir)
    return records
