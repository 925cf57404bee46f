"""
Daily changelog documents for GitClock.

A changelog is a Markdown file named CHANGELOG_<YYYY-MM-DD>.md holding one
table:

    | Time (UTC) | Files Modified | Changes (Addition/Deletion) |
    |------------|----------------|-----------------------------|
    | ...        | ...            | 3 Additions & 1 Deletions   |

The table is parsed into a ChangelogDocument (text before, header,
separator, rows, text after) so new rows can be appended without touching
anything else in the file. Only the first table is used when a file
contains several; the rest is kept as trailing text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable

from .git import ChangeRecord


TABLE_HEADER = (
    "| Time (UTC)             | Files Modified                    | Changes (Addition/Deletion) |"
)
TABLE_SEPARATOR = (
    "|------------------------|-----------------------------------|-----------------------------|"
)
HEADER_MARKER = "Time (UTC)"
UNKNOWN_COUNT = "?"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_SEPARATOR_LINE = re.compile(r"^\s*\|?(\s*:?-{3,}:?\s*\|)+\s*(:?-{3,}:?\s*)?$")


@dataclass
class ChangelogTable:
    """The changelog table: header and separator appear once, rows below in insertion order."""
    header: str = TABLE_HEADER
    separator: str = TABLE_SEPARATOR
    rows: list[str] = field(default_factory=list)


@dataclass
class ChangelogDocument:
    """A changelog file split around its table."""
    before: list[str] = field(default_factory=list)
    table: ChangelogTable | None = None
    after: list[str] = field(default_factory=list)
    newline: str = "\n"  # line ending of the parsed content

    def render(self) -> str:
        lines = list(self.before)
        if self.table is not None:
            lines.append(self.table.header)
            lines.append(self.table.separator)
            lines.extend(self.table.rows)
        lines.extend(self.after)
        return self.newline.join(lines).rstrip("\r\n") + self.newline


def changelog_filename(day: date | None = None) -> str:
    """Name of the changelog document for a day (local date by default)."""
    if day is None:
        day = date.today()
    return f"CHANGELOG_{day.isoformat()}.md"


def _is_table_line(line: str) -> bool:
    return line.lstrip().startswith("|")


def _is_header(line: str) -> bool:
    return _is_table_line(line) and HEADER_MARKER in line


def _format_count(value: int | None) -> str:
    return UNKNOWN_COUNT if value is None else str(value)


def _escape_cell(text: str) -> str:
    return text.replace("|", "\\|")


def render_row(record: ChangeRecord, timestamp: str) -> str:
    """Render one table row for a change record."""
    changes = (
        f"{_format_count(record.additions)} Additions & "
        f"{_format_count(record.deletions)} Deletions"
    )
    return f"| {timestamp} | {_escape_cell(record.path)} | {changes} |"


def render_rows(
    records: Iterable[ChangeRecord],
    now: datetime | None = None,
) -> list[str]:
    """Render rows for records, all stamped with the same local time."""
    if now is None:
        now = datetime.now()
    timestamp = now.strftime(TIMESTAMP_FORMAT)
    return [render_row(record, timestamp) for record in records]


def render_document(
    records: Iterable[ChangeRecord],
    now: datetime | None = None,
) -> str:
    """Render a brand-new changelog document."""
    if now is None:
        now = datetime.now()
    document = ChangelogDocument(
        before=[
            "# Daily Changelog",
            "",
            f"This file logs the changes made on {now.date().isoformat()}.",
            "",
        ],
        table=ChangelogTable(rows=render_rows(records, now)),
    )
    return document.render()


def parse_changelog(content: str) -> ChangelogDocument:
    """
    Parse changelog content around its first table.

    A table is a header line containing "Time (UTC)" immediately followed by
    a separator row; its rows are the contiguous "|" lines after that. A
    header without a separator does not count as a table.
    """
    lines = content.splitlines()
    newline = "\r\n" if "\r\n" in content else "\n"

    for index, line in enumerate(lines):
        if not _is_header(line):
            continue
        if index + 1 >= len(lines) or not _SEPARATOR_LINE.match(lines[index + 1]):
            continue

        end = index + 2
        while end < len(lines) and _is_table_line(lines[end]):
            end += 1

        return ChangelogDocument(
            before=lines[:index],
            table=ChangelogTable(
                header=line,
                separator=lines[index + 1],
                rows=lines[index + 2:end],
            ),
            after=lines[end:],
            newline=newline,
        )

    return ChangelogDocument(before=lines, newline=newline)


def merge_rows(content: str, rows: list[str]) -> str:
    """
    Append rendered rows to the table in existing changelog content.

    Existing rows are kept as-is and in order. If no table is found, a new
    one is appended after the existing free-form content.
    """
    document = parse_changelog(content)

    if document.table is None:
        before = list(document.before)
        while before and not before[-1].strip():
            before.pop()
        if before:
            before.append("")
        document.before = before
        document.table = ChangelogTable()

    document.table.rows = document.table.rows + list(rows)
    return document.render()
