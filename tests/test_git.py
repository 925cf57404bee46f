from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from gitclock.git import (
    ChangeStatus,
    DetectionError,
    GitCommandError,
    detect_changes,
    parse_numstat,
    parse_status_line,
    parse_status_output,
    run_git,
)


def make_runner(status_output: str, numstats: dict[str, str] | None = None, failing: set[str] | None = None):
    """Fake git runner: answers `status --short` and `diff --numstat ... -- <path>`."""
    numstats = numstats or {}
    failing = failing or set()
    calls = []

    def runner(args: list[str], cwd: Path) -> str:
        calls.append(args)
        if args[:2] == ["status", "--short"]:
            return status_output
        if args[0] == "diff":
            path = args[-1]
            if path in failing:
                raise GitCommandError(f"diff failed for {path}")
            return numstats.get(path, "")
        raise AssertionError(f"unexpected git call: {args}")

    runner.calls = calls
    return runner


def test_parse_status_line_shapes():
    assert parse_status_line("?? notes.txt") == ("??", "notes.txt")
    assert parse_status_line(" M src/app.go") == ("M", "src/app.go")
    assert parse_status_line("M  staged.py") == ("M", "staged.py")
    assert parse_status_line("MM both.py") == ("MM", "both.py")
    assert parse_status_line("?? dir with space/file name.txt") == ("??", "dir with space/file name.txt")


def test_parse_status_line_rename_and_quotes():
    assert parse_status_line("R  old.py -> new.py") == ("R", "new.py")
    assert parse_status_line('?? "weird \\"name\\".txt"') == ("??", 'weird "name".txt')


def test_parse_status_line_rejects_malformed():
    assert parse_status_line("M") is None
    assert parse_status_line("hello world") is None
    assert parse_status_line("   ") is None


def test_parse_status_output_counts_well_formed_lines():
    output = "?? a.txt\n\n M b.py\nnot a status line\n D c.md\n"
    entries = parse_status_output(output)
    assert [path for _, path in entries] == ["a.txt", "b.py", "c.md"]


def test_parse_numstat():
    assert parse_numstat("3\t5") == (3, 5)
    assert parse_numstat("3\t5\tsrc/app.go\n") == (3, 5)
    assert parse_numstat("") == (None, None)
    assert parse_numstat("-\t-\timage.png") == (None, None)


def test_untracked_is_zero_not_unknown():
    runner = make_runner("?? notes.txt\n")
    records = detect_changes("/repo", runner)

    assert len(records) == 1
    assert records[0].status == ChangeStatus.UNTRACKED
    assert records[0].additions == 0
    assert records[0].deletions == 0
    # No diff query for untracked files
    assert all(call[0] != "diff" for call in runner.calls)


def test_end_to_end_status_and_diff():
    runner = make_runner("?? notes.txt\nM src/app.go\n", numstats={"src/app.go": "2\t1\tsrc/app.go\n"})
    records = detect_changes("/repo", runner)

    assert [(r.status, r.path, r.additions, r.deletions) for r in records] == [
        (ChangeStatus.UNTRACKED, "notes.txt", 0, 0),
        (ChangeStatus.MODIFIED, "src/app.go", 2, 1),
    ]


def test_empty_or_failed_diff_is_unknown():
    runner = make_runner(" M empty.py\n M broken.py\n", failing={"broken.py"})
    records = detect_changes("/repo", runner)

    for record in records:
        assert record.status == ChangeStatus.MODIFIED
        assert record.additions is None
        assert record.deletions is None


def test_added_and_deleted_query_diff():
    runner = make_runner(
        "A  new.py\n D gone.py\n",
        numstats={"new.py": "10\t0", "gone.py": "0\t7"},
    )
    records = detect_changes("/repo", runner)

    assert records[0].status == ChangeStatus.ADDED
    assert (records[0].additions, records[0].deletions) == (10, 0)
    assert records[1].status == ChangeStatus.DELETED
    assert (records[1].additions, records[1].deletions) == (0, 7)


def test_other_codes_pass_through():
    runner = make_runner("UU conflicted.txt\n")
    records = detect_changes("/repo", runner)

    assert records[0].status == ChangeStatus.OTHER
    assert records[0].code == "UU"
    assert (records[0].additions, records[0].deletions) == (0, 0)


def test_clean_tree_returns_empty_list():
    assert detect_changes("/repo", make_runner("")) == []


def test_status_failure_raises_detection_error():
    def runner(args, cwd):
        raise GitCommandError("fatal: not a git repository")

    with pytest.raises(DetectionError):
        detect_changes("/not-a-repo", runner)


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_detect_changes_real_repository(tmp_path):
    def git(*args):
        subprocess.run(["git", *args], cwd=tmp_path, check=True, capture_output=True)

    git("init")
    git("config", "user.email", "dev@example.com")
    git("config", "user.name", "Dev")
    (tmp_path / "tracked.txt").write_text("one\ntwo\n")
    git("add", "tracked.txt")
    git("commit", "-m", "initial")

    (tmp_path / "tracked.txt").write_text("one\ntwo\nthree\n")
    (tmp_path / "fresh.txt").write_text("hi\n")

    records = {r.path: r for r in detect_changes(tmp_path)}

    assert records["tracked.txt"].status == ChangeStatus.MODIFIED
    assert (records["tracked.txt"].additions, records["tracked.txt"].deletions) == (1, 0)
    assert records["fresh.txt"].status == ChangeStatus.UNTRACKED


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_detect_changes_non_ascii_paths(tmp_path):
    def git(*args):
        subprocess.run(["git", *args], cwd=tmp_path, check=True, capture_output=True)

    git("init")
    git("config", "user.email", "dev@example.com")
    git("config", "user.name", "Dev")
    (tmp_path / "café.txt").write_text("one\n", encoding="utf-8")
    git("add", "café.txt")
    git("commit", "-m", "initial")

    (tmp_path / "café.txt").write_text("one\ntwo\nthree\n", encoding="utf-8")
    (tmp_path / "naïve.txt").write_text("hi\n", encoding="utf-8")

    records = {r.path: r for r in detect_changes(tmp_path)}

    assert set(records) == {"café.txt", "naïve.txt"}
    assert records["café.txt"].status == ChangeStatus.MODIFIED
    assert (records["café.txt"].additions, records["café.txt"].deletions) == (2, 0)
    assert records["naïve.txt"].status == ChangeStatus.UNTRACKED


def test_run_git_disables_path_quoting(tmp_path):
    completed = subprocess.CompletedProcess(args=[], returncode=0, stdout=" M café.txt\n", stderr="")
    with patch("gitclock.git.subprocess.run", return_value=completed) as run:
        assert run_git(["status", "--short"], tmp_path) == " M café.txt\n"

    command = run.call_args.args[0]
    assert command[:3] == ["git", "-c", "core.quotePath=false"]
    assert command[3:] == ["status", "--short"]
    assert run.call_args.kwargs["encoding"] == "utf-8"


def test_detect_changes_outside_repository(tmp_path):
    if shutil.which("git") is None:
        pytest.skip("git not installed")
    with pytest.raises(DetectionError):
        detect_changes(tmp_path)
