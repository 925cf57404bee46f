from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from gitclock.cli import main
from gitclock.bootstrap import BootstrapError
from gitclock.git import ChangeRecord, ChangeStatus, DetectionError
from gitclock.session import SettingsStore


@pytest.fixture
def home(tmp_path, monkeypatch):
    gitclock_home = tmp_path / "home"
    monkeypatch.setenv("GITCLOCK_HOME", str(gitclock_home))
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.chdir(tmp_path)
    return gitclock_home


def test_cli_help_lists_commands():
    runner = CliRunner()
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    for command in ("login", "interval", "sync", "watch", "status", "bootstrap"):
        assert command in result.output


def test_interval_rejects_value_below_floor(home):
    runner = CliRunner()
    assert runner.invoke(main, ["interval", "45"]).exit_code == 0

    result = runner.invoke(main, ["interval", "15"])

    assert result.exit_code == 1
    assert "cannot be less than 30 minutes" in result.output
    assert SettingsStore(home / "settings.json").get("interval_minutes") == 45


def test_interval_rejects_non_number(home):
    result = CliRunner().invoke(main, ["interval", "soon"])
    assert result.exit_code == 1
    assert "Please enter a valid number" in result.output


def test_interval_shows_current(home):
    result = CliRunner().invoke(main, ["interval"])
    assert result.exit_code == 0
    assert "30 minutes" in result.output


def test_login_with_token_stores_it(home):
    runner = CliRunner()
    result = runner.invoke(main, ["login", "--token", "gho_abc", "--no-bootstrap"])

    assert result.exit_code == 0
    assert "GitHub login successful!" in result.output
    assert SettingsStore(home / "settings.json").get("access_token") == "gho_abc"

    result = runner.invoke(main, ["logout"])
    assert result.exit_code == 0
    assert SettingsStore(home / "settings.json").get("access_token") is None


def test_sync_requires_login(home):
    result = CliRunner().invoke(main, ["sync"])
    assert result.exit_code == 1
    assert "not authenticated" in result.output


def test_bootstrap_requires_login(home):
    result = CliRunner().invoke(main, ["bootstrap"])
    assert result.exit_code == 1
    assert "not authenticated" in result.output


def test_status_json(home):
    records = [ChangeRecord("a.py", ChangeStatus.MODIFIED, None, None, "M")]
    with patch("gitclock.cli.detect_changes", return_value=records):
        result = CliRunner().invoke(main, ["status", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data == [{"path": "a.py", "status": "Modified", "code": "M", "additions": None, "deletions": None}]


def test_status_outside_repository(home):
    with patch("gitclock.cli.detect_changes", side_effect=DetectionError("not a git repository")):
        result = CliRunner().invoke(main, ["status"])
    assert result.exit_code == 1
    assert "Cannot read git status" in result.output


def test_sync_dry_run_prints_rows(home):
    records = [ChangeRecord("notes.txt", ChangeStatus.UNTRACKED, 0, 0, "??")]
    with patch("gitclock.cli.detect_changes", return_value=records):
        result = CliRunner().invoke(main, ["sync", "--dry-run"])

    assert result.exit_code == 0
    assert "| notes.txt | 0 Additions & 0 Deletions |" in result.output


def test_init_writes_sample_config(home, tmp_path):
    result = CliRunner().invoke(main, ["init"])
    assert result.exit_code == 0
    assert (tmp_path / "gitclock.yml").exists()


def test_status_marks_unknown_counts(home):
    records = [ChangeRecord("image.png", ChangeStatus.MODIFIED, None, None, "M")]
    with patch("gitclock.cli.detect_changes", return_value=records):
        result = CliRunner().invoke(main, ["status"])

    assert result.exit_code == 0
    assert "image.png  (+? / -?)" in result.output


def test_watch_stops_when_bootstrap_fails(home):
    runner = CliRunner()
    runner.invoke(main, ["login", "--token", "gho_abc", "--no-bootstrap"])

    with patch("gitclock.cli.ensure_repository", side_effect=BootstrapError("Error checking repository: boom")), \
            patch("gitclock.cli.SyncScheduler") as scheduler:
        result = runner.invoke(main, ["watch"])

    assert result.exit_code == 1
    assert "Error checking repository: boom" in result.output
    scheduler.assert_not_called()
