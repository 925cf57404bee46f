"""
Periodic sync for GitClock.

Each tick runs one cycle: detect changes -> publish to today's changelog.
A cycle-in-progress flag makes a tick a no-op while the previous cycle is
still waiting on git or GitHub; ticks are skipped, never queued.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable

from .git import ChangeRecord, DetectionError, GitRunner, detect_changes, run_git
from .github import GitHubClient
from .publish import PublishError, PublishOutcome, merge_and_publish
from .session import AuthError, Session

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Session], GitHubClient]


def default_client_factory(session: Session) -> GitHubClient:
    return GitHubClient(session.require_token(), api_url=session.config.api_url)


class CycleStatus(str, Enum):
    BUSY = "busy"                # previous cycle still running
    UNAUTHENTICATED = "unauthenticated"
    DETECTION_FAILED = "detection_failed"
    NO_CHANGES = "no_changes"
    PUBLISHED = "published"
    PUBLISH_FAILED = "publish_failed"


@dataclass
class CycleResult:
    status: CycleStatus
    records: list[ChangeRecord] = field(default_factory=list)
    outcome: PublishOutcome | None = None
    error: str | None = None


def run_sync_cycle(
    session: Session,
    working_dir: Path,
    client_factory: ClientFactory = default_client_factory,
    runner: GitRunner = run_git,
    clock: Callable[[], datetime] = datetime.now,
) -> CycleResult:
    """
    Run one detect -> publish cycle. Never raises for expected failures.

    Detection failures are only logged; auth and publish failures are
    reported through the session notifier.
    """
    try:
        session.require_token()
    except AuthError as e:
        session.notifier.error(str(e))
        return CycleResult(CycleStatus.UNAUTHENTICATED, error=str(e))

    try:
        records = detect_changes(working_dir, runner)
    except DetectionError as e:
        logger.warning("Skipping sync cycle, change detection failed: %s", e)
        return CycleResult(CycleStatus.DETECTION_FAILED, error=str(e))

    if not records:
        logger.info("No local changes to log")
        return CycleResult(CycleStatus.NO_CHANGES)

    try:
        client = client_factory(session)
        outcome = merge_and_publish(client, session.config.repo_name, records, clock=clock)
    except PublishError as e:
        session.notifier.error(f"Error handling repository and CHANGELOG: {e}")
        return CycleResult(CycleStatus.PUBLISH_FAILED, records, error=str(e))

    session.notifier.info("Changes logged successfully!")
    return CycleResult(CycleStatus.PUBLISHED, records, outcome=outcome)


class SyncScheduler:
    """
    Runs sync cycles every `interval_minutes` on background threads.

    Ticks fire on a timer thread; each cycle runs on its own worker thread
    so a hung git or HTTP call cannot stop the timer. While a cycle is in
    flight, new ticks are skipped.
    """

    def __init__(
        self,
        session: Session,
        working_dir: Path,
        client_factory: ClientFactory = default_client_factory,
        runner: GitRunner = run_git,
    ):
        self.session = session
        self.working_dir = Path(working_dir)
        self.client_factory = client_factory
        self.runner = runner
        self._in_progress = threading.Lock()
        self._stop = threading.Event()
        self._timer: threading.Thread | None = None
        self.last_result: CycleResult | None = None

    @property
    def interval_seconds(self) -> float:
        # Re-read every tick so `gitclock interval` applies without restart
        return self.session.interval_minutes * 60

    @property
    def busy(self) -> bool:
        return self._in_progress.locked()

    def run_cycle(self) -> CycleResult:
        """Run a cycle now, or return BUSY if one is already running."""
        if not self._in_progress.acquire(blocking=False):
            logger.warning("Previous sync cycle still running; skipping this tick")
            return CycleResult(CycleStatus.BUSY)
        try:
            result = run_sync_cycle(
                self.session,
                self.working_dir,
                client_factory=self.client_factory,
                runner=self.runner,
            )
        finally:
            self._in_progress.release()
        self.last_result = result
        return result

    def tick(self) -> threading.Thread | None:
        """Start a cycle on a worker thread unless one is already in flight."""
        if self.busy:
            logger.warning("Previous sync cycle still running; skipping this tick")
            return None
        worker = threading.Thread(target=self.run_cycle, name="gitclock-cycle", daemon=True)
        worker.start()
        return worker

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.tick()

    def start(self) -> None:
        if self._timer is not None and self._timer.is_alive():
            return
        self._stop.clear()
        self._timer = threading.Thread(target=self._loop, name="gitclock-timer", daemon=True)
        self._timer.start()
        logger.info("Sync scheduled every %d minutes", self.session.interval_minutes)

    def stop(self) -> None:
        self._stop.set()
        if self._timer is not None:
            self._timer.join()
            self._timer = None

    def wait(self) -> None:
        """Block until stop() is called (or KeyboardInterrupt)."""
        while not self._stop.wait(1.0):
            pass
