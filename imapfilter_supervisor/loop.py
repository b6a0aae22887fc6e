"""
Poll loop driving sync and the worker.

Two modes, picked once at startup:

- non-daemon: run imapfilter to completion every cycle, sync in between;
  an abnormal exit ends the supervisor.
- daemon: keep one imapfilter running, restart it when the synced config
  changes; if it dies on its own the supervisor ends instead of respawning.
"""

import logging
import time
from typing import Callable

from .errors import WorkerDied, WorkerFailed
from .launcher import WorkerLauncher
from .models import ConfigLocation, SyncOutcome, SyncStatus, SyncTarget
from .process import ProcessSupervisor
from .sync import ConfigSync

logger = logging.getLogger(__name__)


class PollLoop:
    """Top-level driver of the supervisor."""

    def __init__(
        self,
        target: SyncTarget,
        location: ConfigLocation,
        config_sync: ConfigSync,
        launcher: WorkerLauncher,
        supervisor: ProcessSupervisor,
        daemon: bool = False,
        poll_interval: float = 30,
        log_path: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.target = target
        self.location = location
        self.config_sync = config_sync
        self.launcher = launcher
        self.supervisor = supervisor
        self.daemon = daemon
        self.poll_interval = poll_interval
        self.log_path = log_path
        self._sleep = sleep

    def sync(self) -> SyncOutcome:
        """Sync once. ``CloneFailed`` propagates, everything else is an outcome."""
        outcome = self.config_sync.sync(self.target)
        if outcome.status is SyncStatus.FAILED:
            logger.warning("Config sync failed, keeping current config until the next cycle")
        return outcome

    def run(self):
        """Run forever; only returns by raising.

        The initial sync happens before the mode is entered, and both modes
        sync again at the start of every cycle.
        """
        self.sync()
        if self.daemon:
            self.run_daemon()
        else:
            self.run_no_daemon()

    def run_no_daemon(self):
        while True:
            self.sync()

            exit_code = self.launcher.run(self.location, self.log_path)
            if exit_code != 0:
                logger.error("imapfilter failed")
                raise WorkerFailed(exit_code)

            logger.info("Sleeping")
            self._sleep(self.poll_interval)

    def run_daemon(self):
        self.supervisor.restart()
        while True:
            workers = self.supervisor.find_workers()
            logger.debug(f"imapfilter processes: {[p.pid for p in workers]}")

            if self.sync().changed:
                logger.info("Update in VCS, restarting imapfilter daemon")
                self.supervisor.restart()

            logger.info("Sleeping")
            self._sleep(self.poll_interval)

            if not self.supervisor.is_alive():
                logger.error("imapfilter daemon died, exiting")
                raise WorkerDied("imapfilter daemon died")
