"""
Process supervisor for the imapfilter worker.

Owns the single worker handle: stops it gracefully (SIGTERM, bounded wait,
then SIGKILL), starts a replacement only once the old one is confirmed dead,
and answers liveness probes. Stray workers with the same executable name,
e.g. orphans of an earlier supervisor, are found through the process table
and stopped together with the tracked one.
"""

import logging
import os
import signal
import subprocess

import psutil

from .launcher import WorkerLauncher, signal_group
from .models import ConfigLocation, WorkerHandle, WorkerState

logger = logging.getLogger(__name__)


class ProcessSupervisor:
    """Manages the lifecycle of the supervised worker."""

    def __init__(
        self,
        launcher: WorkerLauncher,
        location: ConfigLocation,
        log_path: str | None = None,
        stop_timeout: float = 10,
    ):
        self.launcher = launcher
        self.location = location
        self.log_path = log_path
        self.stop_timeout = stop_timeout
        self.handle = WorkerHandle()

    @property
    def worker_name(self) -> str:
        return os.path.basename(self.launcher.executable)

    def find_workers(self) -> list[psutil.Process]:
        """Find every process running the worker executable, except ourselves."""
        own_pid = os.getpid()
        found = []
        for proc in psutil.process_iter(["pid", "name"]):
            if proc.info["pid"] == own_pid:
                continue
            if proc.info["name"] == self.worker_name:
                found.append(proc)
        return found

    def is_alive(self) -> bool:
        """Non-blocking check that the tracked worker is still running."""
        handle = self.handle
        if handle.process is None or handle.state is not WorkerState.RUNNING:
            return False

        exit_code = handle.process.poll()
        if exit_code is None:
            return True

        handle.state = WorkerState.STOPPED
        handle.exit_code = exit_code
        logger.warning(f"{self.worker_name} (PID {handle.pid}) exited with status {exit_code}")
        return False

    def stop(self):
        """Stop the tracked worker and any stray workers."""
        handle = self.handle
        tracked = handle.process if handle.state is WorkerState.RUNNING else None
        if tracked is not None and tracked.poll() is not None:
            handle.state = WorkerState.STOPPED
            handle.exit_code = tracked.returncode
            tracked = None

        strays = [p for p in self.find_workers() if tracked is None or p.pid != tracked.pid]
        if tracked is None and not strays:
            return

        pids = ([tracked.pid] if tracked is not None else []) + [p.pid for p in strays]
        logger.info(f"Stopping {self.worker_name} processes: {pids}")

        if tracked is not None:
            handle.state = WorkerState.STOPPING
            signal_group(tracked, signal.SIGTERM)
        signalled = []
        for proc in strays:
            try:
                proc.terminate()
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                logger.warning(f"Not allowed to stop {self.worker_name} (PID {proc.pid}), skipping")
                continue
            signalled.append(proc)
        strays = signalled

        # Strays were signalled together with the tracked worker. If that one
        # had to be killed the grace period is already spent.
        forced = False
        if tracked is not None:
            try:
                tracked.wait(timeout=self.stop_timeout)
            except subprocess.TimeoutExpired:
                logger.warning(
                    f"{self.worker_name} (PID {tracked.pid}) did not stop gracefully, forcing kill"
                )
                signal_group(tracked, signal.SIGKILL)
                tracked.wait()
                forced = True
            handle.state = WorkerState.STOPPED
            handle.exit_code = tracked.returncode

        if strays:
            remaining_timeout = 0 if forced else self.stop_timeout
            _, alive = psutil.wait_procs(strays, timeout=remaining_timeout)
            if alive:
                logger.warning(f"Force killing remaining processes: {[p.pid for p in alive]}")
                killed = []
                for proc in alive:
                    try:
                        proc.kill()
                    except psutil.NoSuchProcess:
                        continue
                    except psutil.AccessDenied:
                        logger.warning(f"Not allowed to kill {self.worker_name} (PID {proc.pid})")
                        continue
                    killed.append(proc)
                if killed:
                    psutil.wait_procs(killed, timeout=5)

        logger.info(f"Stopped {self.worker_name} processes: {pids}")

    def restart(self) -> WorkerHandle:
        """Stop whatever is running, then start a fresh worker."""
        self.stop()
        self.handle = self.launcher.start(self.location, self.log_path)
        return self.handle
