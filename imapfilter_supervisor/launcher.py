"""
Worker launcher.

Validates the config location and starts imapfilter inside the config's base
directory, so relative includes in the Lua configuration resolve. The worker
inherits the supervisor's stdout/stderr.
"""

import logging
import os
import signal
import subprocess

from .errors import MissingBaseDirectory, MissingConfigFile, WorkerLaunchFailed
from .models import ConfigLocation, WorkerHandle, WorkerState, normalize_config_path

logger = logging.getLogger(__name__)

__all__ = ["WorkerLauncher", "normalize_config_path", "signal_group"]


def signal_group(process: subprocess.Popen, sig: signal.Signals):
    """Signal the worker's process group, it was started in its own session."""
    try:
        os.killpg(os.getpgid(process.pid), sig)
    except ProcessLookupError:
        pass


class WorkerLauncher:
    """Starts the worker executable for a config location."""

    def __init__(self, executable: str = "imapfilter", stop_timeout: float = 10):
        self.executable = executable
        self.stop_timeout = stop_timeout

    def command(self, location: ConfigLocation, log_path: str | None = None) -> list[str]:
        """Build the worker command line; the log path is passed through as given."""
        cmd = [self.executable, "-c", location.relative_file_path]
        if log_path:
            cmd += ["-l", log_path]
        return cmd

    def validate(self, location: ConfigLocation):
        """Raise if the base directory or the config file is missing."""
        if not os.path.isdir(location.base_path):
            raise MissingBaseDirectory(location.base_path)
        if not os.path.isfile(location.full_path):
            raise MissingConfigFile(location.relative_file_path, location.base_path)

    def _spawn(self, cmd: list[str], cwd: str) -> subprocess.Popen:
        try:
            return subprocess.Popen(
                cmd,
                cwd=cwd,
                start_new_session=True,  # Own process group, signals target the worker only
            )
        except OSError as e:
            raise WorkerLaunchFailed(f"Failed to start {cmd[0]}: {e}") from e

    def start(self, location: ConfigLocation, log_path: str | None = None) -> WorkerHandle:
        """Start the worker without waiting for it. Returns a running handle."""
        self.validate(location)
        cmd = self.command(location, log_path)
        process = self._spawn(cmd, location.base_path)
        logger.info(f"Started {self.executable} with PID {process.pid}")
        return WorkerHandle(process=process, state=WorkerState.RUNNING)

    def run(self, location: ConfigLocation, log_path: str | None = None) -> int:
        """Run the worker to completion and return its exit status."""
        self.validate(location)
        cmd = self.command(location, log_path)
        logger.info(f"Running {self.executable}")
        process = self._spawn(cmd, location.base_path)
        try:
            return process.wait()
        except BaseException:
            # Interrupted (signal): don't leave the worker behind.
            if process.poll() is None:
                signal_group(process, signal.SIGTERM)
                try:
                    process.wait(timeout=self.stop_timeout)
                except subprocess.TimeoutExpired:
                    logger.warning(
                        f"{self.executable} (PID {process.pid}) did not stop gracefully, forcing kill"
                    )
                    signal_group(process, signal.SIGKILL)
                    process.wait()
            raise
