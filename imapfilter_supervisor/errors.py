"""
Exceptions raised by the supervisor.

Every ``SupervisorError`` that reaches the entry point ends the process with
its ``exit_code``. Transient problems (a failed pull) are not exceptions; they
are reported as a failed ``SyncOutcome`` instead.
"""

from typing import Optional


class SupervisorError(Exception):
    """Base class for fatal supervisor errors."""

    exit_code = 1


class CredentialError(SupervisorError):
    pass


class MissingCredential(CredentialError):
    """Authentication is required but neither a token nor a token file is set."""


class TokenUnreadable(CredentialError):
    """A token file is configured but cannot be read."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        super().__init__(f"Cannot read git token file '{path}': {cause}")


class CloneFailed(SupervisorError):
    """The initial clone of the configuration repository failed."""


class LaunchError(SupervisorError):
    pass


class MissingBaseDirectory(LaunchError):
    def __init__(self, base_path: str):
        self.base_path = base_path
        super().__init__(
            f"The directory '{base_path}' does not exist. "
            "Please validate IMAPFILTER_CONFIG_BASE"
        )


class MissingConfigFile(LaunchError):
    def __init__(self, relative_path: str, base_path: str):
        self.relative_path = relative_path
        self.base_path = base_path
        super().__init__(
            f"The file '{relative_path}' does not exist relative to '{base_path}'. "
            "Please validate IMAPFILTER_CONFIG"
        )


class WorkerLaunchFailed(LaunchError):
    """The worker executable could not be started at all."""


class WorkerFailed(SupervisorError):
    """The worker exited abnormally in non-daemon mode."""

    def __init__(self, exit_code: int):
        self.worker_exit_code = exit_code
        super().__init__(f"imapfilter failed with exit status {exit_code}")


class WorkerDied(SupervisorError):
    """The daemonized worker disappeared without the supervisor stopping it."""


class ShutdownRequested(Exception):
    """Raised from the signal handler to unwind the poll loop."""

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"Received signal {signum}")
