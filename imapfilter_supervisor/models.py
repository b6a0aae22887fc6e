"""
Data model for the supervisor.

Plain dataclasses describing where configuration comes from, where it lives
on disk, the state of the supervised worker, and the result of a sync.
"""

import os
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass
class SyncTarget:
    """A remote git repository and the checkout it is synchronized into."""

    remote_location: Optional[str]
    local_base_path: str
    username: Optional[str] = None
    token: Optional[str] = None
    token_file: Optional[str] = None


def normalize_config_path(base_path: str, value: str) -> str:
    """Make a config path relative to the base directory.

    The config path used to be accepted as either absolute or relative.
    Absolute values below ``base_path`` are stripped back to the relative
    form; anything else is returned unchanged.

        >>> normalize_config_path("/opt/imapfilter/config", "/opt/imapfilter/config/main.lua")
        'main.lua'
    """
    if os.path.isabs(value):
        prefix = base_path.rstrip("/") + "/"
        if value.startswith(prefix):
            return value[len(prefix):]
    return value


@dataclass
class ConfigLocation:
    """The worker's entry configuration file inside the base directory."""

    base_path: str
    relative_file_path: str

    @classmethod
    def from_setting(cls, base_path: str, value: str) -> "ConfigLocation":
        return cls(base_path=base_path, relative_file_path=normalize_config_path(base_path, value))

    @property
    def full_path(self) -> str:
        return os.path.join(self.base_path, self.relative_file_path)


class WorkerState(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class WorkerHandle:
    """A worker process started by the launcher and owned by the supervisor."""

    process: Optional[subprocess.Popen] = None
    state: WorkerState = WorkerState.NOT_STARTED
    started_at: datetime = field(default_factory=datetime.now)
    exit_code: Optional[int] = None

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process is not None else None


class SyncStatus(Enum):
    NO_SOURCE_CONFIGURED = "no_source_configured"
    UP_TO_DATE = "up_to_date"
    CHANGE_APPLIED = "change_applied"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncOutcome:
    """Result of one synchronization attempt."""

    status: SyncStatus
    reason: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.status is SyncStatus.CHANGE_APPLIED

    @classmethod
    def no_source(cls) -> "SyncOutcome":
        return cls(SyncStatus.NO_SOURCE_CONFIGURED)

    @classmethod
    def up_to_date(cls) -> "SyncOutcome":
        return cls(SyncStatus.UP_TO_DATE)

    @classmethod
    def change_applied(cls, reason: Optional[str] = None) -> "SyncOutcome":
        return cls(SyncStatus.CHANGE_APPLIED, reason)

    @classmethod
    def failed(cls, reason: str) -> "SyncOutcome":
        return cls(SyncStatus.FAILED, reason)
