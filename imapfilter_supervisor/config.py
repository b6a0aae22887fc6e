"""
Configuration for the imapfilter supervisor.

Loads settings from environment variables with sensible defaults. A `.env`
file in the working directory is honoured for local runs; variables already
present in the environment win.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .models import ConfigLocation, SyncTarget

load_dotenv()


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, default)


def _env_optional(name: str) -> str | None:
    """Unset and empty variables both mean "not configured"."""
    return os.environ.get(name) or None


@dataclass
class Config:
    """Supervisor configuration."""

    # Git source
    git_target: str | None = field(default_factory=lambda: _env_optional("GIT_TARGET"))
    git_token_raw: str | None = field(default_factory=lambda: _env_optional("GIT_TOKEN_RAW"))
    git_token_file: str | None = field(default_factory=lambda: _env_optional("GIT_TOKEN"))
    git_user: str | None = field(default_factory=lambda: _env_optional("GIT_USER"))
    git_timeout: int = field(default_factory=lambda: int(_env("GIT_TIMEOUT", "300")))

    # Worker
    config_base: str = field(
        default_factory=lambda: _env("IMAPFILTER_CONFIG_BASE", "/opt/imapfilter/config")
    )
    config_file: str = field(default_factory=lambda: _env("IMAPFILTER_CONFIG", "config.lua"))
    worker_logfile: str | None = field(
        default_factory=lambda: _env_optional("IMAPFILTER_LOGFILE")
    )
    executable: str = field(default_factory=lambda: _env("IMAPFILTER_BIN", "imapfilter"))
    stop_timeout: float = field(
        default_factory=lambda: float(_env("IMAPFILTER_STOP_TIMEOUT", "10"))
    )

    # Poll loop
    daemon: bool = field(
        default_factory=lambda: _env("IMAPFILTER_DAEMON", "no").strip().lower() == "yes"
    )
    poll_interval: float = field(default_factory=lambda: float(_env("IMAPFILTER_SLEEP", "30")))

    # Logging
    log_level: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO").upper())
    supervisor_log: str | None = field(default_factory=lambda: _env_optional("SUPERVISOR_LOG"))
    log_max_bytes: int = field(
        default_factory=lambda: int(_env("LOG_MAX_BYTES", str(10 * 1024 * 1024)))  # 10MB
    )
    log_backup_count: int = field(default_factory=lambda: int(_env("LOG_BACKUP_COUNT", "5")))

    def __post_init__(self):
        """Strip a trailing slash so prefix normalization of the config path works."""
        if len(self.config_base) > 1:
            self.config_base = self.config_base.rstrip("/")

    def sync_target(self) -> SyncTarget:
        """Build the git sync target from the current settings."""
        return SyncTarget(
            remote_location=self.git_target,
            username=self.git_user,
            token=self.git_token_raw,
            token_file=self.git_token_file,
            local_base_path=self.config_base,
        )

    def config_location(self) -> ConfigLocation:
        """Build the worker's config location, normalizing legacy absolute paths."""
        return ConfigLocation.from_setting(self.config_base, self.config_file)


config = Config()
