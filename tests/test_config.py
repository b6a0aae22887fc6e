"""Tests for environment configuration and path normalization."""

from __future__ import annotations

import pytest

from imapfilter_supervisor.config import Config
from imapfilter_supervisor.models import (
    ConfigLocation,
    SyncOutcome,
    SyncStatus,
    normalize_config_path,
)


class TestNormalizeConfigPath:
    """Tests for stripping the base directory from legacy absolute paths."""

    def test_absolute_under_base_is_stripped(self) -> None:
        base = "/opt/imapfilter/config"
        assert normalize_config_path(base, f"{base}/filters/main.lua") == "filters/main.lua"

    def test_relative_unchanged(self) -> None:
        assert normalize_config_path("/opt/imapfilter/config", "main.lua") == "main.lua"

    def test_absolute_elsewhere_unchanged(self) -> None:
        assert normalize_config_path("/opt/imapfilter/config", "/etc/main.lua") == "/etc/main.lua"

    def test_base_with_trailing_slash(self) -> None:
        assert normalize_config_path("/srv/cfg/", "/srv/cfg/main.lua") == "main.lua"

    def test_sibling_prefix_not_stripped(self) -> None:
        """A directory that merely shares a name prefix is not the base."""
        assert normalize_config_path("/srv/cfg", "/srv/cfg2/main.lua") == "/srv/cfg2/main.lua"

    def test_location_from_setting(self) -> None:
        location = ConfigLocation.from_setting("/srv/cfg", "/srv/cfg/main.lua")
        assert location.relative_file_path == "main.lua"
        assert location.full_path == "/srv/cfg/main.lua"


class TestSyncOutcome:
    def test_only_change_applied_counts_as_change(self) -> None:
        assert SyncOutcome.change_applied().changed is True
        assert SyncOutcome.up_to_date().changed is False
        assert SyncOutcome.no_source().changed is False
        assert SyncOutcome.failed("boom").changed is False

    def test_failed_keeps_reason(self) -> None:
        outcome = SyncOutcome.failed("network down")
        assert outcome.status is SyncStatus.FAILED
        assert outcome.reason == "network down"


class TestConfig:
    """Tests for loading settings from the environment."""

    def test_defaults(self) -> None:
        cfg = Config()
        assert cfg.git_target is None
        assert cfg.config_base == "/opt/imapfilter/config"
        assert cfg.config_file == "config.lua"
        assert cfg.daemon is False
        assert cfg.poll_interval == 30
        assert cfg.stop_timeout == 10
        assert cfg.executable == "imapfilter"
        assert cfg.worker_logfile is None

    def test_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GIT_TARGET", "ssh://git.example.com/c.git")
        monkeypatch.setenv("GIT_TOKEN_RAW", "tok")
        monkeypatch.setenv("GIT_TOKEN", "/run/secrets/token")
        monkeypatch.setenv("GIT_USER", "alice")
        monkeypatch.setenv("IMAPFILTER_CONFIG_BASE", "/srv/cfg/")
        monkeypatch.setenv("IMAPFILTER_CONFIG", "/srv/cfg/main.lua")
        monkeypatch.setenv("IMAPFILTER_DAEMON", "yes")
        monkeypatch.setenv("IMAPFILTER_SLEEP", "5")
        monkeypatch.setenv("IMAPFILTER_LOGFILE", "/var/log/imapfilter.log")

        cfg = Config()
        target = cfg.sync_target()
        assert target.remote_location == "ssh://git.example.com/c.git"
        assert target.token == "tok"
        assert target.token_file == "/run/secrets/token"
        assert target.username == "alice"
        assert target.local_base_path == "/srv/cfg"

        location = cfg.config_location()
        assert location.base_path == "/srv/cfg"
        assert location.relative_file_path == "main.lua"
        assert cfg.daemon is True
        assert cfg.poll_interval == 5
        assert cfg.worker_logfile == "/var/log/imapfilter.log"

    @pytest.mark.parametrize("value", ["no", "", "true", "1"])
    def test_daemon_only_on_yes(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("IMAPFILTER_DAEMON", value)
        assert Config().daemon is False

    def test_empty_values_are_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GIT_TOKEN_RAW", "")
        monkeypatch.setenv("IMAPFILTER_LOGFILE", "")
        cfg = Config()
        assert cfg.git_token_raw is None
        assert cfg.worker_logfile is None
