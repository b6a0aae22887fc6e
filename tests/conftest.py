"""Shared test fixtures for the imapfilter supervisor."""

from __future__ import annotations

import os
import stat
import subprocess
from pathlib import Path

import pytest

from imapfilter_supervisor import credentials
from imapfilter_supervisor.models import ConfigLocation, SyncTarget

FAKE_WORKER = """#!/bin/sh
echo "$(pwd -P) $*" >> "$FAKE_WORKER_LOG"
case "$FAKE_WORKER_MODE" in
    exit:*) exit "${FAKE_WORKER_MODE#exit:}" ;;
    ignore-term) trap '' TERM ;;
    *) trap 'exit 0' TERM ;;
esac
while true; do sleep 0.1; done
"""

GIT_IDENTITY = ["-c", "user.name=Test", "-c", "user.email=test@example.com"]

ENV_VARS = (
    "GIT_TARGET",
    "GIT_TOKEN_RAW",
    "GIT_TOKEN",
    "GIT_USER",
    "GIT_TIMEOUT",
    "IMAPFILTER_CONFIG_BASE",
    "IMAPFILTER_CONFIG",
    "IMAPFILTER_DAEMON",
    "IMAPFILTER_SLEEP",
    "IMAPFILTER_LOGFILE",
    "IMAPFILTER_BIN",
    "IMAPFILTER_STOP_TIMEOUT",
    "LOG_LEVEL",
    "SUPERVISOR_LOG",
)


def git(*args: str, cwd: Path | None = None) -> str:
    """Run git in a test repository and return stdout."""
    result = subprocess.run(
        ["git", *GIT_IDENTITY, *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def commit_file(repo: Path, name: str, content: str) -> str:
    """Write a file into a work tree, commit it and return the new HEAD."""
    (repo / name).write_text(content)
    git("add", name, cwd=repo)
    git("commit", "-q", "-m", f"update {name}", cwd=repo)
    return git("rev-parse", "HEAD", cwd=repo)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host's environment out of configuration tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def upstream(tmp_path: Path) -> Path:
    """A work tree acting as the config repository's upstream, with one commit."""
    repo = tmp_path / "upstream"
    repo.mkdir()
    git("init", "-q", "-b", "main", cwd=repo)
    commit_file(repo, "config.lua", "-- initial\n")
    return repo


@pytest.fixture
def remote_target(tmp_path: Path, upstream: Path, monkeypatch: pytest.MonkeyPatch) -> SyncTarget:
    """A sync target whose authenticated URL points at the local upstream."""
    monkeypatch.setattr(
        credentials, "resolve", lambda target, require_auth=False: upstream.as_uri()
    )
    return SyncTarget(
        remote_location="git.example.com/config.git",
        token="secret",
        local_base_path=str(tmp_path / "checkout"),
    )


@pytest.fixture
def fake_worker(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """An executable standing in for imapfilter, logging its cwd and arguments."""
    script = tmp_path / "bin" / "fake-imapfilter"
    script.parent.mkdir()
    script.write_text(FAKE_WORKER)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    monkeypatch.setenv("FAKE_WORKER_LOG", str(tmp_path / "worker.log"))
    monkeypatch.delenv("FAKE_WORKER_MODE", raising=False)
    return script


@pytest.fixture
def worker_log(tmp_path: Path) -> Path:
    return tmp_path / "worker.log"


@pytest.fixture
def config_location(tmp_path: Path) -> ConfigLocation:
    """A base directory holding a config file."""
    base = tmp_path / "config"
    base.mkdir()
    (base / "config.lua").write_text("-- config\n")
    return ConfigLocation(base_path=str(base), relative_file_path="config.lua")


def pid_exists(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True
