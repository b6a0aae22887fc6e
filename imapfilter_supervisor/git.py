"""Git helper functions used by the config sync."""

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .credentials import redact

# Never prompt for credentials.
_GIT_ENV = {"GIT_TERMINAL_PROMPT": "0", "GIT_ASKPASS": "", "LC_ALL": "C"}


@dataclass(frozen=True)
class GitResult:
    """Outcome of a single git invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """Combined output with credentials hidden, for logging."""
        text = "\n".join(part.strip() for part in (self.stdout, self.stderr) if part.strip())
        return redact(text)


def run_git(args: list[str], *, cwd: Path | None = None, timeout: float | None = None) -> GitResult:
    """Run git and capture its output. A missing git binary is reported as exit 127."""
    argv = ("git", *args)
    env = {**os.environ, **_GIT_ENV}
    try:
        completed = subprocess.run(
            list(argv),
            cwd=cwd,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError:
        return GitResult(args=argv, returncode=127, stderr="missing required command: git")
    except subprocess.TimeoutExpired as e:
        stdout = e.stdout if isinstance(e.stdout, str) else ""
        stderr = e.stderr if isinstance(e.stderr, str) else ""
        return GitResult(
            args=argv,
            returncode=124,
            stdout=stdout,
            stderr=f"{stderr}\ngit timed out after {timeout}s".strip(),
            timed_out=True,
        )
    return GitResult(
        args=argv,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )


def is_work_tree(path: Path) -> bool:
    """Whether ``path`` is the top of a git checkout."""
    return (path / ".git").exists()


def rev_parse(repo_dir: Path, ref: str = "HEAD") -> str | None:
    """Resolve ``ref`` to a commit id, or None if it cannot be resolved."""
    result = run_git(["-C", str(repo_dir), "rev-parse", "--verify", "--quiet", ref])
    if not result.ok:
        return None
    return result.stdout.strip() or None


def clone(uri: str, dest: Path, *, timeout: float | None = None) -> GitResult:
    return run_git(["clone", uri, str(dest)], timeout=timeout)


def pull_ff_only(repo_dir: Path, uri: str, *, timeout: float | None = None) -> GitResult:
    """Fast-forward ``repo_dir`` to the remote's default branch."""
    return run_git(["-C", str(repo_dir), "pull", "--ff-only", uri], timeout=timeout)
