"""
Configuration sync against the remote git repository.

Clones the configuration into the base directory on first use and
fast-forwards it afterwards. Whether anything changed is decided by comparing
the checkout's HEAD before and after the pull, never by parsing git's
human-readable output.
"""

import logging
from pathlib import Path

from . import credentials
from . import git
from .errors import CloneFailed, TokenUnreadable
from .models import SyncOutcome, SyncTarget

logger = logging.getLogger(__name__)


class ConfigSync:
    """Keeps a local checkout in step with the configuration repository."""

    def __init__(self, git_timeout: float | None = None):
        self.git_timeout = git_timeout

    def sync(self, target: SyncTarget) -> SyncOutcome:
        """Synchronize the checkout once.

        Raises ``CloneFailed`` when there is no checkout yet and cloning fails.
        Every other failure is returned as a failed outcome so the caller can
        retry on its next cycle.
        """
        try:
            if not credentials.has_source(target):
                logger.debug("No git source configured, using config on disk")
                return SyncOutcome.no_source()
            uri = credentials.resolve(target, require_auth=True)
        except TokenUnreadable as e:
            logger.error(str(e))
            return SyncOutcome.failed(str(e))

        base = Path(target.local_base_path)
        if not git.is_work_tree(base):
            return self._clone(uri, base)
        return self._pull(uri, base)

    def _clone(self, uri: str, base: Path) -> SyncOutcome:
        logger.info(f"Config has not been cloned yet, cloning into {base}")
        base.parent.mkdir(parents=True, exist_ok=True)

        result = git.clone(uri, base, timeout=self.git_timeout)
        if not result.ok:
            logger.critical(
                "Initial clone failed! Check credentials, URL, and permissions. "
                f"Output:\n{result.output}"
            )
            raise CloneFailed(f"git clone into {base} failed with exit status {result.returncode}")

        revision = git.rev_parse(base)
        logger.info(f"Initial clone succeeded at {revision}")
        return SyncOutcome.change_applied(f"cloned {revision}")

    def _pull(self, uri: str, base: Path) -> SyncOutcome:
        logger.info("Checking for config updates...")
        before = git.rev_parse(base)

        result = git.pull_ff_only(base, uri, timeout=self.git_timeout)
        if not result.ok:
            logger.error(f"Configuration pull failed! Output:\n{result.output}")
            return SyncOutcome.failed(result.output or f"git pull exited {result.returncode}")

        after = git.rev_parse(base)
        if after == before:
            logger.info("Config is already up to date")
            return SyncOutcome.up_to_date()

        logger.info(f"Configuration changes applied: {before} -> {after}")
        logger.debug(result.output)
        return SyncOutcome.change_applied(f"{before} -> {after}")
