"""
Supervisor entry point.

Sets up logging to stderr (plus an optional rotating file), installs signal
handlers, wires the components together from the environment configuration
and maps fatal errors to the process exit status.
"""

import logging
import signal
import sys
from logging.handlers import RotatingFileHandler

from .config import Config, config
from .errors import ShutdownRequested, SupervisorError
from .launcher import WorkerLauncher
from .loop import PollLoop
from .process import ProcessSupervisor
from .sync import ConfigSync

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(cfg: Config):
    """Log to stderr so diagnostics stay separate from imapfilter's stdout."""
    log_formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(log_formatter)
    handlers: list[logging.Handler] = [console_handler]

    # Rotating file handler (auto-compaction)
    if cfg.supervisor_log:
        file_handler = RotatingFileHandler(
            cfg.supervisor_log,
            maxBytes=cfg.log_max_bytes,
            backupCount=cfg.log_backup_count,
        )
        file_handler.setFormatter(log_formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        handlers=handlers,
        force=True,
    )


SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT, signal.SIGHUP)


def _raise_shutdown(signum, frame):
    # Further signals are ignored while the worker is being stopped.
    ignore_shutdown_signals()
    raise ShutdownRequested(signum)


def install_signal_handlers():
    for sig in SHUTDOWN_SIGNALS:
        signal.signal(sig, _raise_shutdown)


def ignore_shutdown_signals():
    for sig in SHUTDOWN_SIGNALS:
        signal.signal(sig, signal.SIG_IGN)


def build_loop(cfg: Config) -> PollLoop:
    """Wire the poll loop and its collaborators from a configuration."""
    location = cfg.config_location()
    launcher = WorkerLauncher(cfg.executable, stop_timeout=cfg.stop_timeout)
    supervisor = ProcessSupervisor(
        launcher,
        location,
        log_path=cfg.worker_logfile,
        stop_timeout=cfg.stop_timeout,
    )
    return PollLoop(
        target=cfg.sync_target(),
        location=location,
        config_sync=ConfigSync(git_timeout=cfg.git_timeout),
        launcher=launcher,
        supervisor=supervisor,
        daemon=cfg.daemon,
        poll_interval=cfg.poll_interval,
        log_path=cfg.worker_logfile,
    )


def run(cfg: Config = config) -> int:
    """Run the supervisor until it is signalled or fails. Returns the exit status."""
    loop = build_loop(cfg)
    mode = "daemon" if cfg.daemon else "non-daemon"
    logger.info(
        f"Starting supervisor in {mode} mode: config '{loop.location.relative_file_path}' "
        f"in '{loop.location.base_path}', polling every {cfg.poll_interval}s"
    )

    try:
        loop.run()
    except ShutdownRequested as e:
        logger.info(f"Received signal {signal.Signals(e.signum).name}, shutting down")
        return 0
    except SupervisorError as e:
        logger.error(str(e))
        return e.exit_code
    finally:
        if loop.daemon:
            # The stop is bounded, a signal must not cut it short.
            ignore_shutdown_signals()
            loop.supervisor.stop()

    return 0


def main():
    """Console script entry point."""
    configure_logging(config)
    install_signal_handlers()
    sys.exit(run(config))
