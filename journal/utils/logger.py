"""Logging for the trade journal.

One ``trade_journal`` logger shared by every module.  The console gets
``settings.LOG_LEVEL`` and above; when ``settings.LOG_TO_FILE`` is on, each
process also writes a full DEBUG log to ``trade_journal_<run>.log`` and
mirrors it into ``trade_journal.log``, keeping the newest run logs only.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from journal.config import settings

LOGGER_NAME = "trade_journal"
RUN_LOGS_KEPT = 10

_FORMAT = logging.Formatter(
    "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def _file_handler(path: Path, mode: str = "a") -> logging.FileHandler:
    handler = logging.FileHandler(path, mode=mode, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(_FORMAT)
    return handler


def _prune_run_logs(logs_dir: Path, keep: int = RUN_LOGS_KEPT) -> list[Path]:
    """Delete all but the ``keep`` newest run logs. Returns what was removed."""
    runs = sorted(
        logs_dir.glob(f"{LOGGER_NAME}_*.log"), key=lambda p: p.stat().st_mtime,
    )
    removed = []
    for old in runs[: max(len(runs) - keep, 0)]:
        try:
            old.unlink()
        except OSError:
            continue
        removed.append(old)
    return removed


def _attach_run_files(log: logging.Logger, logs_dir: Path) -> Path:
    logs_dir.mkdir(parents=True, exist_ok=True)
    run_log = logs_dir / f"{LOGGER_NAME}_{datetime.now():%Y-%m-%d_%H-%M-%S}.log"
    log.addHandler(_file_handler(run_log))
    try:
        # truncated each start so it only ever holds the current run
        log.addHandler(_file_handler(logs_dir / f"{LOGGER_NAME}.log", mode="w"))
    except OSError:
        log.warning("Could not open %s.log in %s", LOGGER_NAME, logs_dir)
    _prune_run_logs(logs_dir)
    return run_log


def _setup_logger() -> logging.Logger:
    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(logging.DEBUG)

    # Module may be imported more than once (reload, test collection)
    if log.handlers:
        return log

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.getLevelName(settings.LOG_LEVEL.upper()))
    console.setFormatter(_FORMAT)
    log.addHandler(console)

    if settings.LOG_TO_FILE:
        run_log = _attach_run_files(log, settings.LOGS_DIR)
        log.info("Log started: %s", run_log.name)
    return log


logger = _setup_logger()
