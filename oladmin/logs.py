"""Logging setup: RichHandler on the console, plain text in the log file."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from .reporting import console as default_console

LOGGER_NAME = "oladmin"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _SkipReporterEvents(logging.Filter):
    """ConsoleReporter already printed these; only the file handler keeps them."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not getattr(record, "reporter", False)


def default_log_file() -> Path:
    if os.geteuid() == 0:
        return Path("/var/log/oladmin.log")
    state_home = os.environ.get("XDG_STATE_HOME") or os.path.expanduser("~/.local/state")
    return Path(state_home) / "oladmin" / "oladmin.log"


def setup_logger(
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False,
    console: Optional[Console] = None,
) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for h in logger.handlers[:]:
        logger.removeHandler(h)
        h.close()

    console_handler = RichHandler(console=console or default_console, rich_tracebacks=True, show_path=False)
    console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    console_handler.addFilter(_SkipReporterEvents())
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
        except OSError as e:
            logger.warning(f"Could not open log file {log_file}: {e}")
            return logger
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        logger.addHandler(file_handler)
        try:
            os.chmod(str(log_file), 0o600)
        except OSError as e:
            logger.warning(f"Could not set permissions on log file {log_file}: {e}")
    return logger
