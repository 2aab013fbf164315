"""Logging setup for the MCP server.

stdout carries JSON-RPC frames, so nothing may log there: records go to
stderr and to a dated file under the configured log directory. Bead titles,
comments and memory entries written by agents end up in log messages, so
every record is flattened to one line and a multi-line payload cannot pass
for extra log entries.
"""

import logging
import sys

from .core.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# httpx logs every memory-search request at INFO
QUIET_LOGGERS = ("httpx", "httpcore")


class SingleLineFormatter(logging.Formatter):
    """Formatter that escapes line breaks, tracebacks included."""

    def format(self, record: logging.LogRecord) -> str:
        return super().format(record).replace("\r", "\\r").replace("\n", "\\n")


def setup_logging(settings: Settings, component: str = "bd_identity") -> logging.Logger:
    """Configure root logging from settings.

    Args:
        settings: Supplies the log level and the log directory
        component: Logger name and log file prefix

    Returns:
        The component's logger
    """
    log_file = settings.get_log_file(component)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = SingleLineFormatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stderr),
        logging.FileHandler(log_file, encoding="utf-8"),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        handlers=handlers,
        force=True,  # Override any existing configuration
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger(component)
