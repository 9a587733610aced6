"""Process-wide logging configuration.

stdout carries the MCP stdio transport, so console output goes to stderr.
The optional log file gets everything at DEBUG and rotates at 5 MB.
"""

from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union
import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Third-party loggers that are noisy at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "mcp.server.lowlevel.server", "uvicorn.access")


def configure_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """Install stderr (and optionally file) handlers on the package logger.

    Calling it again replaces the handlers installed by the previous call.

    Returns:
        The ``vault_mcp_bridge`` package logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    package_logger = logging.getLogger("vault_mcp_bridge")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.DEBUG)
    package_logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(formatter)
    package_logger.addHandler(console)

    if log_file:
        path = Path(log_file).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
            )
        except OSError as e:
            package_logger.warning("Could not open log file %s: %s", path, e)
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return package_logger
