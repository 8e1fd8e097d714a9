"""Loguru sinks for the API process and the sweep scheduler.

Business code logs with keyword context (session_id, plan_id, client_id...),
which loguru stores in ``record["extra"]``. Both sinks print that context after
the message; with ``serialize=True`` the file sink writes one JSON object per
line instead, for log shippers.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | <level>{message}</level> | <magenta>{extra}</magenta>"
)
FILE_FORMAT = "{time:YYYY-MM-DDTHH:mm:ss.SSSZZ} | {level: <8} | {process} | {name}:{line} | {message} | {extra}"


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    *,
    serialize: bool = False,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Replace loguru's default handler with the FitTrainer sinks.

    Args:
        level: Minimum level for every sink
        log_file: Also write to this file (parent directories are created)
        serialize: Write the file sink as JSON lines
        rotation: When the log file is rotated (size or interval)
        retention: How long rotated files are kept
    """
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            path,
            format=FILE_FORMAT,
            level=level,
            serialize=serialize,
            rotation=rotation,
            retention=retention,
            diagnose=False,
        )

    logger.info("Logging configured", level=level, log_file=log_file, json=serialize)
