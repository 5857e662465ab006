"""
Loguru logging for the registry sync.

Every record carries an ``ingestion`` field: the id of the ingestion run
that emitted it, or ``-`` outside of a run. Wrap run work in
``ingestion_context`` to tag it:

    from faa_registry.utils.logger import ingestion_context, logger

    with ingestion_context(42):
        logger.info("Staging aircraft...")
"""

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from loguru import logger

NO_INGESTION = "-"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>ingestion={extra[ingestion]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DDTHH:mm:ss.SSSZ} | {level: <8} | ingestion={extra[ingestion]} | "
    "{name}:{function}:{line} | {message}"
)


def setup_logger(
    log_level: str = "DEBUG",
    log_dir: str | Path = "logs",
    log_file: str = "registry.log",
    rotation: str = "10 MB",
    retention: str = "7 days",
    enable_stdout: bool = True,
    enable_file: bool = True,
    serialize: bool = False,
) -> None:
    """
    Replace all sinks with a console sink and a rotating file sink.

    Args:
        log_level: Minimum level for both sinks
        log_dir: Directory of the log file, created if missing
        log_file: Log file name inside ``log_dir``
        rotation: Loguru rotation condition ("10 MB", "1 day", "00:00")
        retention: How long rotated files are kept
        enable_stdout: Add the colorized console sink
        enable_file: Add the file sink (zipped on rotation)
        serialize: Write the file sink as JSON lines instead of text
    """
    logger.remove()
    logger.configure(extra={"ingestion": NO_INGESTION})

    if enable_stdout:
        logger.add(
            sys.stdout,
            format=CONSOLE_FORMAT,
            level=log_level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

    if enable_file:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        logger.add(
            path / log_file,
            format=FILE_FORMAT,
            level=log_level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            serialize=serialize,
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )

    logger.debug(f"Logger initialized with level={log_level}")


@contextmanager
def ingestion_context(ingestion_id: int | None) -> Iterator[None]:
    """Tag every record logged in this block (and its thread) with ``ingestion_id``."""
    value = NO_INGESTION if ingestion_id is None else ingestion_id
    with logger.contextualize(ingestion=value):
        yield


# Console only until the entry point applies settings
setup_logger(log_level="INFO", enable_file=False)


__all__ = ["NO_INGESTION", "ingestion_context", "logger", "setup_logger"]
