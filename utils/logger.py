# utils/logger.py
import os
import logging
from typing import Optional, Union


WAREHOUSE_LOGGER = "sqlite_warehouse"
WAREHOUSE_LOG_FILE = "warehouse_pipeline.log"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def resolve_level(level: Union[int, str]) -> int:
    """Accept either a logging constant or its name ('debug', 'INFO', ...)."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logger(
    logger_name: str = WAREHOUSE_LOGGER,
    log_file: Optional[str] = WAREHOUSE_LOG_FILE,
    level: Union[int, str] = logging.INFO,
    log_dir: str = "logs",
    console: bool = True
) -> logging.Logger:
    """
    Attach file and console handlers to the warehouse logger.

    The layer modules log through ``sqlite_warehouse.<module>`` child loggers,
    so configuring the package logger once routes every progress line and
    error banner of a run into a single file.

    Args:
        logger_name: Logger to configure (default: the warehouse package logger)
        log_file: Log filename inside ``log_dir``; None names it after the logger
        level: Logging level, as a constant or a name (default: INFO)
        log_dir: Directory for log files (default: logs)
        console: Whether to also log to the console (default: True)

    Returns:
        Configured logger instance
    """
    os.makedirs(log_dir, exist_ok=True)

    if log_file is None:
        log_file = f"{logger_name.lower().replace('.', '_')}.log"
    log_path = os.path.join(log_dir, log_file)

    logger = logging.getLogger(logger_name)
    logger.setLevel(resolve_level(level))

    # Re-running the CLI in one process must not stack handlers
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)
    handlers = [logging.FileHandler(log_path, encoding="utf-8")]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.info(f"Warehouse log for this run: {os.path.abspath(log_path)}")

    return logger
