"""Logging configuration for memberships-rw.

Uses loguru with a level-filtered stderr sink and an optional rotating
file sink.

Environment variables for log level control:
- MEMBERSHIPS_RW_LOG_LEVEL: Global log level (default: INFO)
- MEMBERSHIPS_RW_LOG_DB: Query runner log level (e.g. TRACE to see Cypher)
- MEMBERSHIPS_RW_LOG_DIR: Directory for rotating file logs (disabled if unset)
"""

import os
import sys
from contextlib import contextmanager
from pathlib import Path
from time import perf_counter

from loguru import logger

# Get global log level from environment
_global_log_level = os.getenv("MEMBERSHIPS_RW_LOG_LEVEL", "INFO").upper()

# Component-specific log level overrides
_component_log_levels: dict[str, str] = {
    "db": os.getenv("MEMBERSHIPS_RW_LOG_DB", "").upper(),
}


def _log_filter(record) -> bool:
    """Filter log records based on global and component-specific log levels."""
    name = record["extra"].get("name", "")

    for component, level in _component_log_levels.items():
        if level and name.startswith(component):
            try:
                return record["level"].no >= logger.level(level).no
            except ValueError:
                pass  # Invalid level, fall through to global

    try:
        return record["level"].no >= logger.level(_global_log_level).no
    except ValueError:
        return True


def configure_logging(level: str | None = None, log_dir: str | Path | None = None) -> None:
    """(Re)install the loguru sinks.

    Args:
        level: Global log level, overrides MEMBERSHIPS_RW_LOG_LEVEL
        log_dir: Directory for the rotating file sink, overrides MEMBERSHIPS_RW_LOG_DIR
    """
    global _global_log_level

    if level:
        _global_log_level = level.upper()

    logger.remove()

    logger.add(
        sys.stderr,
        level=0,  # Accept all, let filter decide
        filter=_log_filter,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        colorize=True,
    )

    log_dir = log_dir or os.getenv("MEMBERSHIPS_RW_LOG_DIR")
    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "memberships_rw_{time:YYYY-MM-DD}.log",
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[name]}:{function}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            enqueue=True,
        )


logger.configure(extra={"name": ""})
configure_logging()


def get_logger(name: str):
    """Get a logger with the given name bound to context.

    Args:
        name: Module or component name

    Returns:
        Logger instance with name bound
    """
    return logger.bind(name=name)


@contextmanager
def log_timing(operation: str, log_instance=None, level: str = "debug"):
    """Context manager for timing operations with automatic logging.

    Args:
        operation: Description of the operation being timed
        log_instance: Logger instance (uses global logger if None)
        level: Log level for the timing message (default: debug)

    Yields:
        dict with 'elapsed_ms' key (populated after context exits)
    """
    log_fn = log_instance or logger
    timing = {"elapsed_ms": 0.0}
    start = perf_counter()
    try:
        yield timing
    finally:
        timing["elapsed_ms"] = (perf_counter() - start) * 1000
        getattr(log_fn, level)(f"{operation}: {timing['elapsed_ms']:.1f}ms")


__all__ = ["logger", "get_logger", "log_timing", "configure_logging"]
