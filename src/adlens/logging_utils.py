"""Logging setup and timing helpers for adlens.

Loggers live under the ``adlens.*`` namespace. ``get_logger`` attaches a
console handler and a ``system.log`` file handler; when the file handler
cannot be attached the logger keeps console output only.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional

from .common.config_validator import LoggingConfig


SYSTEM_FMT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _as_logging_config(config: LoggingConfig | dict | None) -> LoggingConfig:
    if isinstance(config, LoggingConfig):
        return config
    return LoggingConfig(**(config or {}))


def _ensure_logs_dir(config: LoggingConfig) -> Path:
    logs_dir = Path(config.logs_dir).expanduser().resolve()
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def _safe_add_file_handler(logger: logging.Logger, path: Path, fmt: str, level: int) -> bool:
    try:
        fh = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        logger.warning("Failed to attach file handler %s (%s); logging to console only", str(path), exc)
        return False
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(fmt))
    logger.addHandler(fh)
    return True


def get_logger(name: str, config: LoggingConfig | dict | None = None, *, to_file: bool = True) -> logging.Logger:
    """Return a logger with console + file handlers.

    - File: ``<logs_dir>/<file_name>`` (``logs/system.log`` by default)
    - Console: same format
    - Level: from ``config.level``, INFO by default
    """
    cfg = _as_logging_config(config)
    level = getattr(logging, cfg.level)
    logger = logging.getLogger(name)
    logger.setLevel(level)
    # Reset handlers to avoid duplication across repeated initializations
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(logging.Formatter(SYSTEM_FMT))
    logger.addHandler(sh)

    if to_file:
        try:
            logs_dir = _ensure_logs_dir(cfg)
        except OSError as exc:
            logger.warning("Cannot create logs directory %s (%s); logging to console only", cfg.logs_dir, exc)
        else:
            _safe_add_file_handler(logger, logs_dir / cfg.file_name, SYSTEM_FMT, level)
    return logger


def log_system_event(logger: logging.Logger, message: str) -> None:
    logger.info("[SYSTEM] %s", message)


def log_warning(logger: logging.Logger, message: str) -> None:
    logger.warning("[WARNING] %s", message)


def log_error(logger: logging.Logger, message: str) -> None:
    logger.error("[ERROR] %s", message)


@contextmanager
def timed_step(step_name: str, timings: Optional[Dict[str, float]] = None, logger: Optional[logging.Logger] = None) -> Iterator[None]:
    """Time the enclosed block; store seconds in ``timings`` and log them."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if timings is not None:
            timings[step_name] = timings.get(step_name, 0.0) + elapsed
        if logger is not None:
            logger.info("Step %s completed in %.2f seconds", step_name, elapsed)
