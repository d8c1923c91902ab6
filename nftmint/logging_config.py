"""Logging setup for nftmint.

Named loggers under the ``nftmint`` namespace, an optional JSON line
formatter and an optional rotating file handler, driven by LoggingConfig.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .config import LoggingConfig, get_config

ROOT_LOGGER = "nftmint"



class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts_ms": int(record.created * 1000),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = getattr(record, "fields", None)
        if isinstance(extra, dict):
            payload.update(extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True, ensure_ascii=False)


def setup_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """Configure the nftmint logger tree. Safe to call more than once."""
    cfg = config or get_config().logging
    root = logging.getLogger(ROOT_LOGGER)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    root.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))
    if cfg.json_format:
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    if cfg.console_output:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)

    if cfg.log_dir:
        log_dir = Path(cfg.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "nftmint.log", maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    if not root.handlers:
        root.addHandler(logging.NullHandler())
    root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Get a logger in the nftmint namespace."""
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def get_collection_logger() -> logging.Logger:
    return get_logger("nftmint.collection")


def get_deployment_logger() -> logging.Logger:
    return get_logger("nftmint.deployment")


class Timer:
    """Context manager that logs how long a block took.

    Usage:
        with Timer(logger, "signature recovery"):
            ...
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.DEBUG):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.elapsed_ms = 0.0
        self._start = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000
        status = "failed" if exc_type else "done"
        self.logger.log(self.level, f"{self.operation} {status} in {self.elapsed_ms:.2f}ms")
