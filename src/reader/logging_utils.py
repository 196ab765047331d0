import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any


LOGGER_NAME = "reader"
LOG_FILE = "reader.log"

_LOGGER: logging.Logger | None = None


class JsonLineFormatter(logging.Formatter):
    """One JSON object per line; dict messages are emitted as the payload."""

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            payload: dict[str, Any] = dict(record.msg)
        else:
            payload = {"message": record.getMessage()}
        payload.setdefault("ts", datetime.now(timezone.utc).isoformat())
        payload.setdefault("level", record.levelname)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _handlers() -> list[logging.Handler]:
    log_dir = os.getenv("READER_LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)
    handlers: list[logging.Handler] = [
        logging.FileHandler(os.path.join(log_dir, LOG_FILE), encoding="utf-8"),
    ]
    # CI runs and READER_LOG_STDOUT=1 also echo events to stdout.
    if os.getenv("GITHUB_ACTIONS", "").lower() == "true" or os.getenv("READER_LOG_STDOUT", "") == "1":
        handlers.append(logging.StreamHandler(stream=sys.stdout))
    return handlers


def get_logger() -> logging.Logger:
    global _LOGGER
    if _LOGGER is None:
        logger = logging.getLogger(LOGGER_NAME)
        logger.setLevel(logging.INFO)
        logger.propagate = False
        formatter = JsonLineFormatter()
        for handler in _handlers():
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        _LOGGER = logger
    return _LOGGER


def log_event(event: str, level: int = logging.INFO, **fields: Any) -> None:
    get_logger().log(level, {"event": event, **fields})


def log_error(event: str, **fields: Any) -> None:
    log_event(event, level=logging.ERROR, **fields)
