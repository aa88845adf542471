from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, Optional, TextIO


class JsonFormatter(logging.Formatter):
    # Attributes every record carries; anything else came in through `extra`
    standard = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        payload.update(
            {key: value for key, value in vars(record).items() if key not in self.standard}
        )
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "WARNING", stream: Optional[TextIO] = None) -> None:
    """Send JSON log records to stderr; stdout carries the relayed stream."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(JsonFormatter())
    root.handlers.clear()
    root.addHandler(handler)
