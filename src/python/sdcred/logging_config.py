"""JSON-lines logging for the sdcred command-line tools.

Library modules only call ``logging.getLogger(__name__)``. The ``python -m``
entry points call :func:`configure_logging` once, which sends every record to
stderr as one JSON object per line. Stdout is reserved for command output.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from sdcred.config import LOG_LEVEL


class JsonFormatter(logging.Formatter):
    """Render a record as ``{"ts", "level", "logger", "msg"[, "exc_info"]}``."""

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False)


def configure_logging(level: str | None = None) -> None:
    """Install the JSON stderr handler on the root logger.

    Args:
        level: Level name such as ``"debug"``; defaults to ``SDCRED_LOG_LEVEL``.
            Unknown names fall back to INFO.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))
