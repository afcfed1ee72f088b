"""Logging configuration utilities.

Human-readable output goes through rich; CI pipelines can ask for one JSON
object per line instead.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(
    level: str = "WARNING",
    structured: bool = False,
    console: Optional[Console] = None,
) -> None:
    """Configure application-wide logging.

    Can be called again to reconfigure (uses force=True).

    Args:
        level: Logging level name, case-insensitive
        structured: Emit JSON lines instead of rich output
        console: Console for rich output (default: stderr)

    Raises:
        ValueError: If the level name is unknown
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    if structured:
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
    else:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)

