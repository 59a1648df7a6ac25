"""Structured logging setup.

Store modules log through ``logging.getLogger(__name__)``; this module only
decides where those records go and how they look.

Formats:
    - json: one JSON object per line with timestamp, level, logger, message
      and the store extras (record_id, table, operation, error_code)
    - text: a single human-readable line
"""

import json
import logging
from datetime import datetime, timezone

EXTRA_FIELDS = ("record_id", "table", "operation", "error_code")

_HANDLER_NAME = "ledgerstore"


class JSONFormatter(logging.Formatter):
    """Format log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "text") -> logging.Handler:
    """Attach the ledgerstore handler to the root logger (once) and set the level."""
    root = logging.getLogger()
    handler = next((h for h in root.handlers if h.get_name() == _HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        root.addHandler(handler)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
