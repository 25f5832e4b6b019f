from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from . import config

# passed through `extra=` by the order, inventory and lifecycle code
CONTEXT_FIELDS = ("order_id", "user_id", "product_id")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with order/user/product context when given."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                data[key] = value
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


def setup_json_logging(level: str | None = None):
    lvl = getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO)
    root = logging.getLogger()
    for handler in root.handlers:
        if isinstance(handler.formatter, JsonFormatter):
            return
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(lvl)
