"""JSON log lines tagged with the request and the acting user.

Domain code logs dotted event names (``inventory.recorded``,
``purchase_orders.placed``) and passes its fields as
``extra={"extra_data": {...}}``; the formatter merges them into one object.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Mapping

from ..middlewares.request_id import current_request
from .config import settings

# Fields owned by the formatter; a colliding key in extra_data is nested instead.
_RESERVED = frozenset({"ts", "level", "logger", "event", "request_id", "user_id", "role", "exception"})


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, object] = {
            "ts": stamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{stamp.microsecond // 1000:03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        ctx = current_request()
        if ctx is not None:
            payload.update(ctx.as_log_fields())
        extra = getattr(record, "extra_data", None)
        if isinstance(extra, Mapping):
            clashes = {key: value for key, value in extra.items() if key in _RESERVED}
            payload.update({key: value for key, value in extra.items() if key not in _RESERVED})
            if clashes:
                payload["data"] = clashes
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


def setup_logging(level: str | None = None) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())
    logging.root.handlers = [handler]
    logging.root.setLevel((level or settings.LOG_LEVEL).upper())
    # request.completed already covers what uvicorn's access log would print.
    logging.getLogger("uvicorn.access").disabled = True
