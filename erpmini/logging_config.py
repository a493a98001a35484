"""Logging setup for the erpmini namespace."""

from __future__ import annotations

import json
import logging
import sys
import threading
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

_LOGGER_PREFIX = 'erpmini'

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord('', 0, '', 0, '', (), None)).keys()
) | {'message', 'taskName'}


class _JSONEncoder(json.JSONEncoder):
    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        return super().default(obj)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, with any `extra=` fields merged in."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            'ts': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload['exc_type'] = type(exc).__name__
            payload['exc_message'] = str(exc)
            code = getattr(exc, 'code', None)
            if code is not None:
                payload['exc_code'] = code
            payload['traceback'] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder, default=str)


def get_logger(name: str) -> logging.Logger:
    if name == _LOGGER_PREFIX or name.startswith(_LOGGER_PREFIX + '.'):
        return logging.getLogger(name)
    return logging.getLogger(f'{_LOGGER_PREFIX}.{name}')


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    json_lines: bool = True,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a single handler to the erpmini logger. Calling again is a no-op."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    if json_lines:
        h.setFormatter(StructuredFormatter())
    else:
        h.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s'))
    logger.addHandler(h)


def reset_logging() -> None:
    """Undo configure_logging. Used by tests."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
    logger.propagate = True
