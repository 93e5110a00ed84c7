"""JSON event records for form operations.

Each record carries the fields bound by :meth:`EventLogger.operation`
(``trace_id``, ``operation``, ``seq``) so call sites only pass what is
specific to the event.
"""

from __future__ import annotations

import json
import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Set

from ..infra.config import AppConfig


DEFAULT_LOGGER_NAME = "crop_form"
MAX_FIELD_CHARS = 400

_BOUND_FIELDS: ContextVar[Optional[Dict[str, Any]]] = ContextVar(
    "crop_form_bound_fields", default=None
)
_CONFIGURED: Set[str] = set()


def _clip(value: Any) -> Any:
    if isinstance(value, str) and len(value) > MAX_FIELD_CHARS:
        return f"{value[:MAX_FIELD_CHARS]}..."
    return value


class EventLogger:
    def __init__(self, name: str = DEFAULT_LOGGER_NAME) -> None:
        self._logger = logging.getLogger(f"{name}.events")

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @contextmanager
    def operation(self, operation: str, seq: int) -> Iterator[str]:
        """Bind operation identity to every record emitted inside the block."""
        trace_id = uuid.uuid4().hex[:16]
        token = _BOUND_FIELDS.set(
            {"trace_id": trace_id, "operation": operation, "seq": seq}
        )
        try:
            yield trace_id
        finally:
            _BOUND_FIELDS.reset(token)

    def emit(self, event: str, **fields: Any) -> None:
        if not self._logger.isEnabledFor(logging.INFO):
            return
        payload = {"event": event, **(_BOUND_FIELDS.get() or {})}
        payload.update((key, _clip(value)) for key, value in fields.items())
        self._logger.info(json.dumps(payload, ensure_ascii=True, default=str))


def init_logging(cfg: AppConfig) -> EventLogger:
    """Attach one handler to the project logger and return its event logger."""
    logger = logging.getLogger(cfg.log_name)
    if cfg.log_name not in _CONFIGURED:
        if cfg.log_path:
            path = Path(cfg.log_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            handler: logging.Handler = RotatingFileHandler(
                path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
            )
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        logger.addHandler(handler)
        logger.propagate = False
        _CONFIGURED.add(cfg.log_name)
    logger.setLevel(cfg.log_level)
    return EventLogger(cfg.log_name)
