"""
Structured logging.

Every event is emitted as a single JSON object on stderr. stdout is reserved
for the stdio protocol stream and must never receive log output.
"""

from __future__ import annotations

import json
import logging
import secrets
import sys
import time
from contextvars import ContextVar
from typing import Any, Dict, Optional

LOGGER_NAME = "crypto_signal"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_current_context: ContextVar[Optional[Dict[str, Any]]] = ContextVar("crypto_signal_log_ctx", default=None)

logger = logging.getLogger(LOGGER_NAME)


def now_ms() -> int:
    return int(time.time() * 1000)


def configure_logging(level: str = "info", stream: Any = None) -> logging.Logger:
    """
    Attach a stderr handler to the service logger (idempotent).
    """
    target = stream if stream is not None else sys.stderr
    for h in list(logger.handlers):
        if getattr(h, "_crypto_signal", False):
            logger.removeHandler(h)
    handler = logging.StreamHandler(target)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler._crypto_signal = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(_LEVELS.get(level.strip().lower(), logging.INFO))
    logger.propagate = False
    return logger


def build_log_context(tool: str = "", **extra: Any) -> Dict[str, Any]:
    ctx: Dict[str, Any] = {
        "request_id": secrets.token_hex(8),
        "ts_ms": now_ms(),
        "service": "crypto-signal",
    }
    if tool:
        ctx["tool"] = tool
    ctx.update(extra)
    return ctx


def set_current_context(ctx: Optional[Dict[str, Any]]) -> None:
    _current_context.set(ctx)


def get_current_context() -> Optional[Dict[str, Any]]:
    return _current_context.get()


def log_event(
    event: str,
    *,
    ctx: Optional[Dict[str, Any]] = None,
    data: Optional[Dict[str, Any]] = None,
    level: str = "info",
) -> None:
    lvl = _LEVELS.get(level, logging.INFO)
    if not logger.isEnabledFor(lvl):
        return
    record: Dict[str, Any] = {"event": event, "level": level, "ts_ms": now_ms()}
    base = ctx if ctx is not None else get_current_context()
    if base:
        record.update({k: v for k, v in base.items() if k != "ts_ms"})
    if data:
        record["data"] = data
    logger.log(lvl, json.dumps(record, default=str, sort_keys=True))
