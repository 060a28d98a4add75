from __future__ import annotations

import json
import sys
import traceback
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from .settings import S


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return str(value)


def log_event(event: str, level: str = "info", **fields: Any) -> None:
    """Write one JSON line to stdout. Never raises."""
    if not S.log_enabled:
        return
    payload = {"ts": _now_iso(), "level": level, "event": event}
    payload.update(fields)
    try:
        print(json.dumps(payload, separators=(",", ":"), sort_keys=True, default=_default), file=sys.stdout, flush=True)
    except Exception:
        pass


def log_exception(event: str, exc: BaseException, **fields: Any) -> None:
    log_event(
        event,
        level="error",
        error=str(exc),
        error_type=type(exc).__name__,
        traceback="".join(traceback.format_exception(type(exc), exc, exc.__traceback__))[-4000:],
        **fields,
    )
