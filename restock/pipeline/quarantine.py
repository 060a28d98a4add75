from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from restock.core.aws import sqs_client
from restock.core.log import log_event, log_exception
from restock.core.settings import S


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, set):
        return sorted(value, key=str)
    return str(value)


class Quarantine:
    """Dead-letter sink for change records the pipeline gave up on."""

    def __init__(self, queue_url: Optional[str] = None, client_factory: Callable[[], Any] = sqs_client):
        self.queue_url = S.dlq_url if queue_url is None else queue_url
        self._client_factory = client_factory

    @property
    def enabled(self) -> bool:
        return bool(self.queue_url)

    def send(self, record: Dict[str, Any], *, reason: str = "") -> bool:
        event_id = record.get("eventID")
        if not self.enabled:
            log_event("quarantine_disabled", level="error", event_id=event_id, reason=reason)
            return False
        try:
            body = json.dumps(record, separators=(",", ":"), default=_json_default)
            self._client_factory().send_message(
                QueueUrl=self.queue_url,
                MessageBody=body,
                MessageAttributes={
                    "reason": {"DataType": "String", "StringValue": (reason or "unknown")[:256]},
                },
            )
        except (ClientError, BotoCoreError, TypeError, ValueError) as exc:
            log_exception("quarantine_send_failed", exc, event_id=event_id)
            return False
        log_event("record_quarantined", level="warning", event_id=event_id, reason=reason)
        return True
