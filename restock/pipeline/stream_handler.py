"""Change propagation: pantry quantity decreases become grocery list quantity.

Each stream record is handled on its own. A consumption event (quantity went
down on a row with a name) is applied to the grocery list with bounded
exponential backoff; once attempts are exhausted the raw record is sent to
the quarantine queue and the batch moves on. Nothing a single record does can
abort the batch.

Delivery is at-least-once and the increment is not deduplicated by event id,
so replaying a record that was already applied adds its delta again.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from restock.core.log import log_event, log_exception
from restock.core.records import ItemRecord
from restock.core.settings import require
from restock.metrics import record_pipeline_outcome, record_pipeline_retry
from restock.pipeline.quarantine import Quarantine
from restock.pipeline.retry import RetryPolicy, call_with_retry
from restock.pipeline.upsert import aggregate_upsert


@dataclass(frozen=True)
class ChangeRecord:
    event_id: str
    event_name: str
    before: Optional[ItemRecord]
    after: Optional[ItemRecord]

    @classmethod
    def from_stream_record(cls, raw: Dict[str, Any]) -> "ChangeRecord":
        ddbrec = raw.get("dynamodb") or {}
        return cls(
            event_id=str(raw.get("eventID") or ""),
            event_name=str(raw.get("eventName") or ""),
            before=ItemRecord.from_image(ddbrec.get("OldImage")),
            after=ItemRecord.from_image(ddbrec.get("NewImage")),
        )


def consumed_delta(change: ChangeRecord) -> Optional[int]:
    """Quantity consumed by this change, or None when nothing should propagate."""
    if change.after is None:
        return None
    if not change.after.name:
        return None
    old_quantity = change.before.quantity if change.before is not None else 0
    new_quantity = change.after.quantity
    if old_quantity <= new_quantity:
        return None
    return old_quantity - new_quantity


@dataclass
class BatchResult:
    processed: int = 0
    applied: int = 0
    skipped: int = 0
    quarantined: int = 0
    dropped: int = 0
    failed_event_ids: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "applied": self.applied,
            "skipped": self.skipped,
            "quarantined": self.quarantined,
            "dropped": self.dropped,
            "failed_event_ids": list(self.failed_event_ids),
        }


class StreamProcessor:
    def __init__(
        self,
        upsert: Callable[[str, str, int], Any] = aggregate_upsert,
        quarantine: Optional[Quarantine] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.upsert = upsert
        self.quarantine = quarantine if quarantine is not None else Quarantine()
        self.policy = policy if policy is not None else RetryPolicy.from_settings()
        self.sleep = sleep

    def _on_retry(self, event_id: str, name: str):
        def log_retry(attempt: int, exc: BaseException, delay: float) -> None:
            record_pipeline_retry()
            log_event(
                "grocery_upsert_retry",
                level="warning",
                event_id=event_id,
                name=name,
                attempt=attempt,
                max_attempts=self.policy.max_attempts,
                delay_seconds=delay,
                error=str(exc),
            )

        return log_retry

    def _apply(self, change: ChangeRecord, delta: int) -> None:
        after = change.after
        log_event(
            "consumption_detected",
            event_id=change.event_id,
            item_id=after.id,
            name=after.name,
            old_quantity=change.before.quantity if change.before is not None else 0,
            new_quantity=after.quantity,
            delta=delta,
        )
        call_with_retry(
            lambda: self.upsert(after.name, after.category, delta),
            self.policy,
            sleep=self.sleep,
            on_retry=self._on_retry(change.event_id, after.name),
        )

    def _give_up(self, raw: Dict[str, Any], exc: BaseException, result: BatchResult) -> None:
        event_id = str(raw.get("eventID") or "")
        log_exception("record_failed", exc, event_id=event_id, attempts=self.policy.max_attempts)
        result.failed_event_ids.append(event_id)
        try:
            sent = self.quarantine.send(raw, reason=f"{type(exc).__name__}: {exc}")
        except Exception as send_exc:
            log_exception("quarantine_send_failed", send_exc, event_id=event_id)
            sent = False
        if sent:
            result.quarantined += 1
            record_pipeline_outcome("quarantined")
        else:
            result.dropped += 1
            record_pipeline_outcome("dropped")

    def process_record(self, raw: Dict[str, Any], result: BatchResult) -> None:
        result.processed += 1
        try:
            change = ChangeRecord.from_stream_record(raw)
            delta = consumed_delta(change)
            if delta is None:
                result.skipped += 1
                record_pipeline_outcome("skipped")
                log_event(
                    "change_skipped",
                    event_id=change.event_id,
                    event_name=change.event_name,
                    deleted=change.after is None,
                )
                return
            self._apply(change, delta)
        except Exception as exc:
            self._give_up(raw, exc, result)
            return
        result.applied += 1
        record_pipeline_outcome("applied")

    def process_batch(self, records: Iterable[Dict[str, Any]]) -> BatchResult:
        result = BatchResult()
        for raw in records:
            self.process_record(raw, result)
        log_event("batch_processed", **result.as_dict())
        return result


_processor: Optional[StreamProcessor] = None


def get_processor() -> StreamProcessor:
    global _processor
    if _processor is None:
        require("grocery_table")
        _processor = StreamProcessor()
    return _processor


def lambda_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """Entry point for the pantry table's stream event source mapping.

    Terminal failures are quarantined, so no record is reported back as a
    batch item failure.
    """
    records = (event or {}).get("Records") or []
    result = get_processor().process_batch(records)
    return {"batchItemFailures": [], "summary": result.as_dict()}
