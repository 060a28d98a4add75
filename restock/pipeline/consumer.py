from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, List, Optional, Set

from botocore.exceptions import ClientError

from restock.core.aws import ddb_client, streams_client
from restock.core.log import log_event, log_exception
from restock.core.settings import S, require
from restock.pipeline.stream_handler import StreamProcessor

# get_records errors after which the shard iterator is no longer usable.
_REOPEN_CODES = {"ExpiredIteratorException", "TrimmedDataAccessException"}


class StreamConsumer:
    """Polls the pantry table's stream and feeds batches to a StreamProcessor.

    For deployments without a Lambda event source mapping. Shards open at
    startup are read from LATEST, so changes written while the consumer is
    down are not replayed. Shards that appear later (children of a closed
    shard) are read from TRIM_HORIZON. A failed read only affects its shard
    and is retried on the next poll.
    """

    def __init__(
        self,
        processor: StreamProcessor,
        *,
        table_name: Optional[str] = None,
        poll_seconds: Optional[float] = None,
        ddb: Optional[Any] = None,
        streams: Optional[Any] = None,
    ):
        self.processor = processor
        self.table_name = table_name or require("pantry_table")
        self.poll_seconds = S.stream_poll_seconds if poll_seconds is None else poll_seconds
        self._ddb = ddb
        self._streams = streams
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.stream_arn: Optional[str] = None
        self.shard_iterators: Dict[str, str] = {}
        self.last_sequence: Dict[str, str] = {}
        self._start_types: Dict[str, str] = {}
        self._known_shards: Set[str] = set()

    @property
    def ddb(self) -> Any:
        if self._ddb is None:
            self._ddb = ddb_client()
        return self._ddb

    @property
    def streams(self) -> Any:
        if self._streams is None:
            self._streams = streams_client()
        return self._streams

    def _describe_shards(self) -> List[Dict[str, Any]]:
        shards: List[Dict[str, Any]] = []
        kwargs: Dict[str, Any] = {"StreamArn": self.stream_arn}
        while True:
            desc = self.streams.describe_stream(**kwargs)["StreamDescription"]
            shards.extend(desc.get("Shards", []))
            last = desc.get("LastEvaluatedShardId")
            if not last:
                break
            kwargs["ExclusiveStartShardId"] = last
        return shards

    def _iterator_for(self, shard_id: str) -> str:
        params: Dict[str, Any] = {"StreamArn": self.stream_arn, "ShardId": shard_id}
        seq = self.last_sequence.get(shard_id)
        if seq:
            params.update(ShardIteratorType="AFTER_SEQUENCE_NUMBER", SequenceNumber=seq)
        else:
            params["ShardIteratorType"] = self._start_types[shard_id]
        return self.streams.get_shard_iterator(**params)["ShardIterator"]

    def _add_new_shards(self, iterator_type: str) -> int:
        added = 0
        for shard in self._describe_shards():
            shard_id = shard["ShardId"]
            if shard_id in self._known_shards:
                continue
            self._known_shards.add(shard_id)
            self._start_types[shard_id] = iterator_type
            self.shard_iterators[shard_id] = self._iterator_for(shard_id)
            added += 1
        return added

    def open_shards(self) -> bool:
        stream_arn = self.ddb.describe_table(TableName=self.table_name)["Table"].get("LatestStreamArn")
        if not stream_arn:
            log_event("stream_not_enabled", level="error", table=self.table_name)
            return False
        self.stream_arn = stream_arn
        if not self._add_new_shards("LATEST"):
            log_event("stream_no_shards", level="warning", stream_arn=stream_arn)
        log_event("stream_consumer_started", shards=len(self.shard_iterators), stream_arn=stream_arn)
        return True

    def refresh_shards(self) -> int:
        """Pick up shards created since the last describe, reading them from the start."""
        added = self._add_new_shards("TRIM_HORIZON")
        if added:
            log_event("stream_shards_added", shards=added, stream_arn=self.stream_arn)
        return added

    def _reopen(self, shard_id: str) -> None:
        try:
            self.shard_iterators[shard_id] = self._iterator_for(shard_id)
        except Exception as exc:
            log_exception("stream_shard_reopen_failed", exc, shard_id=shard_id)

    def _poll_shard(self, shard_id: str, iterator: str) -> int:
        try:
            resp = self.streams.get_records(ShardIterator=iterator, Limit=100)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            log_exception("stream_get_records_failed", exc, shard_id=shard_id, code=code)
            if code in _REOPEN_CODES:
                self._reopen(shard_id)
            return 0
        except Exception as exc:
            log_exception("stream_get_records_failed", exc, shard_id=shard_id)
            return 0

        next_iterator = resp.get("NextShardIterator")
        if next_iterator:
            self.shard_iterators[shard_id] = next_iterator
        else:
            del self.shard_iterators[shard_id]
            log_event("stream_shard_closed", shard_id=shard_id)
        records = resp.get("Records", [])
        if not records:
            return 0
        self.last_sequence[shard_id] = records[-1].get("dynamodb", {}).get("SequenceNumber", "")
        self.processor.process_batch(records)
        return len(records)

    def poll_once(self) -> int:
        handled = 0
        active = len(self.shard_iterators)
        for shard_id, iterator in list(self.shard_iterators.items()):
            if self._stop.is_set():
                break
            handled += self._poll_shard(shard_id, iterator)
        if len(self.shard_iterators) < active or not self.shard_iterators:
            self.refresh_shards()
        return handled

    def run(self, sleep: Callable[[float], None] = time.sleep) -> None:
        while not self._stop.is_set():
            try:
                if self.stream_arn is not None or self.open_shards():
                    self.poll_once()
            except Exception as exc:
                log_exception("stream_consumer_error", exc, table=self.table_name)
            if self._stop.is_set():
                break
            sleep(self.poll_seconds)
        log_event("stream_consumer_stopping")

    def start(self) -> None:
        self._thread = threading.Thread(target=self.run, name="pantry-stream-consumer", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
