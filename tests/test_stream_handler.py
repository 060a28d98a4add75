import unittest
from types import SimpleNamespace
from unittest.mock import Mock, patch

from fakes import FakeTable, stream_record
from restock.core.errors import StoreError
from restock.pipeline import stream_handler, upsert
from restock.pipeline.retry import RetryPolicy
from restock.pipeline.stream_handler import ChangeRecord, StreamProcessor, consumed_delta


def _milk(quantity, **extra):
    row = {"Id": "p1", "Name": "Milk", "Category": "Dairy", "Quantity": quantity}
    row.update(extra)
    return row


def _processor(quarantine=None, upsert_fn=upsert.aggregate_upsert):
    sleeps = []
    if quarantine is None:
        quarantine = Mock()
        quarantine.send.return_value = True
    processor = StreamProcessor(
        upsert=upsert_fn,
        quarantine=quarantine,
        policy=RetryPolicy(max_attempts=3, base_delay=1.0),
        sleep=sleeps.append,
    )
    return processor, sleeps


class TestConsumedDelta(unittest.TestCase):
    def _delta(self, before, after):
        return consumed_delta(ChangeRecord.from_stream_record(stream_record(before, after)))

    def test_decrease_yields_difference(self):
        self.assertEqual(self._delta(_milk(5), _milk(3)), 2)

    def test_insert_is_ignored(self):
        self.assertIsNone(self._delta(None, _milk(3)))

    def test_increase_or_equal_is_ignored(self):
        self.assertIsNone(self._delta(_milk(3), _milk(5)))
        self.assertIsNone(self._delta(_milk(3), _milk(3)))

    def test_deletion_is_ignored(self):
        self.assertIsNone(self._delta(_milk(3), None))

    def test_blank_name_is_ignored(self):
        self.assertIsNone(self._delta(_milk(3, Name="  "), _milk(1, Name="  ")))


class TestProcessBatch(unittest.TestCase):
    def test_consumption_creates_then_increments_grocery_row(self):
        tables = SimpleNamespace(grocery=FakeTable())
        processor, sleeps = _processor()
        with patch.object(upsert, "T", tables):
            first = processor.process_batch([stream_record(_milk(5), _milk(3), "e1")])
            second = processor.process_batch([stream_record(_milk(3), _milk(2), "e2")])
        self.assertEqual((first.applied, second.applied), (1, 1))
        rows = list(tables.grocery.rows.values())
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["Name"], "Milk")
        self.assertEqual(int(rows[0]["Quantity"]), 3)
        self.assertEqual(sleeps, [])

    def test_skipped_records_do_not_touch_grocery_list(self):
        tables = SimpleNamespace(grocery=FakeTable())
        processor, _ = _processor()
        records = [
            stream_record(_milk(3), _milk(5), "up"),
            stream_record(_milk(3), None, "gone"),
            stream_record(None, _milk(4), "new"),
        ]
        with patch.object(upsert, "T", tables):
            result = processor.process_batch(records)
        self.assertEqual(result.processed, 3)
        self.assertEqual(result.skipped, 3)
        self.assertEqual(tables.grocery.calls, [])

    def test_transient_failure_is_retried_then_applied(self):
        tables = SimpleNamespace(grocery=FakeTable())
        tables.grocery.fail["query"] = 2
        processor, sleeps = _processor()
        with patch.object(upsert, "T", tables):
            result = processor.process_batch([stream_record(_milk(5), _milk(4))])
        self.assertEqual(result.applied, 1)
        self.assertEqual(sleeps, [1.0, 2.0])
        self.assertEqual(len(tables.grocery.rows), 1)

    def test_exhausted_record_is_quarantined_and_batch_continues(self):
        tables = SimpleNamespace(grocery=FakeTable())
        tables.grocery.fail["query"] = 3
        quarantine = Mock()
        quarantine.send.return_value = True
        processor, sleeps = _processor(quarantine)
        bad = stream_record(_milk(5), _milk(4), "bad")
        good = stream_record(_milk(4, Id="p2", Name="Eggs"), _milk(1, Id="p2", Name="Eggs"), "good")
        with patch.object(upsert, "T", tables):
            result = processor.process_batch([bad, good])
        self.assertEqual(result.quarantined, 1)
        self.assertEqual(result.applied, 1)
        self.assertEqual(result.failed_event_ids, ["bad"])
        self.assertEqual(sleeps, [1.0, 2.0])
        sent, kwargs = quarantine.send.call_args
        self.assertIs(sent[0], bad)
        self.assertIn("LookupFailed", kwargs["reason"])
        rows = list(tables.grocery.rows.values())
        self.assertEqual([r["Name"] for r in rows], ["Eggs"])
        self.assertEqual(int(rows[0]["Quantity"]), 3)

    def test_failed_quarantine_send_is_counted_as_dropped(self):
        quarantine = Mock()
        quarantine.send.return_value = False
        failing = Mock(side_effect=StoreError("update_item", RuntimeError("throttled")))
        processor, _ = _processor(quarantine, upsert_fn=failing)
        result = processor.process_batch([stream_record(_milk(2), _milk(1))])
        self.assertEqual(result.dropped, 1)
        self.assertEqual(failing.call_count, 3)

    def test_quarantine_exception_does_not_abort_batch(self):
        quarantine = Mock()
        quarantine.send.side_effect = RuntimeError("sqs down")
        calls = []

        def flaky(name, category, delta):
            calls.append(name)
            if name == "Milk":
                raise StoreError("query", RuntimeError("throttled"))

        processor, _ = _processor(quarantine, upsert_fn=flaky)
        result = processor.process_batch([
            stream_record(_milk(2), _milk(1), "a"),
            stream_record(_milk(2, Id="p2", Name="Tea"), _milk(1, Id="p2", Name="Tea"), "b"),
        ])
        self.assertEqual(result.dropped, 1)
        self.assertEqual(result.applied, 1)
        self.assertEqual(calls, ["Milk", "Milk", "Milk", "Tea"])

    def test_malformed_record_is_quarantined(self):
        quarantine = Mock()
        quarantine.send.return_value = True
        processor, _ = _processor(quarantine)
        raw = {"eventID": "broken", "dynamodb": {"NewImage": {"Quantity": {"Q": "??"}}}}
        result = processor.process_batch([raw])
        self.assertEqual(result.quarantined, 1)
        self.assertEqual(result.failed_event_ids, ["broken"])

    def test_replayed_record_is_applied_again(self):
        tables = SimpleNamespace(grocery=FakeTable())
        processor, _ = _processor()
        record = stream_record(_milk(5), _milk(3), "e1")
        with patch.object(upsert, "T", tables):
            processor.process_batch([record])
            processor.process_batch([record])
        rows = list(tables.grocery.rows.values())
        self.assertEqual(int(rows[0]["Quantity"]), 4)


class TestLambdaHandler(unittest.TestCase):
    def test_returns_empty_batch_failures_with_summary(self):
        processor, _ = _processor(upsert_fn=Mock())
        with patch.object(stream_handler, "_processor", processor):
            resp = stream_handler.lambda_handler({"Records": [stream_record(_milk(2), _milk(1))]})
        self.assertEqual(resp["batchItemFailures"], [])
        self.assertEqual(resp["summary"]["applied"], 1)

    def test_empty_event(self):
        processor, _ = _processor(upsert_fn=Mock())
        with patch.object(stream_handler, "_processor", processor):
            resp = stream_handler.lambda_handler({})
        self.assertEqual(resp["summary"]["processed"], 0)


if __name__ == "__main__":
    unittest.main()
