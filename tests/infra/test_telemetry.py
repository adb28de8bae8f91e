from __future__ import annotations

import unittest

from grammarguard.observability.telemetry import counter, get_counter, log_event, reset_counters


class TelemetryTests(unittest.TestCase):
    def setUp(self):
        reset_counters()

    def test_counter_increments(self):
        before = counter("test.counter", 0)
        counter("test.counter")
        after = counter("test.counter", 0)
        self.assertEqual(after, before + 1)

    def test_get_counter_defaults_to_zero(self):
        self.assertEqual(get_counter("never.touched"), 0)

    def test_reset_counters(self):
        counter("store.write_failed", 3)
        reset_counters()
        self.assertEqual(get_counter("store.write_failed"), 0)

    def test_log_event_writes_info_line(self):
        with self.assertLogs("grammarguard.telemetry", level="INFO") as logs:
            log_event("retry_scheduled", stage="llm", attempt=1, delay=2.0)

        self.assertIn("event=retry_scheduled", logs.output[0])
        self.assertIn("'attempt': 1", logs.output[0])


if __name__ == "__main__":
    unittest.main()
