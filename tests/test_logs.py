import logging
import unittest
from unittest.mock import patch

from musicbot import logs


class FieldLoggerTests(unittest.TestCase):
    def test_fields_are_rendered_and_inherited(self) -> None:
        log = logs.get_logger("musicbot.test", channel_id="c1")
        child = log.with_fields(user="bob")
        with self.assertLogs("musicbot.test", level="INFO") as captured:
            child.info("Hello")
        self.assertEqual(captured.output, ["INFO:musicbot.test:Hello [channel_id='c1' user='bob']"])
        self.assertEqual(log.fields, {"channel_id": "c1"})

    def test_no_fields(self) -> None:
        log = logs.get_logger("musicbot.test")
        with self.assertLogs("musicbot.test", level="INFO") as captured:
            log.info("plain")
        self.assertEqual(captured.output, ["INFO:musicbot.test:plain"])


class VerboseLogsTests(unittest.TestCase):
    def test_values(self) -> None:
        for raw, expected in [("", False), ("true", True), ("1", True), ("off", False)]:
            with patch.dict("os.environ", {"VERBOSE_LOGS_ENABLED": raw}):
                self.assertEqual(logs.verbose_logs_enabled(), expected, raw)

    def test_garbage_warns_and_is_false(self) -> None:
        with patch.dict("os.environ", {"VERBOSE_LOGS_ENABLED": "maybe"}):
            with self.assertLogs("musicbot.logs", level=logging.WARNING):
                self.assertFalse(logs.verbose_logs_enabled())
