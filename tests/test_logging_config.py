"""
Tests for logging_config
"""

import json
import logging
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

from logging_config import OperationLogger, StructuredFormatter
from config import LOG_FILE


class TestStructuredFormatter(unittest.TestCase):

    def make_record(self, **extra):
        record = logging.LogRecord("prismic_migrate", logging.WARNING, __file__, 1, "Missing %s", ("fr-fr",), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_formats_json_with_context(self):
        line = StructuredFormatter().format(self.make_record(structured={"missing": ["fr-fr"]}))

        entry = json.loads(line)
        self.assertEqual(entry["level"], "WARNING")
        self.assertEqual(entry["message"], "Missing fr-fr")
        self.assertEqual(entry["context"], {"missing": ["fr-fr"]})
        self.assertNotIn("exception", entry)

    def test_includes_exception(self):
        try:
            raise ValueError("bad document")
        except ValueError:
            record = self.make_record()
            record.exc_info = sys.exc_info()

        entry = json.loads(StructuredFormatter().format(record))
        self.assertIn("ValueError: bad document", entry["exception"])


class TestOperationLogger(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.name = f"prismic_migrate_test_{id(self)}"
        self.logger = OperationLogger(self.name, log_dir=Path(self.temp_dir))
        self.logger.logger.setLevel(logging.DEBUG)

    def tearDown(self):
        for handler in list(self.logger.logger.handlers):
            handler.close()
            self.logger.logger.removeHandler(handler)
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def read_entries(self):
        for handler in self.logger.logger.handlers:
            handler.flush()
        text = (Path(self.temp_dir) / LOG_FILE).read_text(encoding="utf-8")
        return [json.loads(line) for line in text.splitlines()]

    def test_structured_context_written_to_file(self):
        self.logger.log_operation_start("upload_assets", total=3)
        self.logger.log_operation_end("upload_assets", False, failures=1)

        entries = self.read_entries()
        self.assertEqual(entries[0]["context"], {"operation": "upload_assets", "input": {"total": 3}})
        self.assertEqual(entries[1]["level"], "ERROR")
        self.assertEqual(entries[1]["context"]["results"], {"failures": 1})

    def test_api_error_status_is_warning(self):
        self.logger.log_api_call("GET", "https://asset-api.prismic.io/assets", 401, 0.25)
        self.logger.log_api_call("GET", "https://asset-api.prismic.io/assets", 200)

        entries = self.read_entries()
        self.assertEqual([e["level"] for e in entries], ["WARNING", "DEBUG"])
        self.assertEqual(entries[0]["context"]["response_time_ms"], 250.0)

    def test_batch_progress_levels(self):
        for current in range(1, 21):
            self.logger.log_batch_progress("migrate_documents", current, 20)

        levels = [e["level"] for e in self.read_entries()]
        self.assertEqual(len(levels), 20)
        self.assertEqual(levels.count("INFO"), 10)

    def test_log_error_keeps_traceback(self):
        try:
            raise RuntimeError("429")
        except RuntimeError as e:
            self.logger.log_error(e, {"document": "doc1"})

        entry = self.read_entries()[0]
        self.assertEqual(entry["context"], {"error_type": "RuntimeError", "document": "doc1"})
        self.assertIn("Traceback", entry["exception"])
