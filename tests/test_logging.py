"""
Tests for the print-based log helpers and debug prefixes.
"""
import io
import unittest
from contextlib import redirect_stderr, redirect_stdout

from syncscp.utils import logging as slog


class TestLogging(unittest.TestCase):

    def tearDown(self):
        slog.set_debug(False)

    def test_plain_log_has_no_prefix(self):
        buf = io.StringIO()
        with redirect_stdout(buf):
            slog.log("Transfer bytes: 5 finished.")
        self.assertEqual(buf.getvalue(), "Transfer bytes: 5 finished.\n")

    def test_vlog_only_when_verbose(self):
        buf = io.StringIO()
        with redirect_stdout(buf):
            slog.vlog("hidden")
            slog.set_verbose(True)
            slog.vlog("shown")
        self.assertEqual(buf.getvalue(), "shown\n")

    def test_debug_prefixes_caller_location(self):
        """Debug mode names the calling file, not the logging module."""
        slog.set_debug(True)
        buf = io.StringIO()
        with redirect_stdout(buf):
            slog.log("a")
            slog.warn("b")
        lines = buf.getvalue().splitlines()
        self.assertEqual(len(lines), 2)
        for line in lines:
            self.assertIn("test_logging.py:", line)

    def test_error_goes_to_stderr(self):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            slog.error("boom")
        self.assertEqual(out.getvalue(), "")
        self.assertEqual(err.getvalue(), "ERROR: boom\n")


if __name__ == "__main__":
    unittest.main()
