"""
Unit tests for FlushContext and FlushCorrelationFilter.
"""
import logging
import unittest

from pizza_telemetry.common.correlation import (
    FlushContext,
    FlushCorrelationFilter,
    clear_flush_id,
    generate_flush_id,
    get_component,
    get_flush_id,
    set_component,
    set_flush_id,
)


class TestFlushId(unittest.TestCase):
    """Tests for flush ID functions."""

    def setUp(self):
        clear_flush_id()

    def test_generate_returns_short_hex(self):
        fid = generate_flush_id()
        self.assertEqual(len(fid), 12)
        int(fid, 16)

    def test_generate_is_unique(self):
        self.assertNotEqual(generate_flush_id(), generate_flush_id())

    def test_set_get_clear(self):
        set_flush_id("f-1")
        self.assertEqual(get_flush_id(), "f-1")
        clear_flush_id()
        self.assertIsNone(get_flush_id())

    def test_component(self):
        set_component("scheduler")
        self.assertEqual(get_component(), "scheduler")


class TestFlushContext(unittest.TestCase):
    """Tests for FlushContext context manager."""

    def setUp(self):
        clear_flush_id()

    def test_generates_id(self):
        with FlushContext() as ctx:
            self.assertEqual(get_flush_id(), ctx.flush_id)
        self.assertIsNone(get_flush_id())

    def test_restores_previous(self):
        set_flush_id("outer")
        with FlushContext("inner"):
            self.assertEqual(get_flush_id(), "inner")
        self.assertEqual(get_flush_id(), "outer")

    def test_restores_on_exception(self):
        with self.assertRaises(RuntimeError):
            with FlushContext("boom"):
                raise RuntimeError()
        self.assertIsNone(get_flush_id())


class TestFlushCorrelationFilter(unittest.TestCase):

    def setUp(self):
        clear_flush_id()
        self.filter = FlushCorrelationFilter()

    def _record(self):
        return logging.LogRecord("t", logging.INFO, "", 1, "m", (), None)

    def test_injects_flush_id(self):
        record = self._record()
        with FlushContext("f-9"):
            self.assertTrue(self.filter.filter(record))
        self.assertEqual(record.flush_id, "f-9")

    def test_empty_when_unset(self):
        record = self._record()
        self.filter.filter(record)
        self.assertEqual(record.flush_id, "")
