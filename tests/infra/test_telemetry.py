from __future__ import annotations

import pytest

from wayfarer.observability.telemetry import counter, get_latency_stats, reset, time_block


def test_time_block_appends_ms_suffix():
    with time_block("dispatch.getSmartAlerts"):
        pass

    stats = get_latency_stats("dispatch.getSmartAlerts")
    assert stats["count"] == 1
    assert stats["p95"] >= 0.0


def test_time_block_respects_existing_suffix():
    with time_block("upstream.generate_ms"):
        pass

    assert get_latency_stats("upstream.generate_ms")["count"] == 1


def test_time_block_records_on_exception():
    with pytest.raises(RuntimeError), time_block("upstream.video"):
        raise RuntimeError("boom")

    assert get_latency_stats("upstream.video")["count"] == 1


def test_counter_increments_and_reads():
    before = counter("test.counter", 0)
    counter("test.counter")
    assert counter("test.counter", 0) == before + 1


def test_reset_clears_everything():
    counter("x")
    with time_block("y"):
        pass

    reset()

    assert counter("x", 0) == 0
    assert get_latency_stats("y")["count"] == 0
