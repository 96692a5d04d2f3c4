import io
import json
import threading

import pytest

from observability import Metrics, build_log_context, configure_logging, log_event
from observability.logging import set_current_context


@pytest.fixture
def log_stream():
    stream = io.StringIO()
    configure_logging("debug", stream=stream)
    return stream


def _records(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def test_log_event_writes_one_json_line(log_stream):
    ctx = build_log_context(tool="unit", rpc_id=3)
    log_event("thing_happened", ctx=ctx, data={"n": 1})

    (record,) = _records(log_stream)
    assert record["event"] == "thing_happened"
    assert record["tool"] == "unit"
    assert record["rpc_id"] == 3
    assert record["request_id"] == ctx["request_id"]
    assert record["service"] == "crypto-signal"
    assert record["data"] == {"n": 1}


def test_level_filtering():
    stream = io.StringIO()
    configure_logging("warn", stream=stream)
    log_event("quiet", level="debug")
    log_event("loud", level="error")
    assert [r["event"] for r in _records(stream)] == ["loud"]


def test_current_context_is_used_when_ctx_omitted(log_stream):
    set_current_context(build_log_context(tool="ambient"))
    try:
        log_event("inside")
    finally:
        set_current_context(None)
    assert _records(log_stream)[0]["tool"] == "ambient"


def test_configure_logging_is_idempotent(log_stream):
    logger = configure_logging("debug", stream=log_stream)
    tagged = [h for h in logger.handlers if getattr(h, "_crypto_signal", False)]
    assert len(tagged) == 1


def test_metrics_counters_and_timers():
    m = Metrics()
    m.inc("calls")
    m.inc("calls", 2)
    m.observe_ms("latency", 5)
    m.observe_ms("latency", 15)

    snap = m.snapshot()
    assert m.get("calls") == 3
    assert m.get("unknown") == 0
    assert snap["timers"]["latency"] == {"count": 2, "total_ms": 20.0, "max_ms": 15.0}


def test_metrics_thread_safety():
    m = Metrics()

    def work():
        for _ in range(1000):
            m.inc("hits")

    threads = [threading.Thread(target=work) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert m.get("hits") == 8000
