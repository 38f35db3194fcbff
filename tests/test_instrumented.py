import pytest
from krakenfeed.exchanges.fake import FakeExchange
from krakenfeed.exchanges.instrumented import InstrumentedClient
from krakenfeed.metrics import MetricsRegistry


def test_calls_and_errors_are_counted():
    reg = MetricsRegistry()
    ex = InstrumentedClient(FakeExchange(), reg)
    ex.ohlc("XXBTZUSD")
    ex.ohlc("NOPE")  # in-band error, not a raised one
    with pytest.raises(ValueError):
        ex.recent_trades()

    snap = reg.snapshot()
    assert snap["OHLC"].calls == 2
    assert snap["OHLC"].errors == 0
    assert snap["RecentTrades"].calls == 1
    assert snap["RecentTrades"].errors == 1
    assert ex.name == "fake"


def test_log_summary(caplog):
    ex = InstrumentedClient(FakeExchange(), MetricsRegistry())
    ex.status()
    with caplog.at_level("INFO", logger="instrumented"):
        ex.log_summary()
    assert "Status calls=1 errors=0" in caplog.text


def test_histogram_buckets():
    reg = MetricsRegistry(buckets=(0.1, 1.0))
    reg.observe("x", 0.05)
    reg.observe("x", 0.5)
    reg.observe("x", 3.0)
    st = reg.snapshot()["x"]
    assert st.buckets == {0.1: 1, 1.0: 1}
    assert st.overflow == 1
    assert st.max_s == 3.0
    assert st.mean_s == pytest.approx(3.55 / 3)


def test_snapshot_is_a_copy_and_reset_clears():
    reg = MetricsRegistry()
    reg.inc_calls("Time")
    snap = reg.snapshot()
    reg.inc_calls("Time")
    assert snap["Time"].calls == 1
    reg.reset()
    assert reg.snapshot() == {}


def test_buckets_must_ascend():
    with pytest.raises(ValueError):
        MetricsRegistry(buckets=(1.0, 0.5))
