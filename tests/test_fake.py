import pytest
from krakenfeed.errors import ErrorCategory
from krakenfeed.exchanges.fake import FakeExchange
from krakenfeed.models.order import AssetPairInfo, OHLCInterval


def test_fake_ohlc_cursor_filters():
    ex = FakeExchange()
    first = ex.ohlc("XXBTZUSD", interval=OHLCInterval.MINUTES_5)
    candles = first.candles["XXBTZUSD"]
    assert len(candles) == 60
    assert first.last_id == int(candles[-1].time.timestamp())
    again = ex.ohlc("XXBTZUSD", interval=OHLCInterval.MINUTES_5, since=first.last_id)
    assert again.candles["XXBTZUSD"] == ()


def test_fake_unknown_pair_is_in_band():
    res = FakeExchange().order_book("XXBTZUSD", "NOPE", count=3)
    assert list(res.asks) == ["XXBTZUSD"]
    assert len(res.bids["XXBTZUSD"]) == 3
    assert res.errors[0].category is ErrorCategory.QUERY
    assert res.errors[0].message == "Unknown asset pair"


def test_fake_asset_pairs_info_subset():
    res = FakeExchange().asset_pairs("XXBTZUSD", info=AssetPairInfo.MARGIN)
    pair = res.pairs["XXBTZUSD"]
    assert pair.margin_call == 80
    assert pair.fees_taker == ()


def test_fake_trades_cursor_is_nanoseconds():
    res = FakeExchange().recent_trades("XXBTZUSD")
    assert res.last_id > 10**18
    assert len(res.trades["XXBTZUSD"]) == 20


def test_fake_requires_pairs():
    with pytest.raises(ValueError):
        FakeExchange().recent_spreads()
