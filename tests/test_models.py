import pytest
from krakenfeed.models.order import OHLCInterval, OrderAction, OrderType


def test_interval_labels():
    assert OHLCInterval.from_label("1m") == 1
    assert OHLCInterval.from_label("4h") is OHLCInterval.HOURS_4
    assert OHLCInterval.from_label("15d") == 21600
    with pytest.raises(ValueError):
        OHLCInterval.from_label("2m")


def test_wire_codes():
    assert OrderAction.from_wire("b") is OrderAction.BUY
    assert OrderAction.from_wire("") is OrderAction.UNKNOWN
    assert OrderType.from_wire("m") is OrderType.MARKET
    assert str(OrderType.LIMIT) == "limit"
