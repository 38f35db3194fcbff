import pytest
from krakenfeed.errors import ParseError, ParseErrorKind
from krakenfeed.exchanges.parser import Parser, parse
from krakenfeed.models.market import (
    AssetPairs,
    Assets,
    OHLCs,
    OrderBook,
    RecentSpreads,
    RecentTrades,
    SystemStatus,
    Tickers,
    Time,
)

ALL_TYPES = [Time, SystemStatus, Assets, AssetPairs, Tickers, OHLCs, OrderBook, RecentTrades, RecentSpreads]


def test_none_target_is_invalid():
    with pytest.raises(ParseError) as ei:
        Parser().parse(b'{"error":[],"result":{}}', None)
    assert ei.value.kind is ParseErrorKind.INVALID_TARGET


def test_none_target_wins_over_missing_payload():
    with pytest.raises(ParseError) as ei:
        Parser().parse(None, None)
    assert ei.value.kind is ParseErrorKind.INVALID_TARGET


def test_unknown_type_is_unsupported_even_without_payload():
    class NotAResult:
        pass

    with pytest.raises(ParseError) as ei:
        Parser().parse(None, NotAResult)
    assert ei.value.kind is ParseErrorKind.UNSUPPORTED_TYPE
    assert ei.value.detail == "NotAResult"


def test_instance_target_selects_its_class():
    res = Parser().parse(b'{"error":[],"result":{"unixtime":1643584726}}', Time())
    assert isinstance(res, Time)
    assert res.timestamp is not None


def test_supported_lists_all_nine():
    assert set(Parser().supported) == set(ALL_TYPES)


@pytest.mark.parametrize("target", ALL_TYPES)
def test_empty_result_has_no_errors(target):
    # error 없음 -> errors 는 빈 튜플이 아니라 None
    res = parse(b'{"error":[],"result":null}', target)
    assert isinstance(res, target)
    assert res.errors is None


@pytest.mark.parametrize("target", ALL_TYPES)
def test_errors_survive_on_every_type(target):
    res = parse(b'{"error":["EQuery:Unknown asset pair"]}', target)
    assert res.errors is not None
    assert [str(e) for e in res.errors] == ["EQuery:Unknown asset pair"]


def test_missing_payload_is_malformed():
    with pytest.raises(ParseError) as ei:
        parse(None, Time)
    assert ei.value.kind is ParseErrorKind.MALFORMED


def test_str_payload_is_accepted():
    res = parse('{"error":[],"result":{"status":"online","timestamp":"2022-01-31T00:44:35Z"}}', SystemStatus)
    assert res.status == "online"
