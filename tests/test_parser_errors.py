import pytest
from krakenfeed.errors import ErrorCategory, KrakenAPIError, ParseError, ParseErrorKind
from krakenfeed.exchanges.parser import classify_errors, parse
from krakenfeed.models.market import AssetPairs, OHLCs, OrderBook, RecentSpreads, RecentTrades, SystemStatus, Tickers, Time


@pytest.mark.parametrize(
    "prefix,category",
    [
        ("EGeneral", ErrorCategory.GENERAL),
        ("EAPI", ErrorCategory.API),
        ("EQuery", ErrorCategory.QUERY),
        ("EOrder", ErrorCategory.ORDER),
        ("ETrade", ErrorCategory.TRADE),
        ("EFunding", ErrorCategory.FUNDING),
        ("EService", ErrorCategory.SERVICE),
        ("ESession", ErrorCategory.SESSION),
    ],
)
def test_known_prefixes(prefix, category):
    assert classify_errors([f"{prefix}:test error"]) == (KrakenAPIError(category, "test error"),)


def test_unknown_and_colonless_keep_full_string():
    errs = classify_errors(["unknown test error", "EGeneral", "EBogus:thing"])
    assert errs == (
        KrakenAPIError(ErrorCategory.UNKNOWN, "unknown test error"),
        KrakenAPIError(ErrorCategory.UNKNOWN, "EGeneral"),
        KrakenAPIError(ErrorCategory.UNKNOWN, "EBogus:thing"),
    )


def test_only_first_colon_splits():
    (err,) = classify_errors(["EQuery:Unknown asset pair:XBTXYZ"])
    assert err.category is ErrorCategory.QUERY
    assert err.message == "Unknown asset pair:XBTXYZ"


def test_no_messages_is_none():
    assert classify_errors([]) is None


def test_errors_arrive_alongside_result():
    res = parse(
        b'{"error":["EGeneral:test error","EAPI:test error","unknown test error"],'
        b'"result":{"unixtime":1644358183,"rfc1123":"Tue,  8 Feb 22 22:09:43 +0000"}}',
        Time,
    )
    assert res.timestamp is not None
    assert [e.category for e in res.errors] == [ErrorCategory.GENERAL, ErrorCategory.API, ErrorCategory.UNKNOWN]
    assert res.errors[2].message == "unknown test error"
    assert str(res.errors[0]) == "EGeneral:test error"


@pytest.mark.parametrize(
    "payload,target",
    [
        (b"{not json", Time),
        (b"[]", Time),
        (b'{"error":"EGeneral:x","result":null}', Time),
        (b'{"error":[42],"result":null}', Time),
        (b'{"error":[],"result":{"unixtime":"1643584726"}}', Time),
        (b'{"error":[],"result":{"status":"online","timestamp":"yesterday"}}', SystemStatus),
        (b'{"error":[],"result":{"status":"online","timestamp":"2022-01-31T00:44:35"}}', SystemStatus),
        (b'{"error":[],"result":{"XXBTZUSD":[[1643714160,"38311.6","38343.7"]],"last":1}}', OHLCs),
        (b'{"error":[],"result":{"XXBTZUSD":[[1643714160,"abc","1","1","1","1","1",1]],"last":1}}', OHLCs),
        (b'{"error":[],"result":{"XXBTZUSD":[[1643714160,38311.6,"1","1","1","1","1",1]],"last":1}}', OHLCs),
        (b'{"error":[],"result":{"XXBTZUSD":[],"last":"12a"}}', RecentTrades),
        (b'{"error":[],"result":{"XXBTZUSD":[["1","1",1644189769,"b"]]}}', RecentTrades),
        (b'{"error":[],"result":{"XXBTZUSD":[[1644356229,"44223.3"]]}}', RecentSpreads),
        (b'{"error":[],"result":{"XXBTZUSD":{"a":["1","1"]}}}', Tickers),
        (b'{"error":[],"result":[]}', OHLCs),
        (b'{"error":[],"result":{"XXBTZUSD":{"asks":[[1.0,1.0]]}}}', OrderBook),
        (b'{"error":[],"result":{"XXBTZUSD":{"fees":[[0]]}}}', AssetPairs),
        (b'{"error":[],"result":{"status":"online","timestamp":"2022-13-31T00:44:35Z"}}', SystemStatus),
    ],
)
def test_malformed(payload, target):
    with pytest.raises(ParseError) as ei:
        parse(payload, target)
    assert ei.value.kind is ParseErrorKind.MALFORMED


def test_malformed_detail_names_the_slot():
    with pytest.raises(ParseError) as ei:
        parse(b'{"error":[],"result":{"XXBTZUSD":[[1643714160,"1","1","1","x","1","1",1]],"last":1}}', OHLCs)
    assert "result.XXBTZUSD[0][4]" in ei.value.detail


def test_api_errors_compare_by_value():
    assert KrakenAPIError(ErrorCategory.QUERY, "a") == KrakenAPIError(ErrorCategory.QUERY, "a")
    assert KrakenAPIError(ErrorCategory.QUERY, "a") != KrakenAPIError(ErrorCategory.ORDER, "a")
