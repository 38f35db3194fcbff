# src/krakenfeed/exchanges/parser.py
from __future__ import annotations
import json
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Tuple, Type, TypeVar, Union

from krakenfeed.errors import ErrorCategory, KrakenAPIError, ParseError, ParseErrorKind
from krakenfeed.models.market import (
    APIErrors,
    AskBid,
    Asset,
    AssetPair,
    AssetPairs,
    Assets,
    Close,
    Fee,
    OHLC,
    OHLCs,
    OrderBook,
    RecentSpreads,
    RecentTrade,
    RecentTrades,
    Spread,
    SystemStatus,
    Ticker,
    Tickers,
    Time,
)
from krakenfeed.models.order import OrderAction, OrderType

T = TypeVar("T")
Payload = Union[bytes, bytearray, str, None]

# reserved result key holding the polling cursor
LAST = "last"

_CATEGORIES = {c.value: c for c in ErrorCategory if c is not ErrorCategory.UNKNOWN}
_DECIMAL_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_DIGITS_RE = re.compile(r"\d+")
_RFC3339_RE = re.compile(
    r"(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})"
)


def classify_errors(messages: Iterable[str]) -> APIErrors:
    """Turn the envelope's `error` strings into KrakenAPIError values.

    "EQuery:Unknown asset pair" -> (QUERY, "Unknown asset pair"). Order is
    kept. An unknown prefix, or no colon at all, gives UNKNOWN carrying the
    whole string. No messages -> None.
    """
    out: List[KrakenAPIError] = []
    for raw in messages:
        prefix, sep, rest = raw.partition(":")
        category = _CATEGORIES.get(prefix) if sep else None
        if category is None:
            out.append(KrakenAPIError(ErrorCategory.UNKNOWN, raw))
        else:
            out.append(KrakenAPIError(category, rest))
    return tuple(out) or None


# --- wire value extraction ---
# Every helper takes the JSON path of the value so a MALFORMED error says
# exactly which slot was wrong.


def _malformed(detail: str) -> ParseError:
    return ParseError(ParseErrorKind.MALFORMED, detail)


def _object(value: Any, where: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise _malformed(f"{where}: expected object, got {type(value).__name__}")
    return value


def _list(value: Any, where: str) -> List[Any]:
    if not isinstance(value, list):
        raise _malformed(f"{where}: expected array, got {type(value).__name__}")
    return value


def _array(value: Any, size: int, where: str) -> List[Any]:
    """Positional array with at least `size` slots."""
    arr = _list(value, where)
    if len(arr) < size:
        raise _malformed(f"{where}: expected {size} elements, got {len(arr)}")
    return arr


def _string(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise _malformed(f"{where}: expected string, got {type(value).__name__}")
    return value


def _integer(value: Any, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise _malformed(f"{where}: expected integer, got {type(value).__name__}")
    return value


def _number(value: Any, where: str) -> Union[int, float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _malformed(f"{where}: expected number, got {type(value).__name__}")
    return value


def _truncated(value: Any, where: str) -> int:
    """Integer part of a JSON number (1643757240.0 -> 1643757240)."""
    num = _number(value, where)
    try:
        return int(num)
    except (OverflowError, ValueError) as e:
        raise _malformed(f"{where}: {e}") from e


def _unsigned(value: Any, where: str) -> int:
    n = _truncated(value, where)
    if n < 0:
        raise _malformed(f"{where}: expected unsigned value, got {n}")
    return n


def _count(value: Any, where: str) -> int:
    n = _integer(value, where)
    if n < 0:
        raise _malformed(f"{where}: expected unsigned value, got {n}")
    return n


def _cursor(value: Any, where: str) -> int:
    # numbers are truncated, digit strings are read exactly (may exceed 2**53)
    if isinstance(value, str):
        if not _DIGITS_RE.fullmatch(value):
            raise _malformed(f"{where}: invalid cursor {value!r}")
        return int(value)
    return _unsigned(value, where)


def _decimal(value: Any, where: str) -> Decimal:
    """Exact decimal from a JSON string ("38658.9" -> 386589E-1)."""
    text = _string(value, where)
    if not _DECIMAL_RE.fullmatch(text):
        raise _malformed(f"{where}: can't convert {text!r} to decimal")
    return Decimal(text)


def _float_decimal(value: Any, where: str) -> Decimal:
    """Decimal from a JSON number, through its shortest float representation."""
    num = _number(value, where)
    if isinstance(num, int):
        return Decimal(num)
    d = Decimal(repr(num))
    if not d.is_finite():
        raise _malformed(f"{where}: non-finite number {num!r}")
    return d


def _any_decimal(value: Any, where: str) -> Decimal:
    if isinstance(value, str):
        return _decimal(value, where)
    return _float_decimal(value, where)


def _epoch_utc(seconds: int, where: str) -> datetime:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise _malformed(f"{where}: invalid epoch {seconds}: {e}") from e


def _epoch_precise(value: Any, where: str) -> datetime:
    """Fractional epoch seconds, kept to the microsecond."""
    d = _float_decimal(value, where)
    seconds = int(d)
    micros = int((d - seconds) * 1_000_000)
    return _epoch_utc(seconds, where) + timedelta(microseconds=micros)


def _rfc3339(value: Any, where: str) -> datetime:
    text = _string(value, where)
    m = _RFC3339_RE.fullmatch(text)
    if m is None:
        raise _malformed(f"{where}: not an RFC 3339 timestamp: {text!r}")
    date, clock, fraction, offset = m.groups()
    # fromisoformat before 3.11 only takes 3 or 6 fraction digits and an upper-case T
    iso = f"{date}T{clock}"
    if fraction:
        iso += "." + fraction[:6].ljust(6, "0")
    iso += "+00:00" if offset in ("Z", "z") else offset
    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError as e:
        raise _malformed(f"{where}: {e}") from e
    return parsed.astimezone(timezone.utc)


def _optional(
    record: Dict[str, Any],
    key: str,
    convert: Callable[[Any, str], Any],
    default: Any,
    where: str,
) -> Any:
    value = record.get(key)
    if value is None:
        return default
    return convert(value, f"{where}.{key}")


def _result_map(result: Any) -> Dict[str, Any]:
    # a missing/null result decodes to an empty map so in-band errors still surface
    return {} if result is None else _object(result, "result")


def _envelope(payload: Payload) -> Tuple[Any, APIErrors]:
    """Decode `{"error": [...], "result": ...}` -> (result, classified errors)."""
    if payload is None:
        raise _malformed("empty payload")
    try:
        msg = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise _malformed(str(e)) from e

    msg = _object(msg, "envelope")
    raw_errors = msg.get("error")
    if raw_errors is None:
        raw_errors = []
    raw_errors = _list(raw_errors, "error")
    for i, raw in enumerate(raw_errors):
        _string(raw, f"error[{i}]")
    return msg.get("result"), classify_errors(raw_errors)


class Parser:
    """Turns raw API responses into the typed results of krakenfeed.models.market.

    The caller names the result type it expects, which selects the decoder:

        ohlcs = Parser().parse(payload, OHLCs)

    A result instance (e.g. `OHLCs()`) is accepted in place of its class.
    Stateless; one instance can be shared between threads.
    """

    def __init__(self) -> None:
        self._decoders: Dict[type, Callable[[Any, APIErrors], Any]] = {
            Time: self._time,
            SystemStatus: self._system_status,
            Assets: self._assets,
            AssetPairs: self._asset_pairs,
            Tickers: self._tickers,
            OHLCs: self._ohlcs,
            OrderBook: self._order_book,
            RecentTrades: self._recent_trades,
            RecentSpreads: self._recent_spreads,
        }

    @property
    def supported(self) -> Tuple[type, ...]:
        return tuple(self._decoders)

    def parse(self, payload: Payload, target: Union[Type[T], T, None]) -> T:
        if target is None:
            raise ParseError(ParseErrorKind.INVALID_TARGET, "cannot parse into None")

        cls = target if isinstance(target, type) else type(target)
        decoder = self._decoders.get(cls)
        if decoder is None:
            raise ParseError(ParseErrorKind.UNSUPPORTED_TYPE, cls.__name__)

        result, errors = _envelope(payload)
        return decoder(result, errors)

    # --- /public/Time ---
    def _time(self, result: Any, errors: APIErrors) -> Time:
        if result is None:
            return Time(errors=errors)
        unixtime = _integer(_object(result, "result").get("unixtime"), "result.unixtime")
        try:
            # naive local time, like time.time()-based callers expect
            ts = datetime.fromtimestamp(unixtime)
        except (OverflowError, OSError, ValueError) as e:
            raise _malformed(f"result.unixtime: {e}") from e
        return Time(timestamp=ts, errors=errors)

    # --- /public/SystemStatus ---
    def _system_status(self, result: Any, errors: APIErrors) -> SystemStatus:
        if result is None:
            return SystemStatus(errors=errors)
        result = _object(result, "result")
        return SystemStatus(
            status=_string(result.get("status"), "result.status"),
            timestamp=_rfc3339(result.get("timestamp"), "result.timestamp"),
            errors=errors,
        )

    # --- /public/Assets ---
    def _assets(self, result: Any, errors: APIErrors) -> Assets:
        assets: Dict[str, Asset] = {}
        for name, record in _result_map(result).items():
            where = f"result.{name}"
            record = _object(record, where)
            # the wire keys records by name without repeating it inside
            assets[name] = Asset(
                name=name,
                asset_class=_string(record.get("aclass"), f"{where}.aclass"),
                alt_name=_string(record.get("altname"), f"{where}.altname"),
                precision=_integer(record.get("decimals"), f"{where}.decimals"),
                display_precision=_integer(
                    record.get("display_decimals"), f"{where}.display_decimals"
                ),
            )
        return Assets(assets=assets, errors=errors)

    # --- /public/AssetPairs ---
    def _asset_pairs(self, result: Any, errors: APIErrors) -> AssetPairs:
        pairs: Dict[str, AssetPair] = {}
        for name, record in _result_map(result).items():
            pairs[name] = self._asset_pair(_object(record, f"result.{name}"), f"result.{name}")
        return AssetPairs(pairs=pairs, errors=errors)

    def _asset_pair(self, record: Dict[str, Any], where: str) -> AssetPair:
        # info=leverage/fees/margin return a subset of the fields
        def opt(key: str, convert: Callable[[Any, str], Any], default: Any) -> Any:
            return _optional(record, key, convert, default, where)

        return AssetPair(
            alt_name=opt("altname", _string, ""),
            websocket_name=opt("wsname", _string, ""),
            asset_class_base=opt("aclass_base", _string, ""),
            base=opt("base", _string, ""),
            asset_class_quote=opt("aclass_quote", _string, ""),
            quote=opt("quote", _string, ""),
            lot=opt("lot", _string, ""),
            pair_precision=opt("pair_decimals", _integer, 0),
            lot_precision=opt("lot_decimals", _integer, 0),
            lot_multiplier=opt("lot_multiplier", _integer, 0),
            leverage_buy=opt("leverage_buy", self._leverage, ()),
            leverage_sell=opt("leverage_sell", self._leverage, ()),
            fees_taker=opt("fees", self._fees, ()),
            fees_maker=opt("fees_maker", self._fees, ()),
            fee_volume_currency=opt("fee_volume_currency", _string, ""),
            margin_call=opt("margin_call", _integer, 0),
            margin_stop=opt("margin_stop", _integer, 0),
            order_min=opt("ordermin", _any_decimal, None),
        )

    def _leverage(self, value: Any, where: str) -> Tuple[int, ...]:
        return tuple(_integer(v, f"{where}[{i}]") for i, v in enumerate(_list(value, where)))

    def _fees(self, value: Any, where: str) -> Tuple[Fee, ...]:
        # [[volume, percentage], ...] ascending by volume; order is kept
        fees = []
        for i, step in enumerate(_list(value, where)):
            step = _array(step, 2, f"{where}[{i}]")
            fees.append(
                Fee(
                    volume=_truncated(step[0], f"{where}[{i}][0]"),
                    percentage=_any_decimal(step[1], f"{where}[{i}][1]"),
                )
            )
        return tuple(fees)

    # --- /public/Ticker ---
    def _tickers(self, result: Any, errors: APIErrors) -> Tickers:
        tickers: Dict[str, Ticker] = {}
        for pair, record in _result_map(result).items():
            tickers[pair] = self._ticker(pair, _object(record, f"result.{pair}"))
        return Tickers(tickers=tickers, errors=errors)

    def _ticker(self, pair: str, record: Dict[str, Any]) -> Ticker:
        where = f"result.{pair}"

        def slot(key: str, size: int) -> List[Any]:
            return _array(record.get(key), size, f"{where}.{key}")

        def today_24h(key: str) -> Tuple[Decimal, Decimal]:
            arr = slot(key, 2)
            return _decimal(arr[0], f"{where}.{key}[0]"), _decimal(arr[1], f"{where}.{key}[1]")

        ask = slot("a", 3)
        bid = slot("b", 3)
        close = slot("c", 2)
        trades = slot("t", 2)
        volume = today_24h("v")
        vwap = today_24h("p")
        low = today_24h("l")
        high = today_24h("h")

        # a/b are [price, whole lot volume, lot volume]; volume is read from
        # index 2 and no timestamp is present on this endpoint.
        return Ticker(
            pair=pair,
            ask=AskBid(
                price=_decimal(ask[0], f"{where}.a[0]"),
                volume=_decimal(ask[2], f"{where}.a[2]"),
            ),
            bid=AskBid(
                price=_decimal(bid[0], f"{where}.b[0]"),
                volume=_decimal(bid[2], f"{where}.b[2]"),
            ),
            last_close=Close(
                price=_decimal(close[0], f"{where}.c[0]"),
                volume=_decimal(close[1], f"{where}.c[1]"),
            ),
            volume_today=volume[0],
            volume_last_24_hours=volume[1],
            volume_weighted_average_price_today=vwap[0],
            volume_weighted_average_price_last_24_hours=vwap[1],
            number_of_trades_today=_count(trades[0], f"{where}.t[0]"),
            number_of_trades_last_24_hours=_count(trades[1], f"{where}.t[1]"),
            low_today=low[0],
            low_last_24_hours=low[1],
            high_today=high[0],
            high_last_24_hours=high[1],
            open=_decimal(record.get("o"), f"{where}.o"),
        )

    # --- /public/OHLC ---
    def _ohlcs(self, result: Any, errors: APIErrors) -> OHLCs:
        candles: Dict[str, Tuple[OHLC, ...]] = {}
        last_id = 0
        for key, value in _result_map(result).items():
            if key == LAST:
                last_id = _cursor(value, "result.last")
                continue
            rows = _list(value, f"result.{key}")
            candles[key] = tuple(self._ohlc(row, f"result.{key}[{i}]") for i, row in enumerate(rows))
        return OHLCs(candles=candles, last_id=last_id, errors=errors)

    def _ohlc(self, row: Any, where: str) -> OHLC:
        # [time, open, high, low, close, vwap, volume, count]
        row = _array(row, 8, where)
        return OHLC(
            time=_epoch_utc(_truncated(row[0], f"{where}[0]"), f"{where}[0]"),
            open=_decimal(row[1], f"{where}[1]"),
            high=_decimal(row[2], f"{where}[2]"),
            low=_decimal(row[3], f"{where}[3]"),
            close=_decimal(row[4], f"{where}[4]"),
            volume_weighted_average_price=_decimal(row[5], f"{where}[5]"),
            volume=_decimal(row[6], f"{where}[6]"),
            count=_unsigned(row[7], f"{where}[7]"),
        )

    # --- /public/Depth ---
    def _order_book(self, result: Any, errors: APIErrors) -> OrderBook:
        asks: Dict[str, Tuple[AskBid, ...]] = {}
        bids: Dict[str, Tuple[AskBid, ...]] = {}
        for pair, book in _result_map(result).items():
            where = f"result.{pair}"
            book = _object(book, where)
            asks[pair] = self._levels(book.get("asks"), f"{where}.asks")
            bids[pair] = self._levels(book.get("bids"), f"{where}.bids")
        return OrderBook(asks=asks, bids=bids, errors=errors)

    def _levels(self, value: Any, where: str) -> Tuple[AskBid, ...]:
        levels = []
        for i, row in enumerate(_list(value if value is not None else [], where)):
            at = f"{where}[{i}]"
            row = _array(row, 3, at)
            levels.append(
                AskBid(
                    price=_any_decimal(row[0], f"{at}[0]"),
                    volume=_any_decimal(row[1], f"{at}[1]"),
                    timestamp=_epoch_utc(_truncated(row[2], f"{at}[2]"), f"{at}[2]"),
                )
            )
        return tuple(levels)

    # --- /public/Trades ---
    def _recent_trades(self, result: Any, errors: APIErrors) -> RecentTrades:
        trades: Dict[str, Tuple[RecentTrade, ...]] = {}
        last_id = 0
        for key, value in _result_map(result).items():
            if key == LAST:
                last_id = _cursor(value, "result.last")
                continue
            rows = _list(value, f"result.{key}")
            trades[key] = tuple(
                self._recent_trade(row, f"result.{key}[{i}]") for i, row in enumerate(rows)
            )
        return RecentTrades(trades=trades, last_id=last_id, errors=errors)

    def _recent_trade(self, row: Any, where: str) -> RecentTrade:
        # [price, volume, time, "b"|"s", "l"|"m", misc, (trade id)]
        row = _array(row, 6, where)
        return RecentTrade(
            price=_decimal(row[0], f"{where}[0]"),
            volume=_decimal(row[1], f"{where}[1]"),
            time=_epoch_precise(row[2], f"{where}[2]"),
            action=OrderAction.from_wire(_string(row[3], f"{where}[3]")),
            type=OrderType.from_wire(_string(row[4], f"{where}[4]")),
            miscellaneous=_string(row[5], f"{where}[5]"),
        )

    # --- /public/Spread ---
    def _recent_spreads(self, result: Any, errors: APIErrors) -> RecentSpreads:
        spreads: Dict[str, Tuple[Spread, ...]] = {}
        last_id = 0
        for key, value in _result_map(result).items():
            if key == LAST:
                last_id = _cursor(value, "result.last")
                continue
            rows = _list(value, f"result.{key}")
            spreads[key] = tuple(self._spread(row, f"result.{key}[{i}]") for i, row in enumerate(rows))
        return RecentSpreads(spreads=spreads, last_id=last_id, errors=errors)

    def _spread(self, row: Any, where: str) -> Spread:
        row = _array(row, 3, where)
        return Spread(
            timestamp=_epoch_utc(_truncated(row[0], f"{where}[0]"), f"{where}[0]"),
            bid=_decimal(row[1], f"{where}[1]"),
            ask=_decimal(row[2], f"{where}[2]"),
        )


_default = Parser()


def parse(payload: Payload, target: Union[Type[T], T, None]) -> T:
    """Parse with a shared module-level Parser."""
    return _default.parse(payload, target)
