from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar
import json
import random
import time

from krakenfeed.exchanges.base import IExchangeClient
from krakenfeed.exchanges.parser import Parser
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
from krakenfeed.models.order import AssetPairInfo, OHLCInterval

R = TypeVar("R")

ASSETS = {
    "XXBT": {"aclass": "currency", "altname": "XBT", "decimals": 10, "display_decimals": 5},
    "XETH": {"aclass": "currency", "altname": "ETH", "decimals": 10, "display_decimals": 5},
    "ZUSD": {"aclass": "currency", "altname": "USD", "decimals": 4, "display_decimals": 2},
}

PAIRS = {
    "XXBTZUSD": {
        "altname": "XBTUSD",
        "wsname": "XBT/USD",
        "aclass_base": "currency",
        "base": "XXBT",
        "aclass_quote": "currency",
        "quote": "ZUSD",
        "lot": "unit",
        "pair_decimals": 1,
        "lot_decimals": 8,
        "lot_multiplier": 1,
        "leverage_buy": [2, 3, 4, 5],
        "leverage_sell": [2, 3, 4, 5],
        "fees": [[0, 0.26], [50000, 0.24], [100000, 0.22], [250000, 0.2]],
        "fees_maker": [[0, 0.16], [50000, 0.14], [100000, 0.12], [250000, 0.1]],
        "fee_volume_currency": "ZUSD",
        "margin_call": 80,
        "margin_stop": 40,
        "ordermin": 0.0001,
    },
    "XETHZUSD": {
        "altname": "ETHUSD",
        "wsname": "ETH/USD",
        "aclass_base": "currency",
        "base": "XETH",
        "aclass_quote": "currency",
        "quote": "ZUSD",
        "lot": "unit",
        "pair_decimals": 2,
        "lot_decimals": 8,
        "lot_multiplier": 1,
        "leverage_buy": [2, 3, 4, 5],
        "leverage_sell": [2, 3, 4, 5],
        "fees": [[0, 0.26], [50000, 0.24]],
        "fees_maker": [[0, 0.16], [50000, 0.14]],
        "fee_volume_currency": "ZUSD",
        "margin_call": 80,
        "margin_stop": 40,
        "ordermin": 0.01,
    },
}

# keys each `info` query returns besides the naming fields
_INFO_KEYS = {
    AssetPairInfo.LEVERAGE: ("leverage_buy", "leverage_sell"),
    AssetPairInfo.FEES: ("fees", "fees_maker", "fee_volume_currency"),
    AssetPairInfo.MARGIN: ("margin_call", "margin_stop"),
}


class FakeExchange(IExchangeClient):
    """Offline stand-in for KrakenClient.

    Builds wire-format payloads (random-walk prices) and runs them through
    the real Parser, so results look exactly like live ones. Unknown pairs
    come back as an in-band "EQuery:Unknown asset pair" error.
    """

    name = "fake"

    def __init__(self, seed: int = 42, base_price: float = 30000.0, parser: Optional[Parser] = None):
        self._rng = random.Random(seed)
        self._p = base_price
        self._parser = parser or Parser()

    def _step(self) -> float:
        self._p *= 1.0 + self._rng.uniform(-0.001, 0.001)
        return self._p

    def _respond(self, target: Type[R], result: Any, errors: Optional[List[str]] = None) -> R:
        payload = json.dumps({"error": errors or [], "result": result})
        return self._parser.parse(payload, target)

    def _known(self, pairs: tuple[str, ...]) -> tuple[list[str], list[str]]:
        if not pairs:
            raise ValueError("pairs are required")
        known = [p for p in pairs if p in PAIRS]
        errors = ["EQuery:Unknown asset pair"] if len(known) != len(pairs) else []
        return known, errors

    def time(self) -> Time:
        now = int(time.time())
        rfc1123 = datetime.fromtimestamp(now, tz=timezone.utc).strftime("%a, %d %b %y %H:%M:%S +0000")
        return self._respond(Time, {"unixtime": now, "rfc1123": rfc1123})

    def status(self) -> SystemStatus:
        ts = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        return self._respond(SystemStatus, {"status": "online", "timestamp": ts})

    def assets(self) -> Assets:
        return self._respond(Assets, ASSETS)

    def asset_pairs(self, *pairs: str, info: AssetPairInfo = AssetPairInfo.INFO) -> AssetPairs:
        known, errors = self._known(pairs) if pairs else (list(PAIRS), [])
        info = AssetPairInfo(info)
        result: Dict[str, Any] = {}
        for p in known:
            record = PAIRS[p]
            if info is not AssetPairInfo.INFO:
                keep = ("altname", "wsname", "base", "quote") + _INFO_KEYS[info]
                record = {k: v for k, v in record.items() if k in keep}
            result[p] = record
        return self._respond(AssetPairs, result, errors)

    def ticker(self, *pairs: str) -> Tickers:
        known, errors = self._known(pairs) if pairs else (list(PAIRS), [])
        result = {}
        for p in known:
            last = self._step()
            result[p] = {
                "a": [f"{last + 0.1:.1f}", "1", "1.000"],
                "b": [f"{last - 0.1:.1f}", "2", "2.000"],
                "c": [f"{last:.1f}", f"{self._rng.uniform(0, 1):.8f}"],
                "v": [f"{self._rng.uniform(1000, 3000):.8f}", f"{self._rng.uniform(3000, 5000):.8f}"],
                "p": [f"{last * 0.999:.5f}", f"{last * 0.998:.5f}"],
                "t": [self._rng.randint(10000, 20000), self._rng.randint(20000, 30000)],
                "l": [f"{last * 0.98:.5f}", f"{last * 0.97:.5f}"],
                "h": [f"{last * 1.02:.5f}", f"{last * 1.03:.5f}"],
                "o": f"{last * 0.995:.5f}",
            }
        return self._respond(Tickers, result, errors)

    def ohlc(
        self,
        *pairs: str,
        interval: OHLCInterval = OHLCInterval.MINUTE,
        since: Optional[int] = None,
        limit: int = 60,
    ) -> OHLCs:
        known, errors = self._known(pairs)
        step = int(interval) * 60
        end = int(time.time()) // step * step
        start = end - (limit - 1) * step
        result: Dict[str, Any] = {}
        for p in known:
            rows = []
            for ts in range(start, end + 1, step):
                o = self._p
                c = self._step()
                h = max(o, c) * (1 + self._rng.uniform(0, 0.001))
                lo = min(o, c) * (1 - self._rng.uniform(0, 0.001))
                if since is not None and ts <= since:
                    continue
                rows.append(
                    [
                        ts,
                        f"{o:.1f}",
                        f"{h:.1f}",
                        f"{lo:.1f}",
                        f"{c:.1f}",
                        f"{(o + c) / 2:.1f}",
                        f"{self._rng.uniform(0.01, 5):.8f}",
                        self._rng.randint(1, 50),
                    ]
                )
            result[p] = rows
        # the cursor is the newest candle's start; the exchange sends it as a number
        result["last"] = end
        return self._respond(OHLCs, result, errors)

    def order_book(self, *pairs: str, count: int = 100) -> OrderBook:
        known, errors = self._known(pairs)
        now = int(time.time())
        result = {}
        for p in known:
            mid = self._step()
            result[p] = {
                "asks": [
                    [round(mid + 0.1 * (i + 1), 1), round(self._rng.uniform(0.001, 3), 3), now - i]
                    for i in range(count)
                ],
                "bids": [
                    [round(mid - 0.1 * (i + 1), 1), round(self._rng.uniform(0.001, 3), 3), now - i]
                    for i in range(count)
                ],
            }
        return self._respond(OrderBook, result, errors)

    def recent_trades(self, *pairs: str, since: Optional[int] = None) -> RecentTrades:
        known, errors = self._known(pairs)
        now_ns = time.time_ns()
        result: Dict[str, Any] = {}
        for p in known:
            rows = []
            for i in range(20, 0, -1):
                ts_ns = now_ns - i * 250_000_000
                if since is not None and ts_ns <= since:
                    continue
                rows.append(
                    [
                        f"{self._step():.5f}",
                        f"{self._rng.uniform(0.0001, 1):.8f}",
                        round(ts_ns / 1e9, 4),
                        self._rng.choice("bs"),
                        self._rng.choice("lm"),
                        "",
                    ]
                )
            result[p] = rows
        # trade cursors are nanosecond ids, sent as strings
        result["last"] = str(now_ns)
        return self._respond(RecentTrades, result, errors)

    def recent_spreads(self, *pairs: str, since: Optional[int] = None) -> RecentSpreads:
        known, errors = self._known(pairs)
        now = int(time.time())
        result: Dict[str, Any] = {}
        for p in known:
            rows = []
            for ts in range(now - 9, now + 1):
                mid = self._step()
                if since is not None and ts <= since:
                    continue
                rows.append([ts, f"{mid - 0.1:.5f}", f"{mid + 0.1:.5f}"])
            result[p] = rows
        result["last"] = now
        return self._respond(RecentSpreads, result, errors)
