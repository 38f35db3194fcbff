from __future__ import annotations
from typing import Optional
import logging

from krakenfeed.exchanges.base import IExchangeClient
from krakenfeed.metrics import MetricsRegistry
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

log = logging.getLogger("instrumented")


class InstrumentedClient(IExchangeClient):
    """Wraps a client and records every call into a MetricsRegistry.

    Only raised exceptions count as errors; in-band API errors on a
    returned result do not.
    """

    def __init__(self, inner: IExchangeClient, registry: MetricsRegistry):
        self.inner = inner
        self.registry = registry
        self.name = inner.name

    def time(self) -> Time:
        with self.registry.track("Time"):
            return self.inner.time()

    def status(self) -> SystemStatus:
        with self.registry.track("Status"):
            return self.inner.status()

    def assets(self) -> Assets:
        with self.registry.track("Assets"):
            return self.inner.assets()

    def asset_pairs(self, *pairs: str, info: AssetPairInfo = AssetPairInfo.INFO) -> AssetPairs:
        with self.registry.track("AssetPairs"):
            return self.inner.asset_pairs(*pairs, info=info)

    def ticker(self, *pairs: str) -> Tickers:
        with self.registry.track("Ticker"):
            return self.inner.ticker(*pairs)

    def ohlc(
        self,
        *pairs: str,
        interval: OHLCInterval = OHLCInterval.MINUTE,
        since: Optional[int] = None,
    ) -> OHLCs:
        with self.registry.track("OHLC"):
            return self.inner.ohlc(*pairs, interval=interval, since=since)

    def order_book(self, *pairs: str, count: int = 100) -> OrderBook:
        with self.registry.track("OrderBook"):
            return self.inner.order_book(*pairs, count=count)

    def recent_trades(self, *pairs: str, since: Optional[int] = None) -> RecentTrades:
        with self.registry.track("RecentTrades"):
            return self.inner.recent_trades(*pairs, since=since)

    def recent_spreads(self, *pairs: str, since: Optional[int] = None) -> RecentSpreads:
        with self.registry.track("RecentSpreads"):
            return self.inner.recent_spreads(*pairs, since=since)

    def log_summary(self) -> None:
        for op, st in sorted(self.registry.snapshot().items()):
            log.info(
                "%s calls=%d errors=%d mean=%.3fs max=%.3fs",
                op,
                st.calls,
                st.errors,
                st.mean_s,
                st.max_s,
            )
