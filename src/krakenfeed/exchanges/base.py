from typing import Optional, Protocol

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


class IExchangeClient(Protocol):
    name: str
    def time(self) -> Time: ...
    def status(self) -> SystemStatus: ...
    def assets(self) -> Assets: ...
    def asset_pairs(self, *pairs: str, info: AssetPairInfo = AssetPairInfo.INFO) -> AssetPairs: ...
    def ticker(self, *pairs: str) -> Tickers: ...
    def ohlc(
        self, *pairs: str, interval: OHLCInterval = OHLCInterval.MINUTE, since: Optional[int] = None
    ) -> OHLCs: ...
    def order_book(self, *pairs: str, count: int = 100) -> OrderBook: ...
    def recent_trades(self, *pairs: str, since: Optional[int] = None) -> RecentTrades: ...
    def recent_spreads(self, *pairs: str, since: Optional[int] = None) -> RecentSpreads: ...
