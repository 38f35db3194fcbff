from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from krakenfeed.errors import KrakenAPIError
from krakenfeed.models.order import OrderAction, OrderType

# None = no errors reported (never an empty tuple)
APIErrors = Optional[Tuple[KrakenAPIError, ...]]

ZERO = Decimal(0)


def _freeze(obj: Any, *names: str) -> None:
    # frozen covers attribute assignment only; the maps are copied into read-only views
    for name in names:
        object.__setattr__(obj, name, MappingProxyType(dict(getattr(obj, name))))


@dataclass(frozen=True)
class Time:
    """/public/Time"""

    timestamp: Optional[datetime] = None
    errors: APIErrors = None


@dataclass(frozen=True)
class SystemStatus:
    """/public/SystemStatus"""

    status: str = ""
    timestamp: Optional[datetime] = None
    errors: APIErrors = None


@dataclass(frozen=True)
class Asset:
    name: str
    asset_class: str
    alt_name: str
    precision: int
    display_precision: int


@dataclass(frozen=True)
class Assets:
    """/public/Assets, keyed by asset name"""

    assets: Mapping[str, Asset] = field(default_factory=dict)
    errors: APIErrors = None

    def __post_init__(self) -> None:
        _freeze(self, "assets")


@dataclass(frozen=True)
class Fee:
    """One step of a fee ladder: `percentage` applies from `volume` (30-day, in fee currency) upwards."""

    volume: int
    percentage: Decimal


@dataclass(frozen=True)
class AssetPair:
    alt_name: str = ""
    websocket_name: str = ""
    asset_class_base: str = ""
    base: str = ""
    asset_class_quote: str = ""
    quote: str = ""
    lot: str = ""
    pair_precision: int = 0
    lot_precision: int = 0
    lot_multiplier: int = 0
    leverage_buy: Tuple[int, ...] = ()
    leverage_sell: Tuple[int, ...] = ()
    fees_taker: Tuple[Fee, ...] = ()
    fees_maker: Tuple[Fee, ...] = ()
    fee_volume_currency: str = ""
    margin_call: int = 0
    margin_stop: int = 0
    order_min: Optional[Decimal] = None


@dataclass(frozen=True)
class AssetPairs:
    """/public/AssetPairs, keyed by pair name"""

    pairs: Mapping[str, AssetPair] = field(default_factory=dict)
    errors: APIErrors = None

    def __post_init__(self) -> None:
        _freeze(self, "pairs")


@dataclass(frozen=True)
class AskBid:
    price: Decimal
    volume: Decimal
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class Close:
    price: Decimal
    volume: Decimal


@dataclass(frozen=True)
class Ticker:
    pair: str
    ask: AskBid
    bid: AskBid
    last_close: Close
    volume_today: Decimal = ZERO
    volume_last_24_hours: Decimal = ZERO
    volume_weighted_average_price_today: Decimal = ZERO
    volume_weighted_average_price_last_24_hours: Decimal = ZERO
    number_of_trades_today: int = 0
    number_of_trades_last_24_hours: int = 0
    low_today: Decimal = ZERO
    low_last_24_hours: Decimal = ZERO
    high_today: Decimal = ZERO
    high_last_24_hours: Decimal = ZERO
    open: Decimal = ZERO


@dataclass(frozen=True)
class Tickers:
    """/public/Ticker, keyed by pair"""

    tickers: Mapping[str, Ticker] = field(default_factory=dict)
    errors: APIErrors = None

    def __post_init__(self) -> None:
        _freeze(self, "tickers")


@dataclass(frozen=True)
class OHLC:
    time: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume_weighted_average_price: Decimal
    volume: Decimal
    count: int


@dataclass(frozen=True)
class OHLCs:
    """/public/OHLC

    `candles` keeps the exchange's chronological order per pair. Pass
    `last_id` back as `since` to receive only newer candles.
    """

    candles: Mapping[str, Tuple[OHLC, ...]] = field(default_factory=dict)
    last_id: int = 0
    errors: APIErrors = None

    def __post_init__(self) -> None:
        _freeze(self, "candles")


@dataclass(frozen=True)
class OrderBook:
    """/public/Depth"""

    asks: Mapping[str, Tuple[AskBid, ...]] = field(default_factory=dict)
    bids: Mapping[str, Tuple[AskBid, ...]] = field(default_factory=dict)
    errors: APIErrors = None

    def __post_init__(self) -> None:
        _freeze(self, "asks", "bids")


@dataclass(frozen=True)
class RecentTrade:
    price: Decimal
    volume: Decimal
    time: datetime
    action: OrderAction = OrderAction.UNKNOWN
    type: OrderType = OrderType.UNKNOWN
    miscellaneous: str = ""


@dataclass(frozen=True)
class RecentTrades:
    """/public/Trades"""

    trades: Mapping[str, Tuple[RecentTrade, ...]] = field(default_factory=dict)
    last_id: int = 0
    errors: APIErrors = None

    def __post_init__(self) -> None:
        _freeze(self, "trades")


@dataclass(frozen=True)
class Spread:
    timestamp: datetime
    bid: Decimal
    ask: Decimal


@dataclass(frozen=True)
class RecentSpreads:
    """/public/Spread"""

    spreads: Mapping[str, Tuple[Spread, ...]] = field(default_factory=dict)
    last_id: int = 0
    errors: APIErrors = None

    def __post_init__(self) -> None:
        _freeze(self, "spreads")
