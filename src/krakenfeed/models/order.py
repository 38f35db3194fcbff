from enum import Enum, IntEnum


class OrderAction(str, Enum):
    """Side of a public trade."""

    BUY = "buy"
    SELL = "sell"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_wire(cls, code: str) -> "OrderAction":
        # "b" / "s"; anything else is kept as UNKNOWN
        return {"b": cls.BUY, "s": cls.SELL}.get(code, cls.UNKNOWN)


class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_wire(cls, code: str) -> "OrderType":
        return {"m": cls.MARKET, "l": cls.LIMIT}.get(code, cls.UNKNOWN)


class AssetPairInfo(str, Enum):
    """`info` query values of /public/AssetPairs"""

    INFO = "info"
    LEVERAGE = "leverage"
    FEES = "fees"
    MARGIN = "margin"


class OHLCInterval(IntEnum):
    """Candle width in minutes."""

    MINUTE = 1
    MINUTES_5 = 5
    MINUTES_15 = 15
    MINUTES_30 = 30
    HOUR = 60
    HOURS_4 = 240
    DAILY = 1440
    WEEKLY = 10080
    DAYS_15 = 21600

    @classmethod
    def from_label(cls, label: str) -> "OHLCInterval":
        unit_map = {
            "1m": cls.MINUTE,
            "5m": cls.MINUTES_5,
            "15m": cls.MINUTES_15,
            "30m": cls.MINUTES_30,
            "1h": cls.HOUR,
            "4h": cls.HOURS_4,
            "1d": cls.DAILY,
            "1w": cls.WEEKLY,
            "15d": cls.DAYS_15,
        }
        if label not in unit_map:
            raise ValueError(f"Unsupported interval: {label} (expected one of {list(unit_map)})")
        return unit_map[label]
