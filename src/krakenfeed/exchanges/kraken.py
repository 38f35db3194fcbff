# src/krakenfeed/exchanges/kraken.py
from __future__ import annotations
from typing import Any, Dict, Optional, Type, TypeVar
from dataclasses import dataclass
import base64
import binascii
import hashlib
import hmac
import logging
import time
from urllib.parse import urlencode
import requests

from krakenfeed.errors import DryRunError, NetworkError
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
from krakenfeed.settings import Settings

log = logging.getLogger("kraken")

BASE = "https://api.kraken.com/0"

R = TypeVar("R")


@dataclass
class KrakenCreds:
    api_key: str
    api_secret: str  # base64, as issued by the exchange


class KrakenClient(IExchangeClient):
    """Kraken public market data over REST.

    Every call returns the parsed result; errors the API reports in-band
    stay on `result.errors` and are logged, they are not raised.
    """

    name = "kraken"

    def __init__(
        self,
        base_url: str = BASE,
        creds: KrakenCreds | None = None,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
        dry_run: bool = False,
        parser: Optional[Parser] = None,
    ):
        if creds is not None:
            try:
                base64.b64decode(creds.api_secret, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValueError(f"invalid secret: {e}") from e

        self.base = base_url.rstrip("/")
        self.creds = creds
        self.timeout = timeout
        self.dry_run = dry_run
        self.s = session or requests.Session()
        self.parser = parser or Parser()

    @classmethod
    def from_settings(cls, s: Settings) -> "KrakenClient":
        creds = None
        if s.api.key and s.api.secret:
            creds = KrakenCreds(api_key=s.api.key, api_secret=s.api.secret)
        return cls(
            base_url=s.exchange.base_url,
            creds=creds,
            timeout=s.exchange.timeout_s,
            dry_run=s.exchange.dry_run,
        )

    # --- Helper: pair list ---
    @staticmethod
    def _pairs(pairs: tuple[str, ...], required: bool = True) -> Dict[str, str]:
        if not pairs:
            if required:
                raise ValueError("pairs are required")
            return {}
        return {"pair": ",".join(pairs)}

    # --- Helper: request + parse ---
    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> bytes:
        if self.dry_run:
            raise DryRunError(f"GET /public/{endpoint} not sent")

        url = f"{self.base}/public/{endpoint}"
        try:
            r = self.s.get(url, params=params or None, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            raise NetworkError(f"GET /public/{endpoint} failed: {e}") from e
        log.debug("GET /public/%s params=%s -> %s bytes", endpoint, params, len(r.content))
        return r.content

    def _fetch(self, endpoint: str, target: Type[R], params: Optional[Dict[str, Any]] = None) -> R:
        parsed = self.parser.parse(self._get(endpoint, params), target)
        errors = getattr(parsed, "errors", None)
        if errors:
            log.warning(
                "/public/%s reported %d error(s): %s",
                endpoint,
                len(errors),
                "; ".join(str(e) for e in errors),
            )
        return parsed

    # --- Helper: private request signature ---
    @staticmethod
    def nonce() -> str:
        return str(int(time.time() * 1000))

    def sign(self, url_path: str, data: Dict[str, Any]) -> Dict[str, str]:
        """Headers for a private call.

        API-Sign = b64(HMAC-SHA512(b64decode(secret), url_path + SHA256(nonce + postdata)))
        where `url_path` is e.g. "/0/private/Balance" and `data` the POST
        body, nonce included.
        """
        assert self.creds is not None, "Private endpoint requires credentials"
        if "nonce" not in data:
            raise ValueError("data must carry a nonce")

        postdata = urlencode(data)
        digest = hashlib.sha256((str(data["nonce"]) + postdata).encode()).digest()
        mac = hmac.new(
            base64.b64decode(self.creds.api_secret),
            url_path.encode() + digest,
            hashlib.sha512,
        )
        return {
            "API-Key": self.creds.api_key,
            "API-Sign": base64.b64encode(mac.digest()).decode(),
        }

    # --- Public API ---
    def time(self) -> Time:
        return self._fetch("Time", Time)

    def status(self) -> SystemStatus:
        return self._fetch("SystemStatus", SystemStatus)

    def assets(self) -> Assets:
        return self._fetch("Assets", Assets)

    def asset_pairs(self, *pairs: str, info: AssetPairInfo = AssetPairInfo.INFO) -> AssetPairs:
        params: Dict[str, Any] = {"info": AssetPairInfo(info).value}
        params.update(self._pairs(pairs, required=False))
        return self._fetch("AssetPairs", AssetPairs, params)

    def ticker(self, *pairs: str) -> Tickers:
        return self._fetch("Ticker", Tickers, self._pairs(pairs, required=False))

    def ohlc(
        self,
        *pairs: str,
        interval: OHLCInterval = OHLCInterval.MINUTE,
        since: Optional[int] = None,
    ) -> OHLCs:
        params: Dict[str, Any] = self._pairs(pairs)
        params["interval"] = int(interval)
        if since is not None:
            params["since"] = str(since)
        return self._fetch("OHLC", OHLCs, params)

    def order_book(self, *pairs: str, count: int = 100) -> OrderBook:
        params: Dict[str, Any] = self._pairs(pairs)
        params["count"] = str(count)
        return self._fetch("Depth", OrderBook, params)

    def recent_trades(self, *pairs: str, since: Optional[int] = None) -> RecentTrades:
        params: Dict[str, Any] = self._pairs(pairs)
        if since is not None:
            params["since"] = str(since)
        return self._fetch("Trades", RecentTrades, params)

    def recent_spreads(self, *pairs: str, since: Optional[int] = None) -> RecentSpreads:
        params: Dict[str, Any] = self._pairs(pairs)
        if since is not None:
            params["since"] = str(since)
        return self._fetch("Spread", RecentSpreads, params)
