import base64
import hashlib
import hmac
import logging
from urllib.parse import urlencode
import pytest
import requests
from krakenfeed.errors import DryRunError, ErrorCategory, NetworkError
from krakenfeed.exchanges.kraken import KrakenClient, KrakenCreds
from krakenfeed.models.order import AssetPairInfo, OHLCInterval

SECRET = base64.b64encode(b"kraken-test-secret").decode()


class StubResponse:
    def __init__(self, body: bytes, status: int = 200):
        self.content = body
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class StubSession:
    """requests.Session 대용: 호출을 기록하고 준비된 응답을 돌려준다."""

    def __init__(self, body: bytes = b'{"error":[],"result":{}}', status: int = 200, exc=None):
        self.body = body
        self.status = status
        self.exc = exc
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        if self.exc is not None:
            raise self.exc
        return StubResponse(self.body, self.status)


def client(session: StubSession, **kw) -> KrakenClient:
    return KrakenClient(base_url="https://api.example.test/0/", session=session, **kw)


def test_time_hits_public_endpoint():
    s = StubSession(b'{"error":[],"result":{"unixtime":1643584726}}')
    res = client(s, timeout=3).time()
    assert res.timestamp is not None
    assert s.calls == [("https://api.example.test/0/public/Time", None, 3)]


def test_query_parameters():
    s = StubSession()
    c = client(s)
    c.asset_pairs("XXBTZUSD", "XETHZUSD", info=AssetPairInfo.FEES)
    c.ticker()
    c.ohlc("XXBTZUSD", interval=OHLCInterval.HOUR, since=1643757240)
    c.order_book("XXBTZUSD", count=5)
    c.recent_trades("XXBTZUSD", since=1644191265969108820)
    c.recent_spreads("XXBTZUSD")

    sent = [(url.rsplit("/", 1)[-1], params) for url, params, _ in s.calls]
    assert sent == [
        ("AssetPairs", {"info": "fees", "pair": "XXBTZUSD,XETHZUSD"}),
        ("Ticker", None),
        ("OHLC", {"pair": "XXBTZUSD", "interval": 60, "since": "1643757240"}),
        ("Depth", {"pair": "XXBTZUSD", "count": "5"}),
        ("Trades", {"pair": "XXBTZUSD", "since": "1644191265969108820"}),
        ("Spread", {"pair": "XXBTZUSD"}),
    ]


def test_pairs_are_required_for_market_data():
    c = client(StubSession())
    with pytest.raises(ValueError):
        c.ohlc()
    with pytest.raises(ValueError):
        c.order_book()


def test_transport_failure_is_network_error():
    c = client(StubSession(exc=requests.ConnectionError("boom")))
    with pytest.raises(NetworkError) as ei:
        c.status()
    assert isinstance(ei.value.__cause__, requests.ConnectionError)


def test_http_status_is_network_error():
    with pytest.raises(NetworkError):
        client(StubSession(status=502)).assets()


def test_dry_run_sends_nothing():
    s = StubSession()
    with pytest.raises(DryRunError):
        client(s, dry_run=True).time()
    assert s.calls == []


def test_in_band_errors_are_returned_and_logged(caplog):
    s = StubSession(b'{"error":["EQuery:Unknown asset pair"],"result":{}}')
    with caplog.at_level(logging.WARNING, logger="kraken"):
        res = client(s).ticker("NOPE")
    assert res.tickers == {}
    assert res.errors[0].category is ErrorCategory.QUERY
    assert "Unknown asset pair" in caplog.text


def test_invalid_secret_rejected():
    with pytest.raises(ValueError):
        KrakenClient(creds=KrakenCreds(api_key="K", api_secret="not base64!"), session=StubSession())


def test_sign_headers():
    c = client(StubSession(), creds=KrakenCreds(api_key="K", api_secret=SECRET))
    data = {"nonce": "1616492376594", "ordertype": "limit", "pair": "XBTUSD"}
    h = c.sign("/0/private/AddOrder", data)
    assert h["API-Key"] == "K"

    digest = hashlib.sha256(("1616492376594" + urlencode(data)).encode()).digest()
    mac = hmac.new(base64.b64decode(SECRET), b"/0/private/AddOrder" + digest, hashlib.sha512)
    assert h["API-Sign"] == base64.b64encode(mac.digest()).decode()


def test_sign_needs_nonce():
    c = client(StubSession(), creds=KrakenCreds(api_key="K", api_secret=SECRET))
    with pytest.raises(ValueError):
        c.sign("/0/private/Balance", {})


def test_nonce_increases():
    a = int(KrakenClient.nonce())
    b = int(KrakenClient.nonce())
    assert b >= a > 0


def test_from_settings(monkeypatch):
    from krakenfeed.settings import Settings

    monkeypatch.delenv("KRAKEN_API_KEY", raising=False)
    monkeypatch.delenv("KRAKEN_API_SECRET", raising=False)
    s = Settings.model_validate(
        {"api": {"key": "K", "secret": SECRET}, "exchange": {"timeout_s": 4, "dry_run": True}}
    )
    c = KrakenClient.from_settings(s)
    assert c.timeout == 4
    assert c.dry_run is True
    assert c.creds == KrakenCreds(api_key="K", api_secret=SECRET)
