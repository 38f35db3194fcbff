from typing import Callable, List, Optional, TypeVar
import logging
import typer
from krakenfeed.errors import KrakenError
from krakenfeed.exchanges.base import IExchangeClient
from krakenfeed.exchanges.fake import FakeExchange
from krakenfeed.exchanges.instrumented import InstrumentedClient
from krakenfeed.exchanges.kraken import KrakenClient
from krakenfeed.data.downloader import download_ohlc
from krakenfeed.logging_config import setup as setup_logging
from krakenfeed.metrics import MetricsRegistry
from krakenfeed.models.order import AssetPairInfo, OHLCInterval
from krakenfeed.settings import Settings

log = logging.getLogger("cli")

app = typer.Typer(help="Kraken 공개 시세 조회 CLI")

R = TypeVar("R")

CONFIG = typer.Option(None, "--config", help="YAML 설정 파일 (예: configs/dev.yaml)")
USE_FAKE = typer.Option(False, "--use-fake", help="FakeExchange로 오프라인 데이터 사용")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="콘솔 + 파일 로그 출력"),
    debug: bool = typer.Option(False, "--debug", help="요청 단위 로그(kraken 채널 DEBUG)까지 출력"),
):
    if verbose or debug:
        setup_logging(levels={"kraken": logging.DEBUG} if debug else None)


def _client(config: Optional[str], use_fake: bool) -> IExchangeClient:
    if use_fake:
        return FakeExchange()
    return KrakenClient.from_settings(Settings.load(config))


def _call(fn: Callable[[], R]) -> R:
    try:
        res = fn()
    except (KrakenError, ValueError, FileNotFoundError) as e:
        log.warning("command failed: %s", e)
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)
    for err in getattr(res, "errors", None) or ():
        typer.echo(f"api error: {err}", err=True)
    return res


@app.command()
def time(config: Optional[str] = CONFIG, use_fake: bool = USE_FAKE):
    """서버 시각."""
    res = _call(lambda: _client(config, use_fake).time())
    typer.echo(res.timestamp.isoformat() if res.timestamp else "-")


@app.command()
def status(config: Optional[str] = CONFIG, use_fake: bool = USE_FAKE):
    """거래소 시스템 상태."""
    res = _call(lambda: _client(config, use_fake).status())
    ts = res.timestamp.isoformat() if res.timestamp else "-"
    typer.echo(f"{res.status or '-'} @ {ts}")


@app.command()
def assets(config: Optional[str] = CONFIG, use_fake: bool = USE_FAKE):
    """거래 가능 자산 목록."""
    res = _call(lambda: _client(config, use_fake).assets())
    for name, a in sorted(res.assets.items()):
        typer.echo(
            f"{name}\t{a.alt_name}\t{a.asset_class}\tdecimals={a.precision}\tdisplay={a.display_precision}"
        )


@app.command()
def pairs(
    pair: Optional[List[str]] = typer.Argument(None, help="예: XXBTZUSD (없으면 전체)"),
    info: AssetPairInfo = typer.Option(AssetPairInfo.INFO, help="조회 범위: info/leverage/fees/margin"),
    config: Optional[str] = CONFIG,
    use_fake: bool = USE_FAKE,
):
    """거래쌍 정보 (수수료 구간 포함)."""
    res = _call(lambda: _client(config, use_fake).asset_pairs(*(pair or []), info=info))
    for name, p in sorted(res.pairs.items()):
        taker = p.fees_taker[0].percentage if p.fees_taker else "-"
        maker = p.fees_maker[0].percentage if p.fees_maker else "-"
        typer.echo(f"{name}\t{p.websocket_name or p.alt_name}\t{p.base}/{p.quote}\ttaker={taker}\tmaker={maker}")


@app.command()
def ticker(
    pair: Optional[List[str]] = typer.Argument(None, help="예: XXBTZUSD"),
    config: Optional[str] = CONFIG,
    use_fake: bool = USE_FAKE,
):
    """거래쌍별 최우선 호가와 최근 체결가."""
    res = _call(lambda: _client(config, use_fake).ticker(*(pair or [])))
    for name, t in sorted(res.tickers.items()):
        typer.echo(
            f"{name}\task={t.ask.price}\tbid={t.bid.price}\tlast={t.last_close.price}"
            f"\tvol24h={t.volume_last_24_hours}"
        )


@app.command()
def ohlc(
    pair: str = typer.Argument(..., help="예: XXBTZUSD"),
    interval: str = typer.Option("1m", help="캔들 간격: 1m/5m/15m/30m/1h/4h/1d/1w/15d"),
    since: Optional[int] = typer.Option(None, help="이전 호출의 last 값 (이후 데이터만 조회)"),
    config: Optional[str] = CONFIG,
    use_fake: bool = USE_FAKE,
):
    """거래쌍 하나의 OHLC 캔들."""
    res = _call(
        lambda: _client(config, use_fake).ohlc(
            pair, interval=OHLCInterval.from_label(interval), since=since
        )
    )
    for c in res.candles.get(pair, ()):
        typer.echo(
            f"{c.time.isoformat()}\to={c.open}\th={c.high}\tl={c.low}\tc={c.close}"
            f"\tv={c.volume}\tn={c.count}"
        )
    typer.echo(f"last={res.last_id}")


@app.command()
def book(
    pair: str = typer.Argument(..., help="예: XXBTZUSD"),
    count: int = typer.Option(10, help="매수/매도 각각의 호가 개수"),
    config: Optional[str] = CONFIG,
    use_fake: bool = USE_FAKE,
):
    """거래쌍 하나의 호가창."""
    res = _call(lambda: _client(config, use_fake).order_book(pair, count=count))
    for a in reversed(res.asks.get(pair, ())):
        typer.echo(f"ask\t{a.price}\t{a.volume}")
    for b in res.bids.get(pair, ()):
        typer.echo(f"bid\t{b.price}\t{b.volume}")


@app.command()
def trades(
    pair: str = typer.Argument(..., help="예: XXBTZUSD"),
    since: Optional[int] = typer.Option(None, help="이전 호출의 last 값 (이후 데이터만 조회)"),
    config: Optional[str] = CONFIG,
    use_fake: bool = USE_FAKE,
):
    """거래쌍 하나의 최근 체결 내역."""
    res = _call(lambda: _client(config, use_fake).recent_trades(pair, since=since))
    for t in res.trades.get(pair, ()):
        typer.echo(f"{t.time.isoformat()}\t{t.action}\t{t.type}\t{t.price}\t{t.volume}")
    typer.echo(f"last={res.last_id}")


@app.command()
def spread(
    pair: str = typer.Argument(..., help="예: XXBTZUSD"),
    since: Optional[int] = typer.Option(None, help="이전 호출의 last 값 (이후 데이터만 조회)"),
    config: Optional[str] = CONFIG,
    use_fake: bool = USE_FAKE,
):
    """거래쌍 하나의 최근 스프레드 (최우선 매수/매도 호가)."""
    res = _call(lambda: _client(config, use_fake).recent_spreads(pair, since=since))
    for s in res.spreads.get(pair, ()):
        typer.echo(f"{s.timestamp.isoformat()}\tbid={s.bid}\task={s.ask}")
    typer.echo(f"last={res.last_id}")


@app.command("download")
def download(
    pair: Optional[str] = typer.Option(None, help="예: XXBTZUSD (기본값: config data.pair)"),
    interval: Optional[str] = typer.Option(None, help="캔들 간격: 1m/5m/15m/30m/1h/4h/1d/1w/15d"),
    since: Optional[int] = typer.Option(None, help="이전 실행의 last id (증분 수집)"),
    out: Optional[str] = typer.Option(None, help="출력 CSV 경로 (기본값: config data.out)"),
    mode: str = typer.Option("w", help='"w"(새로쓰기) 또는 "a"(이어쓰기)'),
    config: Optional[str] = CONFIG,
    use_fake: bool = USE_FAKE,
) -> None:
    """
    OHLC 캔들 CSV 다운로더. 출력된 last 값을 다음 실행의 --since 로 넘기면 새 캔들만 받습니다.
    """
    data = _call(lambda: Settings.load(config)).data
    ex = _call(lambda: InstrumentedClient(_client(config, use_fake), MetricsRegistry()))

    path, last_id = _call(
        lambda: download_ohlc(
            exchange=ex,
            pair=pair or data.pair,
            interval=OHLCInterval.from_label(interval or data.interval),
            since=since,
            out_path=out or data.out,
            mode="a" if mode == "a" else "w",
            dedup=True,
        )
    )
    ex.log_summary()
    typer.echo(f"Saved: {path} (last={last_id})")


if __name__ == "__main__":
    app()
