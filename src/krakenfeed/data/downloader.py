# src/krakenfeed/data/downloader.py
from __future__ import annotations
from pathlib import Path
import csv
import logging
from typing import Iterable, Literal, Optional, Tuple
from krakenfeed.models.market import OHLC
from krakenfeed.models.order import OHLCInterval
from krakenfeed.exchanges.base import IExchangeClient

log = logging.getLogger("download")

HEADER = ["ts", "open", "high", "low", "close", "vwap", "volume", "count"]

Row = Tuple[int, str, str, str, str, str, str, int]


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _read_existing_ts(path: Path) -> set[int]:
    if not path.exists():
        return set()
    out: set[int] = set()
    with path.open("r", encoding="utf-8") as f:
        reader = csv.reader(f)
        next(reader, None)
        for row in reader:
            if row and row[0].isdigit():
                out.add(int(row[0]))
    return out


def candles_to_rows(candles: Iterable[OHLC]) -> list[Row]:
    # decimals are written as text so nothing is lost through float
    rows = [
        (
            int(c.time.timestamp()),
            str(c.open),
            str(c.high),
            str(c.low),
            str(c.close),
            str(c.volume_weighted_average_price),
            str(c.volume),
            c.count,
        )
        for c in candles
    ]
    rows.sort(key=lambda x: x[0])
    return rows


def download_ohlc(
    exchange: IExchangeClient,
    pair: str,
    interval: OHLCInterval = OHLCInterval.MINUTE,
    since: Optional[int] = None,
    out_path: str = "data/ohlc.csv",
    mode: Literal["w", "a"] = "w",
    dedup: bool = True,
) -> Tuple[str, int]:
    """
    Fetch candles for one pair and store them as CSV.
    - mode="w": new file with header
    - mode="a": append (header only if the file is new)
    - dedup=True: skip rows whose ts is already in the file
    Returns (path, last_id); pass last_id as `since` on the next call to
    fetch only newer candles.
    """
    res = exchange.ohlc(pair, interval=interval, since=since)
    if res.errors:
        log.warning("OHLC %s: %s", pair, "; ".join(str(e) for e in res.errors))
    rows = candles_to_rows(res.candles.get(pair, ()))

    path = Path(out_path)
    _ensure_parent(path)

    if mode == "w":
        with path.open("w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(HEADER)
            w.writerows(rows)
        written = len(rows)
    else:
        if dedup:
            existing = _read_existing_ts(path)
            rows = [r for r in rows if r[0] not in existing]
        write_header = not path.exists()
        with path.open("a", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            if write_header:
                w.writerow(HEADER)
            w.writerows(rows)
        written = len(rows)

    log.info("%s: wrote %d candles to %s (last=%d)", pair, written, path, res.last_id)
    return str(path), res.last_id
