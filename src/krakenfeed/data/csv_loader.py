# src/krakenfeed/data/csv_loader.py
from __future__ import annotations
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
import csv
from typing import List
from krakenfeed.data.downloader import HEADER
from krakenfeed.models.market import OHLC


def _resolve(path: str) -> Path:
    p = Path(path)
    if not p.is_absolute():
        p = Path.cwd() / p
    return p


def load_ohlc_csv(path: str) -> List[OHLC]:
    """Read a file written by download_ohlc back into OHLC values, oldest first."""
    p = _resolve(path)
    if not p.exists():
        raise FileNotFoundError(f"CSV not found: {p}")

    out: List[OHLC] = []
    with p.open("r", encoding="utf-8-sig") as f:  # tolerate a BOM
        r = csv.DictReader(f)
        if r.fieldnames is None:
            raise ValueError(f"CSV has no header: {p}")
        missing = [k for k in HEADER if k not in r.fieldnames]
        if missing:
            raise ValueError(f"CSV header missing {missing}; expected {HEADER}")

        for line, row in enumerate(r, start=2):
            try:
                out.append(
                    OHLC(
                        time=datetime.fromtimestamp(int(row["ts"]), tz=timezone.utc),
                        open=Decimal(row["open"]),
                        high=Decimal(row["high"]),
                        low=Decimal(row["low"]),
                        close=Decimal(row["close"]),
                        volume_weighted_average_price=Decimal(row["vwap"]),
                        volume=Decimal(row["volume"]),
                        count=int(row["count"]),
                    )
                )
            except (InvalidOperation, TypeError, ValueError) as e:
                raise ValueError(f"{p}:{line}: bad row {row}: {e}") from e

    out.sort(key=lambda c: c.time)
    return out
