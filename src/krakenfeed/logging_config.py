from __future__ import annotations
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Mapping, Optional


DEFAULT_FMT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
CONSOLE_FMT = "%(asctime)s | %(levelname)s | %(message)s"

# kraken: requests + in-band API errors (WARNING), instrumented: call summaries,
# download: CSV writes, cli: command failures
CHANNELS: Dict[str, int] = {
    "kraken": logging.INFO,
    "instrumented": logging.INFO,
    "download": logging.INFO,
    "cli": logging.INFO,
    "urllib3": logging.WARNING,
    "requests": logging.WARNING,
}

_INSTALLED = "_krakenfeed_logging_installed"


def _file_handler(log_dir: Path, filename: str, level: int, max_bytes: int, backup_count: int) -> RotatingFileHandler:
    fh = RotatingFileHandler(
        log_dir / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(DEFAULT_FMT))
    return fh


def setup(
    log_dir: str = "logs",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    filename: str = "krakenfeed.log",
    max_bytes: int = 5_000_000,
    backup_count: int = 3,
    levels: Optional[Mapping[str, int]] = None,
) -> None:
    """Console + rotating file logging, once per process.

    `levels` overrides CHANNELS per logger name, e.g. {"kraken": logging.DEBUG}
    to see every request, or {"kraken": logging.ERROR} to silence API warnings.
    """
    root = logging.getLogger()
    if getattr(root, _INSTALLED, False):
        return

    out = Path(log_dir)
    out.mkdir(parents=True, exist_ok=True)
    root.setLevel(logging.DEBUG)

    ch = logging.StreamHandler()
    ch.setLevel(console_level)
    ch.setFormatter(logging.Formatter(CONSOLE_FMT))
    root.addHandler(ch)
    root.addHandler(_file_handler(out, filename, file_level, max_bytes, backup_count))

    for name, level in {**CHANNELS, **(levels or {})}.items():
        logging.getLogger(name).setLevel(level)

    setattr(root, _INSTALLED, True)
