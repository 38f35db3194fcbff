# src/krakenfeed/settings.py
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field
import os
import yaml


class ApiCfg(BaseModel):
    key: str | None = None
    secret: str | None = None


class ExchangeCfg(BaseModel):
    name: str = "kraken"
    base_url: str = "https://api.kraken.com/0"
    timeout_s: int = Field(default=10, gt=0)
    dry_run: bool = False


class DataCfg(BaseModel):
    pair: str = "XXBTZUSD"
    interval: str = "1m"
    out: str = "data/ohlc.csv"


class Settings(BaseSettings):
    env: str = "dev"
    api: ApiCfg = ApiCfg()
    exchange: ExchangeCfg = ExchangeCfg()
    data: DataCfg = DataCfg()

    # unknown .env keys are ignored; API__KEY style nesting is supported
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    @classmethod
    def load(cls, path: str | None = None) -> "Settings":
        """YAML file (optional) with KRAKEN_API_KEY / KRAKEN_API_SECRET layered on top."""
        cfg: dict = {}
        if path:
            p = Path(path)
            if not p.exists():
                raise FileNotFoundError(f"config not found: {p}")
            with p.open("r", encoding="utf-8") as f:
                cfg = yaml.safe_load(f) or {}

        ek = os.getenv("KRAKEN_API_KEY")
        es = os.getenv("KRAKEN_API_SECRET")
        if ek or es:
            cfg.setdefault("api", {})
            if ek:
                cfg["api"]["key"] = ek
            if es:
                cfg["api"]["secret"] = es

        return cls.model_validate(cfg)
