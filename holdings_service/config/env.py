from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_TICKER_MAP_PATH = Path(__file__).resolve().parent.parent / "resolver" / "ticker_map.json"


@dataclass(frozen=True)
class SourceConfig:
    url: str
    table_body_class: str
    user_agent: str
    connect_timeout_sec: float = 10.0
    read_timeout_sec: float = 60.0


def get_source_config() -> SourceConfig:
    return SourceConfig(
        url=os.getenv("HOLDINGS_SOURCE_URL", "https://www.invesco.com/qqq-etf/en/about.html"),
        table_body_class=os.getenv("HOLDINGS_TABLE_BODY_CLASS", "view-all-holdings__table-body"),
        user_agent=os.getenv("HOLDINGS_USER_AGENT", "QQQHoldingsService/0.1"),
        connect_timeout_sec=float(os.getenv("HOLDINGS_CONNECT_TIMEOUT_SEC", "10")),
        read_timeout_sec=float(os.getenv("HOLDINGS_FETCH_TIMEOUT_SEC", "60")),
    )


@dataclass(frozen=True)
class CacheConfig:
    ttl_sec: float = 3600.0  # 1 hour
    snapshot_path: Path = Path("./qqq_holdings.json")


def get_cache_config() -> CacheConfig:
    return CacheConfig(
        ttl_sec=float(os.getenv("HOLDINGS_CACHE_TTL_SEC", "3600")),
        snapshot_path=Path(os.getenv("HOLDINGS_SNAPSHOT_PATH", "./qqq_holdings.json")),
    )


@dataclass(frozen=True)
class ResolverConfig:
    ticker_map_path: Path = DEFAULT_TICKER_MAP_PATH


def get_resolver_config() -> ResolverConfig:
    return ResolverConfig(ticker_map_path=Path(os.getenv("HOLDINGS_TICKER_MAP_PATH", str(DEFAULT_TICKER_MAP_PATH))))


@dataclass(frozen=True)
class ServerConfig:
    port: int = 3000
    log_level: str = "INFO"
    warm_up: bool = True


def get_server_config() -> ServerConfig:
    return ServerConfig(
        port=int(os.getenv("PORT", "3000")),
        log_level=os.getenv("HOLDINGS_LOG_LEVEL", "INFO").upper(),
        warm_up=os.getenv("HOLDINGS_WARM_UP", "1").lower() not in ("0", "false", "no"),
    )
