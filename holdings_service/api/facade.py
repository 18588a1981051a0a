from __future__ import annotations
from typing import Optional

from holdings_service.cache.snapshot_cache import SnapshotCache
from holdings_service.cache.store import JsonSnapshotStore
from holdings_service.config.env import CacheConfig, SourceConfig, get_cache_config
from holdings_service.ingestion.invesco_client import InvescoHoldingsClient
from holdings_service.ranking.models import Snapshot
from holdings_service.resolver.core import TickerResolver, default_resolver


class HoldingsFacade:
    """Single entry point for the HTTP layer."""

    def __init__(self, cache: SnapshotCache):
        self.cache = cache

    def get_holdings(self) -> Snapshot:
        return self.cache.get_or_refresh()


def build_default_facade(
    source: Optional[SourceConfig] = None,
    cache_cfg: Optional[CacheConfig] = None,
    resolver: Optional[TickerResolver] = None,
) -> HoldingsFacade:
    cache_cfg = cache_cfg or get_cache_config()
    client = InvescoHoldingsClient(source)
    cache = SnapshotCache(
        fetch_raw_rows=client.fetch_raw_rows,
        resolver=resolver or default_resolver(),
        store=JsonSnapshotStore(cache_cfg.snapshot_path),
        ttl_sec=cache_cfg.ttl_sec,
    )
    return HoldingsFacade(cache)
