from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional
import json
import threading

from holdings_service.config.env import get_resolver_config


@dataclass(frozen=True)
class TickerResolver:
    """Static company name -> ticker lookup.

    `tickers` maps the company name exactly as extracted (case and whitespace
    sensitive) to its listing symbol. `aliases` collapses listing symbols that
    represent the same economic security onto one merged symbol, e.g. the two
    Alphabet share classes GOOGL -> GOOG.
    """
    tickers: Mapping[str, str]
    aliases: Mapping[str, str] = field(default_factory=dict)

    @staticmethod
    def from_json_path(path: str | Path) -> "TickerResolver":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return TickerResolver(
            tickers=dict(data.get("tickers", {})),
            aliases=dict(data.get("aliases", {})),
        )

    def listing_symbol(self, company_name: str) -> str:
        # identity fallback: unmapped or empty names are returned unchanged
        if not company_name:
            return company_name
        return self.tickers.get(company_name, company_name)

    def resolve_alias(self, symbol: str) -> str:
        return self.aliases.get(symbol, symbol)

    def resolve(self, company_name: str) -> str:
        return self.resolve_alias(self.listing_symbol(company_name))


_default: Optional[TickerResolver] = None
_default_lock = threading.Lock()


def default_resolver() -> TickerResolver:
    """Resolver over the configured ticker map, loaded once per process."""
    global _default
    with _default_lock:
        if _default is None:
            _default = TickerResolver.from_json_path(get_resolver_config().ticker_map_path)
        return _default


def resolve(company_name: str) -> str:
    return default_resolver().resolve(company_name)


def as_dict(resolver: TickerResolver, company_name: str) -> Dict[str, str]:
    return {
        "company": company_name,
        "listing_symbol": resolver.listing_symbol(company_name),
        "ticker": resolver.resolve(company_name),
    }
