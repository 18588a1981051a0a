from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
import math

from loguru import logger

from holdings_service.ranking.models import HoldingEntry, RawRow, Snapshot
from holdings_service.resolver.core import TickerResolver


def parse_percent(text: Optional[str]) -> Optional[float]:
    """Parse "12.34%" into 12.34. Returns None when the text is not a usable weight."""
    if text is None:
        return None
    s = text.strip()
    if s.endswith("%"):
        s = s[:-1].strip()
    try:
        val = float(s)
    except ValueError:
        return None
    if not math.isfinite(val) or val < 0:
        return None
    return val


@dataclass
class _Group:
    ticker: str
    canonical: RawRow
    canonical_is_target: bool
    percent: float


def merge_rows(rows: Iterable[RawRow], resolver: TickerResolver) -> List[HoldingEntry]:
    """Group rows by resolved ticker and collapse each group into one entry.

    Percentages are summed. The canonical member (company and id of the merged
    entry) is the row whose own listing symbol is the merged ticker, or the
    first row of the group when none is. Groups keep first-seen order and
    positions are left at 0 for `rank` to assign.

    Malformed weights are repaired to 0.0 in place (best-effort completeness):
    the repair is logged and the row is kept, the batch never fails on it.
    """
    groups: Dict[str, _Group] = {}
    for row in rows:
        pct = parse_percent(row.percent_text)
        if pct is None:
            logger.warning(
                "Unparseable weight {!r} for {!r} (row {}); using 0.0",
                row.percent_text, row.company_name, row.ordinal,
            )
            pct = 0.0
        ticker = resolver.resolve(row.company_name)
        is_target = resolver.listing_symbol(row.company_name) == ticker
        g = groups.get(ticker)
        if g is None:
            groups[ticker] = _Group(ticker=ticker, canonical=row, canonical_is_target=is_target, percent=pct)
            continue
        g.percent += pct
        if is_target and not g.canonical_is_target:
            g.canonical = row
            g.canonical_is_target = True
        logger.info("Merged {!r} into {} (combined {:.4f}%)", row.company_name, ticker, g.percent)

    return [
        HoldingEntry(position=0, company=g.canonical.company_name, ticker=g.ticker, percent=g.percent, id=g.canonical.row_id)
        for g in groups.values()
    ]


def rank(entries: Iterable[HoldingEntry]) -> List[HoldingEntry]:
    # sorted() is stable, so exact ties keep their incoming order
    ordered = sorted(entries, key=lambda e: -e.percent)
    return [
        HoldingEntry(position=i, company=e.company, ticker=e.ticker, percent=e.percent, id=e.id)
        for i, e in enumerate(ordered, start=1)
    ]


def build_snapshot(rows: Iterable[RawRow], resolver: TickerResolver, now: Optional[datetime] = None) -> Snapshot:
    rows = sorted(rows, key=lambda r: r.ordinal)
    entries = rank(merge_rows(rows, resolver))
    return Snapshot(timestamp=now or datetime.now(timezone.utc), items=tuple(entries))
