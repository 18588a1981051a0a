from __future__ import annotations
from typing import List, Optional

import requests
from bs4 import BeautifulSoup
from loguru import logger

from holdings_service.config.env import SourceConfig, get_source_config
from holdings_service.errors import ExtractionError
from holdings_service.ranking.models import RawRow

"""
Invesco QQQ "view all holdings" table.

The page is fetched with requests (bounded connect/read timeouts) and the
holdings tbody is parsed with BeautifulSoup. Parsing is a pure function so
tests run offline against small HTML fixtures.
"""

DEFAULT_PERCENT_TEXT = "0%"


def _cell_text(cell) -> Optional[str]:
    if cell is None:
        return None
    return cell.get_text(strip=True)


def parse_holdings_table(html: str, table_body_class: str) -> List[RawRow]:
    """Extract one RawRow per <tr> of `tbody.<table_body_class>`.

    Company comes from the first cell's <span>, the weight from the last cell.
    Raises ExtractionError when the table body is missing or has no rows.
    """
    soup = BeautifulSoup(html, "html.parser")
    body = soup.select_one(f"tbody.{table_body_class}")
    if body is None:
        raise ExtractionError(f'Table body with class "{table_body_class}" not found')

    out: List[RawRow] = []
    for idx, tr in enumerate(body.find_all("tr")):
        company = _cell_text(tr.select_one("td:first-child span"))
        cells = tr.find_all("td")
        percent = _cell_text(cells[-1]) if cells else None
        out.append(RawRow(
            company_name=company or "",
            percent_text=percent if percent is not None else DEFAULT_PERCENT_TEXT,
            row_id=tr.get("id") or "",
            ordinal=idx,
        ))
    if not out:
        raise ExtractionError(f'Table body with class "{table_body_class}" has no rows')
    return out


class InvescoHoldingsClient:
    def __init__(self, config: Optional[SourceConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or get_source_config()
        self.session = session or requests.Session()

    def fetch_html(self) -> str:
        cfg = self.config
        try:
            resp = self.session.get(
                cfg.url,
                headers={"User-Agent": cfg.user_agent},
                timeout=(cfg.connect_timeout_sec, cfg.read_timeout_sec),
            )
            resp.raise_for_status()
        except requests.Timeout as e:
            raise ExtractionError(f"Timed out fetching {cfg.url}: {e}", details={"url": cfg.url}) from e
        except requests.RequestException as e:
            raise ExtractionError(f"Failed to fetch {cfg.url}: {e}", details={"url": cfg.url}) from e
        return resp.text

    def fetch_raw_rows(self) -> List[RawRow]:
        logger.info("Fetching holdings data from: {}", self.config.url)
        rows = parse_holdings_table(self.fetch_html(), self.config.table_body_class)
        logger.info("Extracted {} holdings rows", len(rows))
        return rows
