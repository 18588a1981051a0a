"""Ticker resolver package.

Maps a company name, exactly as it appears in the holdings table, to its ticker
symbol using the static `ticker_map.json`. Unmapped names fall back to the name
itself. See `holdings_service/resolver/core.py`.
"""
