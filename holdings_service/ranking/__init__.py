"""Merge & rank: raw table rows to a canonical, ranked holdings snapshot.

- models.py: RawRow, HoldingEntry, Snapshot and their serialized shape
- engine.py: percent parsing, ticker-collision merge, stable re-rank
"""
