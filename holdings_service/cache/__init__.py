"""Snapshot caching: in-memory TTL cache with stale fallback, plus the on-disk store.

- snapshot_cache.py: SnapshotCache state machine (EMPTY / FRESH / STALE), single-flight refresh
- store.py: JsonSnapshotStore, the best-effort last-known-good file
"""
