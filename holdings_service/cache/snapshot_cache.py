from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional, Protocol, Sequence, Tuple
import queue
import threading

from loguru import logger

from holdings_service.errors import NoDataAvailableError
from holdings_service.ranking.engine import build_snapshot
from holdings_service.ranking.models import RawRow, Snapshot, format_timestamp
from holdings_service.resolver.core import TickerResolver


class SnapshotStore(Protocol):
    def load(self) -> Snapshot: ...

    def save(self, snapshot: Snapshot) -> None: ...


class CacheState(str, Enum):
    EMPTY = "EMPTY"
    FRESH = "FRESH"
    STALE = "STALE"


@dataclass(frozen=True)
class CacheRecord:
    snapshot: Optional[Snapshot] = None
    fetched_at: Optional[datetime] = None
    refresh_in_flight: bool = False


class _Flight:
    """One in-progress refresh; followers wait on `done` and share its outcome."""

    def __init__(self):
        self.done = threading.Event()
        self.snapshot: Optional[Snapshot] = None
        self.error: Optional[NoDataAvailableError] = None

    def outcome(self, follower: bool = False) -> Snapshot:
        if self.error is not None:
            if follower:
                # each waiting thread gets its own exception object
                raise NoDataAvailableError(self.error.message, cause=self.error.cause) from self.error.cause
            raise self.error
        if self.snapshot is None:
            raise NoDataAvailableError("Refresh ended without producing a snapshot")
        return self.snapshot


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotCache:
    """Time-bounded holdings cache with stale fallback and single-flight refresh.

    A call finding the cache EMPTY or STALE refreshes it: fetch raw rows, build
    a snapshot, swap it in and hand it to a background saver (best-effort).
    If the refresh fails the previous snapshot is returned unchanged; with
    nothing in memory the persisted snapshot is adopted instead. Only when
    every path is exhausted does NoDataAvailableError reach the caller.

    Concurrent callers arriving during a refresh wait for it and receive its
    outcome; a second extraction is never started while one is in flight.
    The record lock is never held across extraction or store I/O.
    """

    def __init__(
        self,
        fetch_raw_rows: Callable[[], Sequence[RawRow]],
        resolver: TickerResolver,
        store: Optional[SnapshotStore] = None,
        ttl_sec: float = 3600.0,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._fetch_raw_rows = fetch_raw_rows
        self._resolver = resolver
        self._store = store
        self._ttl = timedelta(seconds=ttl_sec)
        self._clock = clock
        self._lock = threading.Lock()
        self._record = CacheRecord()
        self._flight: Optional[_Flight] = None
        self._save_q: "queue.Queue[Snapshot]" = queue.Queue()
        self._saver: Optional[threading.Thread] = None
        self._saver_lock = threading.Lock()

    def record(self) -> CacheRecord:
        with self._lock:
            return self._record

    def state(self) -> CacheState:
        return self._state_of(self.record(), self._clock())

    def _state_of(self, rec: CacheRecord, now: datetime) -> CacheState:
        if rec.snapshot is None or rec.fetched_at is None:
            return CacheState.EMPTY
        if now - rec.fetched_at < self._ttl:
            return CacheState.FRESH
        return CacheState.STALE

    def get_or_refresh(self) -> Snapshot:
        with self._lock:
            rec = self._record
            if self._state_of(rec, self._clock()) is CacheState.FRESH:
                logger.debug("Using cached holdings data")
                return rec.snapshot
            flight = self._flight
            leader = flight is None
            if leader:
                flight = self._flight = _Flight()
                self._record = replace(rec, refresh_in_flight=True)

        if not leader:
            logger.debug("Refresh already in flight, waiting for its result")
            flight.done.wait()
            return flight.outcome(follower=True)

        extracted = False
        try:
            flight.snapshot, extracted = self._refresh()
        except NoDataAvailableError as e:
            flight.error = e
        finally:
            with self._lock:
                self._flight = None
                self._record = replace(self._record, refresh_in_flight=False)
            flight.done.set()
        if extracted:
            self._schedule_save(flight.snapshot)
        return flight.outcome()

    def warm_up(self) -> Optional[Snapshot]:
        """Startup refresh. Failure leaves the cache EMPTY and is only logged."""
        try:
            return self.get_or_refresh()
        except NoDataAvailableError as e:
            logger.error("Initial data fetch failed: {}", e)
            return None

    def _refresh(self) -> Tuple[Snapshot, bool]:
        """Returns the snapshot to serve and whether it came from a new extraction."""
        started = self._clock()
        try:
            logger.info("Fetching fresh holdings data")
            rows = self._fetch_raw_rows()
            snapshot = build_snapshot(rows, self._resolver, now=self._clock())
        except Exception as e:
            return self._fall_back(e), False

        with self._lock:
            self._record = CacheRecord(snapshot=snapshot, fetched_at=started, refresh_in_flight=True)
        logger.info("Refreshed holdings snapshot with {} items", snapshot.item_count)
        return snapshot, True

    def wait_for_saves(self) -> None:
        """Block until every scheduled save has been attempted."""
        self._save_q.join()

    def _schedule_save(self, snapshot: Snapshot) -> None:
        # persisted on a background worker; no caller ever waits on the store write
        if self._store is None:
            return
        with self._saver_lock:
            if self._saver is None:
                self._saver = threading.Thread(target=self._save_loop, name="holdings-snapshot-saver", daemon=True)
                self._saver.start()
        self._save_q.put(snapshot)

    def _save_loop(self):
        while True:
            snapshot = self._save_q.get()
            try:
                self._save(snapshot)
            finally:
                self._save_q.task_done()

    def _save(self, snapshot: Snapshot) -> None:
        try:
            self._store.save(snapshot)
        except Exception as e:
            logger.warning("Could not persist holdings snapshot: {}", e)

    def _fall_back(self, error: Exception) -> Snapshot:
        logger.warning("Error fetching fresh data: {}", error)
        prior = self.record().snapshot
        if prior is not None:
            logger.warning("Using cached data from {}", format_timestamp(prior.timestamp))
            return prior

        if self._store is not None:
            try:
                persisted = self._store.load()
            except Exception as e:
                logger.warning("Could not load persisted snapshot: {}", e)
            else:
                # staleness is measured from capture time, never from the future
                fetched_at = min(persisted.timestamp, self._clock())
                with self._lock:
                    self._record = CacheRecord(snapshot=persisted, fetched_at=fetched_at, refresh_in_flight=True)
                logger.info("Loaded holdings data from file ({} items, captured {})",
                            persisted.item_count, format_timestamp(persisted.timestamp))
                return persisted

        logger.error("No holdings data available: {}", error)
        raise NoDataAvailableError(f"Failed to fetch holdings data: {error}", cause=error) from error
