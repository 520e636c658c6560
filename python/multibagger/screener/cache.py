"""Time-boxed cache of canonical financial records."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

from loguru import logger

from .constants import FRESHNESS_HOURS
from .schemas import CacheStats, CanonicalFinancialRecord, utc_now
from .storage import RecordStore


class RecordCache:
    """Fronts the acquisition pipeline with a 24 hour freshness window."""

    def __init__(
        self,
        store: RecordStore,
        freshness: timedelta = timedelta(hours=FRESHNESS_HOURS),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self.freshness = freshness
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def get(self, ticker: str) -> Optional[CanonicalFinancialRecord]:
        """Return the cached record, or ``None`` when absent or stale."""
        record = self._store.read_record(ticker)
        if record is None:
            return None
        if not record.is_fresh(self._clock(), self.freshness):
            logger.info("Cache expired for {ticker}", ticker=ticker.upper())
            return None
        return record

    def put(self, record: CanonicalFinancialRecord) -> CanonicalFinancialRecord:
        """Upsert ``record``, stamping ``fetched_at`` when it is unset."""
        if record.fetched_at is None:
            record = record.model_copy(update={"fetched_at": self._clock()})
        if record.ticker != record.ticker.upper():
            record = record.model_copy(update={"ticker": record.ticker.upper()})
        self._store.write_record(record)
        return record

    def purge_stale(self) -> int:
        now = self._clock()
        removed = 0
        for record in list(self._store.iter_records()):
            if not record.is_fresh(now, self.freshness):
                if self._store.delete_record(record.ticker):
                    removed += 1
        logger.info("Purged {count} stale cache entries", count=removed)
        return removed

    def purge_all(self) -> int:
        removed = 0
        for ticker in self._store.cached_tickers():
            if self._store.delete_record(ticker):
                removed += 1
        logger.info("Purged all {count} cache entries", count=removed)
        return removed

    def stats(self) -> CacheStats:
        now = self._clock()
        records = list(self._store.iter_records())
        fresh = sum(1 for record in records if record.is_fresh(now, self.freshness))
        return CacheStats(total=len(records), fresh=fresh, stale=len(records) - fresh)
