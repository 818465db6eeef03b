"""
Scan history log.

Stores HistoryRecord snapshots in the key-value store under the
``history:`` prefix and answers the list queries the host needs.
"""

from typing import Optional

import pydantic
import structlog

from productscan.domain.history.models import HistoryRecord, HistoryStats
from productscan.domain.product.models import Product
from productscan.domain.shared.ports import Clock, KeyValueStore
from productscan.infrastructure.clock import SystemClock

logger = structlog.get_logger(__name__)

SECONDS_PER_DAY = 86400


class ScanHistoryLog:
    """HistoryLog adapter over a KeyValueStore.

    Example:
        >>> from productscan.infrastructure.persistence.in_memory_store import (
        ...     InMemoryKeyValueStore,
        ... )
        >>> history = ScanHistoryLog(InMemoryKeyValueStore())
        >>> record = history.add_scan(Product(barcode="3017620422003", name="Nutella"))
        >>> assert history.recent_scans()[0].id == record.id
    """

    KEY_PREFIX = "history"

    def __init__(self, store: KeyValueStore, clock: Optional[Clock] = None) -> None:
        self.store = store
        self._clock = clock or SystemClock()

    def _make_key(self, record_id: str) -> str:
        return f"{self.KEY_PREFIX}:{record_id}"

    def _save(self, record: HistoryRecord) -> None:
        self.store.put(self._make_key(record.id), record.model_dump_json().encode("utf-8"))

    def _load(self, record_id: str) -> Optional[HistoryRecord]:
        raw = self.store.get(self._make_key(record_id))
        if raw is None:
            return None
        try:
            return HistoryRecord.model_validate_json(raw)
        except pydantic.ValidationError as e:
            logger.warning("Skipping undecodable history record", id=record_id, error=str(e))
            return None

    def _all(self) -> list[HistoryRecord]:
        """Every record, most recent first."""
        records = []
        for key, raw, _ in self.store.scan_all(f"{self.KEY_PREFIX}:"):
            try:
                records.append(HistoryRecord.model_validate_json(raw))
            except pydantic.ValidationError as e:
                logger.warning("Skipping undecodable history record", key=key, error=str(e))
        records.sort(key=lambda r: r.scanned_at, reverse=True)
        return records

    def add_scan(self, product: Product) -> HistoryRecord:
        """Append a snapshot of product.

        Raises:
            StoreError: If the store rejects the write
        """
        record = HistoryRecord.from_product(product, scanned_at=self._clock.now())
        self._save(record)
        logger.debug("Scan recorded", barcode=record.barcode, id=record.id)
        return record

    def recent_scans(self, limit: int = 50) -> list[HistoryRecord]:
        return self._all()[:limit]

    def all_scans(self) -> list[HistoryRecord]:
        return self._all()

    def favorites(self) -> list[HistoryRecord]:
        return [r for r in self._all() if r.is_favorite]

    def search(self, query: str) -> list[HistoryRecord]:
        """Case-insensitive search on product name, brand and barcode."""
        return [r for r in self._all() if r.matches(query)]

    def toggle_favorite(self, record_id: str) -> Optional[HistoryRecord]:
        """Flip the favorite flag. Returns None for unknown ids."""
        record = self._load(record_id)
        if record is None:
            return None
        updated = record.model_copy(update={"is_favorite": not record.is_favorite})
        self._save(updated)
        return updated

    def update_notes(self, record_id: str, notes: Optional[str]) -> Optional[HistoryRecord]:
        record = self._load(record_id)
        if record is None:
            return None
        updated = record.model_copy(update={"user_notes": notes})
        self._save(updated)
        return updated

    def delete_scan(self, record_id: str) -> bool:
        return self.store.delete(self._make_key(record_id))

    def delete_all(self) -> int:
        """Delete every record.

        Returns:
            Number of records removed
        """
        removed = 0
        for key, _, _ in self.store.scan_all(f"{self.KEY_PREFIX}:"):
            if self.store.delete(key):
                removed += 1
        logger.info("History cleared", count=removed)
        return removed

    def delete_old_scans(self, older_than_days: float) -> int:
        """Delete non-favorite records older than the threshold.

        Returns:
            Number of records removed
        """
        cutoff = self._clock.now() - older_than_days * SECONDS_PER_DAY
        removed = 0
        for record in self._all():
            if record.scanned_at < cutoff and not record.is_favorite:
                if self.delete_scan(record.id):
                    removed += 1
        if removed:
            logger.info("Removed old scans", count=removed)
        return removed

    def stats(self) -> HistoryStats:
        records = self._all()
        return HistoryStats(
            total_scans=len(records),
            unique_products=len({r.barcode for r in records}),
            favorites=sum(1 for r in records if r.is_favorite),
        )
