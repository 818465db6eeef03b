"""Key-value store adapters and the scan history log."""

from productscan.infrastructure.persistence.in_memory_store import InMemoryKeyValueStore
from productscan.infrastructure.persistence.scan_history import ScanHistoryLog

__all__ = ["InMemoryKeyValueStore", "ScanHistoryLog"]
