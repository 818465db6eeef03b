"""Scan history records."""

from productscan.domain.history.models import HistoryRecord, HistoryStats

__all__ = ["HistoryRecord", "HistoryStats"]
