"""Barcode resolution: pipeline, outcomes and the scan event channel."""

from productscan.application.resolution.outcome import (
    ErrorKind,
    ProductSource,
    ResolutionOutcome,
    ResolutionState,
    ResolutionStatus,
    classify_error,
)
from productscan.application.resolution.pipeline import ResolutionPipeline, ResolutionRequest
from productscan.application.resolution.scan_channel import ScanChannel, ScanEvent

__all__ = [
    "ErrorKind",
    "ProductSource",
    "ResolutionOutcome",
    "ResolutionPipeline",
    "ResolutionRequest",
    "ResolutionState",
    "ResolutionStatus",
    "ScanChannel",
    "ScanEvent",
    "classify_error",
]
