"""Dependency record models, generation and persistence."""

from gemdeps.storage.record_generator import RecordGenerator
from gemdeps.storage.record_store import RecordStore
from gemdeps.storage.schemas import (
    Confidence,
    DependencyRecord,
    PackageIdentity,
    confidence_level,
)

__all__ = [
    "Confidence",
    "DependencyRecord",
    "PackageIdentity",
    "RecordGenerator",
    "RecordStore",
    "confidence_level",
]
