"""Gem download and artifact extraction."""

from gemdeps.ingestion.errors import (
    ExtractionError,
    FetchError,
    GemDepsError,
    NotFoundError,
    TransientFetchError,
)
from gemdeps.ingestion.gem_archive import RawArtifact, read_gem_archive
from gemdeps.ingestion.gem_fetcher import GemFetcher

__all__ = [
    "ExtractionError",
    "FetchError",
    "GemDepsError",
    "GemFetcher",
    "NotFoundError",
    "RawArtifact",
    "TransientFetchError",
    "read_gem_archive",
]
