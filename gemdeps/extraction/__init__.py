"""Extraction package exports."""

from gemdeps.extraction.extconf_extractor import ExtconfHintExtractor
from gemdeps.extraction.readme_extractor import ReadmeHintExtractor

__all__ = [
    "ExtconfHintExtractor",
    "ReadmeHintExtractor",
]
