"""Map dependency hints to system package categories.

Hints extracted from README and extconf.rb files are resolved against a rule
set with three layers, evaluated in strict priority order:

1. ``mappings``: exact hint -> category lookup
2. ``patterns``: ordered case-insensitive regexes, first match wins
3. fallback: any hint containing ``lib`` is kept as its own category

Rules are loaded once from YAML; a missing or malformed rules file falls back
to the built-in defaults below.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from gemdeps.utils.config import MatcherConfig


class RulesParseError(ValueError):
    """The rules file exists but could not be parsed into a rule set."""


class PatternRule(BaseModel):
    """Regex rule mapping matching hints to a category."""

    model_config = ConfigDict(frozen=True)

    pattern: str
    category: str

    @field_validator("pattern")
    @classmethod
    def _validate_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"Invalid regex pattern '{value}': {exc}") from exc
        return value


class MatchRules(BaseModel):
    """Immutable matching rule set."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    mappings: Dict[str, str] = Field(default_factory=dict)
    patterns: Tuple[PatternRule, ...] = ()

    @classmethod
    def default(cls) -> MatchRules:
        """Built-in rules covering the most common native dependencies."""
        return cls(
            mappings={
                # Databases
                "postgresql": "postgresql",
                "libpq": "postgresql",
                "mysql": "mysql",
                "libmysqlclient": "mysql",
                "sqlite3": "sqlite3",
                "sqlite": "sqlite3",
                # XML/HTML processing
                "libxml2": "libxml2",
                "libxslt": "libxslt",
                # Compression
                "zlib": "zlib",
                "libz": "zlib",
                # SSL/Crypto
                "openssl": "openssl",
                "libssl": "openssl",
                "libcrypto": "openssl",
                # Image processing
                "imagemagick": "imagemagick",
                "libmagick": "imagemagick",
                "libmagickwand": "imagemagick",
                # Other common libraries
                "curl": "curl",
                "libcurl": "curl",
                "libffi": "libffi",
                "redis": "redis",
                "mongodb": "mongodb",
                "ffmpeg": "ffmpeg",
            },
            patterns=(
                PatternRule(pattern=r"\bpostgres", category="postgresql"),
                PatternRule(pattern=r"\bmysql", category="mysql"),
                PatternRule(pattern=r"\bsqlite", category="sqlite3"),
                PatternRule(pattern=r"\bxml", category="libxml2"),
                PatternRule(pattern=r"\bxslt", category="libxslt"),
                PatternRule(pattern=r"\bssl|\bopenssl", category="openssl"),
                PatternRule(pattern=r"\bmagick", category="imagemagick"),
                PatternRule(pattern=r"\bcurl", category="curl"),
            ),
        )

    @classmethod
    def from_yaml(cls, rules_file: Path) -> MatchRules:
        """Load rules from YAML.

        Raises:
            FileNotFoundError: If the file does not exist
            RulesParseError: If the file is not a valid rule set
        """
        if not rules_file.exists():
            raise FileNotFoundError(f"Rules file not found: {rules_file}")

        try:
            loaded = yaml.safe_load(rules_file.read_text(encoding="utf-8")) or {}
        except (OSError, UnicodeDecodeError) as exc:
            raise RulesParseError(f"Cannot read {rules_file}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise RulesParseError(f"Invalid YAML in {rules_file}: {exc}") from exc

        if not isinstance(loaded, dict):
            raise RulesParseError(f"Rules must be a mapping/dict: {rules_file}")

        mappings = loaded.get("mappings") or {}
        patterns = loaded.get("patterns") or []
        if not isinstance(mappings, dict):
            raise RulesParseError(f"'mappings' must be a mapping/dict: {rules_file}")
        if not isinstance(patterns, list):
            raise RulesParseError(f"'patterns' must be a list: {rules_file}")

        try:
            return cls(mappings=mappings, patterns=tuple(patterns))
        except ValidationError as exc:
            raise RulesParseError(f"Invalid rules in {rules_file}: {exc}") from exc


class DependencyMatcher:
    """Resolve dependency hints to the categories used in ``data/system_packages``."""

    def __init__(
        self,
        config: MatcherConfig | None = None,
        rules_path: str | Path | None = None,
        rules: MatchRules | None = None,
    ) -> None:
        self.config = config or MatcherConfig()
        self.rules = rules or self._load_rules(Path(rules_path or self.config.rules_file))
        self._compiled: List[Tuple[re.Pattern[str], str]] = [
            (re.compile(rule.pattern, re.IGNORECASE), rule.category) for rule in self.rules.patterns
        ]

        logger.debug(
            "Initialized DependencyMatcher with {} mappings and {} patterns",
            len(self.rules.mappings),
            len(self._compiled),
        )

    @staticmethod
    def _load_rules(rules_file: Path) -> MatchRules:
        try:
            return MatchRules.from_yaml(rules_file)
        except FileNotFoundError:
            logger.warning("Rules file not found: {}, using built-in rules", rules_file)
        except RulesParseError as exc:
            logger.warning("Error loading rules file: {}, using built-in rules", exc)
        return MatchRules.default()

    def match(self, hints: Iterable[str]) -> Set[str]:
        """Match a collection of hints to a deduplicated set of categories."""
        hints = list(hints)
        if not hints:
            return set()

        logger.debug("Matching {} hints to system packages...", len(hints))
        matched = {category for category in map(self.match_hint, hints) if category}
        logger.debug(
            "Matched to {} system packages: {}", len(matched), ", ".join(sorted(matched))
        )
        return matched

    def match_hint(self, hint: Optional[str]) -> Optional[str]:
        """Resolve a single hint, or return None when no rule applies."""
        if not hint:
            return None

        if hint in self.rules.mappings:
            return self.rules.mappings[hint]

        for regex, category in self._compiled:
            if regex.search(hint):
                return category

        # Unmapped library names may still match a system_packages directory.
        if "lib" in hint:
            logger.debug("Potential unmapped dependency: {}", hint)
            return hint

        return None
