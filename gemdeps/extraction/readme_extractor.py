"""Regex-based extraction of system dependency hints from README prose.

The extractor is deliberately conservative: it only keeps hints that look
like library or package names, and drops common documentation and Ruby
ecosystem words. Hints are validated later by the DependencyMatcher.
"""

import re
from typing import Dict, FrozenSet, List, Optional, Set

from loguru import logger

# Order matters only for readability; every pattern runs and results are unioned.
DEPENDENCY_PATTERNS: List[re.Pattern[str]] = [
    # "requires libxml2", "needs libpq", "depends on openssl"
    re.compile(r"(?:requires?|needs?|depends?\s+on)\s+([a-z0-9_-]+(?:lib)?[a-z0-9_-]*)", re.IGNORECASE),
    # apt-get install libxml2-dev, brew install imagemagick
    re.compile(r"(?:apt-get|apt|yum|dnf|brew|apk)\s+install\s+([a-z0-9_-]+)", re.IGNORECASE),
    # libxml2-dev, postgresql-devel
    re.compile(r"\b([a-z0-9_-]+(?:-dev|-devel))\b"),
    # libxml2, libxslt, libpq, libcurl
    re.compile(r"\b(lib[a-z0-9_-]+)\b"),
    # "System dependencies:" header followed by a package name
    re.compile(
        r"(?:system|native|external)\s+(?:dependencies|requirements|libraries)[:\s]*\n.*?([a-z0-9_-]+)",
        re.IGNORECASE | re.DOTALL,
    ),
    # "Install Redis", "install ImageMagick"
    re.compile(r"[Ii]nstall\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)"),
    # Well-known products mentioned by name
    re.compile(
        r"\b(PostgreSQL|MySQL|Redis|SQLite|MongoDB|ImageMagick|FFmpeg|libffi|OpenSSL)\b",
        re.IGNORECASE,
    ),
]

LIBRARY_ALIASES: Dict[str, str] = {
    "postgresql": "postgresql",
    "postgres": "postgresql",
    "libpq": "postgresql",
    "mysql": "mysql",
    "libmysqlclient": "mysql",
    "sqlite": "sqlite3",
    "sqlite3": "sqlite3",
    "libxml2": "libxml2",
    "libxslt": "libxslt",
    "libxslt1": "libxslt",
    "imagemagick": "imagemagick",
    "libmagick": "imagemagick",
    "redis": "redis",
    "mongodb": "mongodb",
    "libffi": "libffi",
    "openssl": "openssl",
    "libssl": "openssl",
    "zlib": "zlib",
    "libz": "zlib",
    "curl": "curl",
    "libcurl": "curl",
    "ffmpeg": "ffmpeg",
}

FALSE_POSITIVES: FrozenSet[str] = frozenset(
    """
    the and for with from install require need
    ruby gem rails bundler rake rspec test
    development production staging
    https http git github gitlab bitbucket
    readme license changelog contributing
    version latest stable master main
    example demo sample tutorial guide
    documentation docs api reference
    library libraries
    """.split()
)

_VALID_HINT_RE = re.compile(r"^[a-z0-9_-]{3,}$")
_DEV_SUFFIX_RE = re.compile(r"-dev(?:el)?$")


def normalize_hint(hint: Optional[str]) -> Optional[str]:
    """Normalize a raw README mention to a dependency hint.

    Suffix stripping happens before the alias lookup, and an alias wins
    outright. The false-positive list is only consulted for un-aliased names.

    Returns:
        The normalized hint, or None if the mention should be discarded.
    """
    if not hint:
        return None

    cleaned = hint.strip().lower()
    # Repeat so "foo-devel-dev" ends as "foo", keeping normalization idempotent.
    while _DEV_SUFFIX_RE.search(cleaned):
        cleaned = _DEV_SUFFIX_RE.sub("", cleaned)

    if cleaned in LIBRARY_ALIASES:
        return LIBRARY_ALIASES[cleaned]

    if not _VALID_HINT_RE.match(cleaned):
        return None

    if cleaned in FALSE_POSITIVES:
        return None

    return cleaned


class ReadmeHintExtractor:
    """Extract dependency hints from free-text documentation (README files)."""

    def extract(self, content: Optional[str]) -> Set[str]:
        """Return the set of normalized hints mentioned in ``content``.

        Never raises: any internal error is logged and yields an empty set.
        """
        if not content:
            return set()

        try:
            logger.debug("Parsing README ({} bytes)...", len(content.encode("utf-8", errors="replace")))
            hints: Set[str] = set()
            for pattern in DEPENDENCY_PATTERNS:
                for match in pattern.finditer(content):
                    normalized = normalize_hint(match.group(1))
                    if normalized:
                        hints.add(normalized)
        except Exception as e:
            logger.warning(f"Error parsing README: {e}")
            return set()

        logger.debug("Found {} dependency hints in README: {}", len(hints), ", ".join(sorted(hints)))
        return hints
