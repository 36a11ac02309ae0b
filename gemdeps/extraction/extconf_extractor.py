"""Extract library dependencies from extconf.rb build scripts.

Ruby C extensions configure compilation through mkmf calls in extconf.rb.
The calls recognised here are:

- ``have_library(lib, func=nil)`` and ``find_library(lib, func, *paths)``
- ``pkg_config(pkg)`` and ``dir_config(target)``
- ``with_ldflags("-l<lib>")`` and ``$LIBS << "-l<lib>"``
- ``have_header(header)`` and ``find_header(header)``
"""

import re
from typing import Dict, List, Optional, Set

from loguru import logger

LIBRARY_PATTERNS: List[re.Pattern[str]] = [
    re.compile(r"""have_library\s*\(\s*['"]([a-z0-9_-]+)['"]""", re.IGNORECASE),
    re.compile(r"""find_library\s*\(\s*['"]([a-z0-9_-]+)['"]""", re.IGNORECASE),
    re.compile(r"""pkg_config\s*\(\s*['"]([a-z0-9_-]+)['"]""", re.IGNORECASE),
    re.compile(r"""dir_config\s*\(\s*['"]([a-z0-9_-]+)['"]""", re.IGNORECASE),
    re.compile(r"""with_ldflags\s*\(.*-l\s*([a-z0-9_-]+)""", re.IGNORECASE),
    re.compile(r"""\$(?:LIBS|libs)\s*<<?\s*['"](?:-l\s*)?([a-z0-9_-]+)['"]""", re.IGNORECASE),
]

HEADER_PATTERNS: List[re.Pattern[str]] = [
    re.compile(r"""have_header\s*\(\s*['"]([a-z0-9_/-]+\.h)['"]""", re.IGNORECASE),
    re.compile(r"""find_header\s*\(\s*['"]([a-z0-9_/-]+\.h)['"]""", re.IGNORECASE),
]

HEADER_TO_LIBRARY: Dict[str, str] = {
    "postgresql/libpq-fe.h": "postgresql",
    "libpq-fe.h": "postgresql",
    "mysql.h": "mysql",
    "mysql/mysql.h": "mysql",
    "sqlite3.h": "sqlite3",
    "libxml/parser.h": "libxml2",
    "libxslt/xslt.h": "libxslt",
    "curl/curl.h": "curl",
    "openssl/ssl.h": "openssl",
    "zlib.h": "zlib",
    "ffi.h": "libffi",
    "magic.h": "libmagic",
    "MagickWand.h": "imagemagick",
    "wand/MagickWand.h": "imagemagick",
}

# Keys are lowercase: library names are lowercased before lookup.
LIBRARY_ALIASES: Dict[str, str] = {
    "pq": "postgresql",
    "mysql": "mysql",
    "mysqlclient": "mysql",
    "ssl": "openssl",
    "crypto": "openssl",
    "z": "zlib",
    "xml2": "libxml2",
    "xslt": "libxslt",
    "curl": "curl",
    "ffi": "libffi",
    "magic": "libmagic",
    "magickwand": "imagemagick",
    "magickcore": "imagemagick",
}

_VALID_LIBRARY_RE = re.compile(r"^[a-z0-9_-]{2,}$")
_HEADER_DIR_RE = re.compile(r"^([a-z0-9_-]+)/")


def normalize_library_name(lib_name: Optional[str]) -> Optional[str]:
    """Map a raw mkmf library argument to a dependency name.

    ``"pq"`` and ``"libpq"`` both become ``"postgresql"``; unknown names are
    returned with a ``lib`` prefix (``"yaml"`` -> ``"libyaml"``).
    """
    if not lib_name:
        return None

    cleaned = lib_name.strip().lower()
    if cleaned.startswith("lib"):
        cleaned = cleaned[3:]

    if cleaned in LIBRARY_ALIASES:
        return LIBRARY_ALIASES[cleaned]

    return f"lib{cleaned}" if _VALID_LIBRARY_RE.match(cleaned) else None


def header_to_library(header: str) -> Optional[str]:
    """Map a header file to the library that ships it, if known."""
    if header in HEADER_TO_LIBRARY:
        return HEADER_TO_LIBRARY[header]

    # e.g. "libgit2/common.h" -> "libgit2"
    match = _HEADER_DIR_RE.match(header)
    if match and match.group(1).startswith("lib"):
        return match.group(1)

    return None


class ExtconfHintExtractor:
    """Extract dependency hints from structured extconf.rb build configuration."""

    def extract(self, content: Optional[str]) -> Set[str]:
        """Return the set of library dependencies referenced by ``content``.

        Never raises: any internal error is logged and yields an empty set.
        """
        if not content:
            return set()

        try:
            logger.debug("Parsing extconf.rb ({} bytes)...", len(content.encode("utf-8", errors="replace")))
            dependencies: Set[str] = set()

            for pattern in LIBRARY_PATTERNS:
                for match in pattern.finditer(content):
                    normalized = normalize_library_name(match.group(1))
                    if normalized:
                        dependencies.add(normalized)

            for pattern in HEADER_PATTERNS:
                for match in pattern.finditer(content):
                    lib_name = header_to_library(match.group(1))
                    if lib_name:
                        dependencies.add(lib_name)
        except Exception as e:
            logger.warning(f"Error parsing extconf.rb: {e}")
            return set()

        logger.debug(
            "Found {} dependencies in extconf.rb: {}",
            len(dependencies),
            ", ".join(sorted(dependencies)),
        )
        return dependencies
