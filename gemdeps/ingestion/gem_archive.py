"""Read README and extconf.rb text out of a downloaded ``.gem`` file.

A modern gem is a plain (uncompressed) tar holding ``metadata.gz``,
``data.tar.gz`` and ``checksums.yaml.gz``; the package files live inside
``data.tar.gz``. Very old gems wrapped the outer container in gzip as well.

Two readers are tried in order:

1. ``_read_container``: treats the file as a modern gem container.
2. ``_read_layers``: streams the outer archive with compression auto-detection
   and walks every nested tarball it finds.

Each reader returns ``None`` on a structural failure, so the caller can move to
the next one without exception-driven control flow.
"""

from __future__ import annotations

import io
import re
import tarfile
import zlib
from pathlib import Path
from typing import IO, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict

from gemdeps.ingestion.errors import ExtractionError

README_RE = re.compile(r"README", re.IGNORECASE)
EXTCONF_RE = re.compile(r"ext/.*/extconf\.rb$")
DATA_MEMBER = "data.tar.gz"
NESTED_SUFFIXES = (".tar.gz", ".tgz")

_ARCHIVE_ERRORS = (tarfile.TarError, OSError, EOFError, zlib.error)


class RawArtifact(BaseModel):
    """Documentation and build-configuration text found in one gem version."""

    model_config = ConfigDict(frozen=True)

    documentation_text: Optional[str] = None
    build_config_text: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.documentation_text is None and self.build_config_text is None


class _Collector:
    """Keeps the first README and extconf.rb seen while walking archive members."""

    def __init__(self) -> None:
        self.readme: Optional[str] = None
        self.extconf: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.readme is not None and self.extconf is not None

    def offer(self, name: str, handle: Optional[IO[bytes]]) -> None:
        if handle is None:
            return
        if self.readme is None and README_RE.search(name):
            self.readme = _decode(handle.read())
            logger.debug("Found README: {}", name)
        elif self.extconf is None and EXTCONF_RE.search(name):
            self.extconf = _decode(handle.read())
            logger.debug("Found extconf.rb: {}", name)

    def artifact(self) -> RawArtifact:
        return RawArtifact(documentation_text=self.readme, build_config_text=self.extconf)


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _scan_data_tar(fileobj: IO[bytes], collector: _Collector) -> None:
    with tarfile.open(fileobj=fileobj, mode="r:*") as inner:
        for member in inner:
            if not member.isfile():
                continue
            collector.offer(member.name, inner.extractfile(member))
            if collector.complete:
                break


def _read_container(gem_path: Path) -> Optional[RawArtifact]:
    """Primary reader: plain-tar gem container with a ``data.tar.gz`` member."""
    collector = _Collector()
    try:
        with tarfile.open(gem_path, mode="r:") as outer:
            try:
                member = outer.getmember(DATA_MEMBER)
            except KeyError:
                logger.debug("{} has no {} member", gem_path.name, DATA_MEMBER)
                return None
            handle = outer.extractfile(member)
            if handle is None:
                return None
            _scan_data_tar(handle, collector)
    except _ARCHIVE_ERRORS as exc:
        logger.debug("Gem container read failed for {}: {}", gem_path.name, exc)
        return None

    artifact = collector.artifact()
    if artifact.is_empty:
        # Nothing usable found; let the layered walk have a go.
        return None
    return artifact


def _read_layers(gem_path: Path) -> Optional[RawArtifact]:
    """Secondary reader: stream the outer archive and descend into nested tarballs."""
    collector = _Collector()
    try:
        with tarfile.open(gem_path, mode="r|*") as outer:
            for member in outer:
                if not member.isfile():
                    continue
                handle = outer.extractfile(member)
                if handle is None:
                    continue
                if member.name == DATA_MEMBER or member.name.endswith(NESTED_SUFFIXES):
                    # Stream mode only allows reading the current member.
                    _scan_data_tar(io.BytesIO(handle.read()), collector)
                else:
                    collector.offer(member.name, handle)
                if collector.complete:
                    break
    except _ARCHIVE_ERRORS as exc:
        logger.debug("Layered archive walk failed for {}: {}", gem_path.name, exc)
        return None
    return collector.artifact()


def read_gem_archive(gem_path: str | Path) -> RawArtifact:
    """Extract README and extconf.rb text from a ``.gem`` file.

    Raises:
        ExtractionError: If neither reader could make sense of the file.
    """
    gem_path = Path(gem_path)

    artifact = _read_container(gem_path)
    if artifact is not None:
        return artifact

    logger.debug("Falling back to layered archive walk for {}", gem_path.name)
    artifact = _read_layers(gem_path)
    if artifact is not None:
        return artifact

    raise ExtractionError(f"Unable to read gem archive: {gem_path}")
