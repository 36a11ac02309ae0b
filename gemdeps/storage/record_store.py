"""File-per-version storage of dependency records under ``<output_dir>/<gem>/<version>.json``."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from loguru import logger

from gemdeps.storage.schemas import DependencyRecord, PackageIdentity


class RecordStore:
    """Read and write persisted dependency records.

    Writes go to a temporary file in the target directory and are renamed into
    place, so readers never observe a half-written record.
    """

    def __init__(self, output_dir: str | Path, *, dry_run: bool = False) -> None:
        self.output_dir = Path(output_dir)
        self.dry_run = dry_run

    def path_for(self, identity: PackageIdentity) -> Path:
        return self.output_dir / identity.name / f"{identity.version}.json"

    def exists(self, identity: PackageIdentity) -> bool:
        return self.path_for(identity).exists()

    def write(self, record: DependencyRecord) -> Optional[Path]:
        """Persist ``record``, replacing any previous file for the same version.

        Returns:
            The written path, or None in dry-run mode.
        """
        target = self.path_for(record.package)
        if self.dry_run:
            logger.info("DRY RUN: Would write to {}", target)
            return None

        target.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(record.to_json_dict(), indent=2) + "\n"

        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(data)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug("Wrote {} bytes to {}", len(data.encode("utf-8")), target)
        return target

    def read(self, identity: PackageIdentity) -> Optional[DependencyRecord]:
        """Load a persisted record, or None if none exists for ``identity``."""
        path = self.path_for(identity)
        if not path.exists():
            return None
        payload = json.loads(path.read_text(encoding="utf-8"))
        return DependencyRecord.from_json_dict(payload)
