"""Build dependency records from matched categories."""

from typing import Iterable, Optional

from loguru import logger

from gemdeps.storage.schemas import DEFAULT_GENERATOR, DependencyRecord, PackageIdentity


class RecordGenerator:
    """Assemble the final DependencyRecord for a gem version.

    Inputs are assumed to be already filtered by the extractors and matcher;
    this stage only shapes the record and derives its confidence.
    """

    def __init__(self, generator: str = DEFAULT_GENERATOR) -> None:
        self.generator = generator

    def generate(
        self,
        identity: PackageIdentity,
        dependencies: Iterable[str],
        notes: Optional[str] = None,
    ) -> DependencyRecord:
        record = DependencyRecord(
            package=identity,
            dependencies=dependencies,
            generator=self.generator,
            notes=notes,
        )
        logger.debug(
            "Generated record for {}: {} dependencies ({})",
            identity,
            len(record.dependencies),
            record.confidence.value,
        )
        return record
