"""Data models for persisted gem dependency records."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

DEFAULT_GENERATOR = "rubygem-systemdependencies"


class Confidence(str, Enum):
    """Coarse indicator of how many dependencies were detected."""

    UNKNOWN = "unknown"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def confidence_level(count: int) -> Confidence:
    """Map a dependency count to a confidence level.

    0 -> unknown, 1-2 -> low, 3-5 -> medium, 6+ -> high.
    """
    if count <= 0:
        return Confidence.UNKNOWN
    if count <= 2:
        return Confidence.LOW
    if count <= 5:
        return Confidence.MEDIUM
    return Confidence.HIGH


class PackageIdentity(BaseModel):
    """A gem name and version."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


class DependencyRecord(BaseModel):
    """System dependencies detected for one gem version.

    ``dependencies`` is always stored deduplicated and sorted, and
    ``confidence`` is derived from its length rather than set directly.
    """

    model_config = ConfigDict(frozen=True)

    package: PackageIdentity
    dependencies: Tuple[str, ...] = ()
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    generator: str = DEFAULT_GENERATOR
    notes: Optional[str] = None

    @field_validator("dependencies", mode="before")
    @classmethod
    def _sort_unique(cls, value: Iterable[str]) -> Tuple[str, ...]:
        return tuple(sorted(set(value)))

    @field_validator("notes")
    @classmethod
    def _blank_notes_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def confidence(self) -> Confidence:
        return confidence_level(len(self.dependencies))

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize to the on-disk JSON layout."""
        payload: Dict[str, Any] = {
            "gem": self.package.name,
            "version": self.package.version,
            "dependencies": list(self.dependencies),
            "generated_at": self.generated_at.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "generator": self.generator,
        }
        if self.notes:
            payload["notes"] = self.notes
        payload["confidence"] = self.confidence.value
        return payload

    @classmethod
    def from_json_dict(cls, payload: Dict[str, Any]) -> DependencyRecord:
        """Rebuild a record from its on-disk JSON layout (``confidence`` is recomputed)."""
        return cls(
            package=PackageIdentity(name=payload["gem"], version=payload["version"]),
            dependencies=payload.get("dependencies") or (),
            generated_at=datetime.fromisoformat(payload["generated_at"].replace("Z", "+00:00")),
            generator=payload.get("generator", DEFAULT_GENERATOR),
            notes=payload.get("notes"),
        )
