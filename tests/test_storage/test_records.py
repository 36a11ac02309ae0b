"""Tests for dependency record generation and persistence."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from gemdeps.storage import (
    Confidence,
    DependencyRecord,
    PackageIdentity,
    RecordGenerator,
    RecordStore,
    confidence_level,
)

PG = PackageIdentity(name="pg", version="1.5.4")


@pytest.mark.parametrize(
    ("count", "expected"),
    [
        (0, Confidence.UNKNOWN),
        (1, Confidence.LOW),
        (2, Confidence.LOW),
        (3, Confidence.MEDIUM),
        (5, Confidence.MEDIUM),
        (6, Confidence.HIGH),
        (40, Confidence.HIGH),
    ],
)
def test_confidence_table(count, expected) -> None:
    assert confidence_level(count) == expected
    record = RecordGenerator().generate(PG, [f"dep{i}" for i in range(count)])
    assert record.confidence == expected


def test_dependencies_are_sorted_and_unique() -> None:
    record = RecordGenerator().generate(PG, {"zlib", "Openssl", "libxml2", "zlib"} | {"openssl"})

    assert record.dependencies == ("Openssl", "libxml2", "openssl", "zlib")
    assert record.confidence == Confidence.MEDIUM


def test_confidence_cannot_be_set_directly() -> None:
    record = DependencyRecord(package=PG, dependencies=["zlib"], confidence="high")  # type: ignore[call-arg]

    assert record.confidence == Confidence.LOW


def test_generation_is_idempotent_apart_from_timestamp() -> None:
    generator = RecordGenerator()
    deps = {"postgresql", "zlib"}
    first = generator.generate(PG, deps, notes="Dependencies detected from extconf.rb")
    second = generator.generate(PG, set(deps), notes="Dependencies detected from extconf.rb")

    a, b = first.to_json_dict(), second.to_json_dict()
    a.pop("generated_at")
    b.pop("generated_at")
    assert a == b


def test_json_layout() -> None:
    record = DependencyRecord(
        package=PG,
        dependencies=["postgresql"],
        generated_at=datetime(2024, 5, 1, 12, 30, 0, tzinfo=UTC),
        notes="Dependencies detected from extconf.rb",
    )

    assert record.to_json_dict() == {
        "gem": "pg",
        "version": "1.5.4",
        "dependencies": ["postgresql"],
        "generated_at": "2024-05-01T12:30:00Z",
        "generator": "rubygem-systemdependencies",
        "notes": "Dependencies detected from extconf.rb",
        "confidence": "low",
    }


def test_empty_notes_are_omitted() -> None:
    payload = RecordGenerator().generate(PG, [], notes="").to_json_dict()

    assert "notes" not in payload
    assert payload["dependencies"] == []
    assert payload["confidence"] == "unknown"


def test_store_write_and_read_back(tmp_path: Path) -> None:
    store = RecordStore(tmp_path / "rubygems")
    record = RecordGenerator().generate(PG, ["zlib", "postgresql"], notes="n")

    path = store.write(record)

    assert path == tmp_path / "rubygems" / "pg" / "1.5.4.json"
    assert store.exists(PG)
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["dependencies"] == ["postgresql", "zlib"]

    loaded = store.read(PG)
    assert loaded is not None
    assert loaded.dependencies == record.dependencies
    assert loaded.notes == "n"
    assert loaded.confidence == Confidence.LOW


def test_store_overwrite_replaces_file(tmp_path: Path) -> None:
    store = RecordStore(tmp_path)
    generator = RecordGenerator()
    store.write(generator.generate(PG, ["zlib"]))
    store.write(generator.generate(PG, ["zlib", "postgresql", "openssl"]))

    assert store.read(PG).confidence == Confidence.MEDIUM
    assert sorted(p.name for p in (tmp_path / "pg").iterdir()) == ["1.5.4.json"]


def test_store_dry_run_writes_nothing(tmp_path: Path, log_messages) -> None:
    store = RecordStore(tmp_path, dry_run=True)

    assert store.write(RecordGenerator().generate(PG, ["zlib"])) is None
    assert not store.exists(PG)
    assert any("DRY RUN" in m for m in log_messages)


def test_store_read_missing(tmp_path: Path) -> None:
    assert RecordStore(tmp_path).read(PG) is None
