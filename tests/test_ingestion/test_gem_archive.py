from __future__ import annotations

import io
import tarfile
from pathlib import Path

import pytest

from gemdeps.ingestion.errors import ExtractionError
from gemdeps.ingestion.gem_archive import RawArtifact, read_gem_archive

README = "# demo\n\nThis gem requires libxml2.\n"
EXTCONF = "require 'mkmf'\nhave_library('pq')\ncreate_makefile('demo/demo')\n"


def test_reads_modern_gem_container(make_gem) -> None:
    gem = make_gem(
        "demo-1.0",
        {
            "lib/demo.rb": "module Demo; end\n",
            "README.md": README,
            "ext/demo/extconf.rb": EXTCONF,
        },
    )

    artifact = read_gem_archive(gem)

    assert artifact.documentation_text == README
    assert artifact.build_config_text == EXTCONF


def test_reads_legacy_gzipped_container(make_gem, log_messages) -> None:
    gem = make_gem("old-0.1", {"README": README, "ext/old/extconf.rb": EXTCONF}, legacy=True)

    artifact = read_gem_archive(gem)

    assert artifact.documentation_text == README
    assert artifact.build_config_text == EXTCONF
    assert any("layered archive walk" in m for m in log_messages)


def test_missing_files_are_absent_not_errors(make_gem) -> None:
    gem = make_gem("pure-2.0", {"README.rdoc": "A pure Ruby gem.\n", "lib/pure.rb": ""})

    artifact = read_gem_archive(gem)

    assert artifact.documentation_text == "A pure Ruby gem.\n"
    assert artifact.build_config_text is None


def test_first_readme_wins(make_gem) -> None:
    gem = make_gem("multi-1.0", {"README.md": "first", "docs/README.ja.md": "second"})

    assert read_gem_archive(gem).documentation_text == "first"


def test_extconf_must_live_under_ext(make_gem) -> None:
    gem = make_gem("odd-1.0", {"extconf.rb": EXTCONF, "ext/odd/extconf.rb": "have_library('z')"})

    assert read_gem_archive(gem).build_config_text == "have_library('z')"


def test_container_without_data_archive_is_walked(tmp_path: Path) -> None:
    gem = tmp_path / "flat.gem"
    data = README.encode()
    with tarfile.open(gem, mode="w") as tar:
        info = tarfile.TarInfo("README.md")
        info.size = len(data)
        tar.addfile(info, io.BytesIO(data))

    artifact = read_gem_archive(gem)

    assert artifact.documentation_text == README


def _add_bytes(tar: tarfile.TarFile, name: str, data: bytes) -> None:
    info = tarfile.TarInfo(name)
    info.size = len(data)
    tar.addfile(info, io.BytesIO(data))


def test_data_archive_without_targets_falls_back_to_layered_walk(
    tmp_path: Path, log_messages
) -> None:
    data_tar = io.BytesIO()
    with tarfile.open(fileobj=data_tar, mode="w:gz") as tar:
        _add_bytes(tar, "lib/vendored.rb", b"module Vendored; end\n")
    sources = io.BytesIO()
    with tarfile.open(fileobj=sources, mode="w:gz") as tar:
        _add_bytes(tar, "README.md", README.encode())
        _add_bytes(tar, "ext/vendored/extconf.rb", EXTCONF.encode())

    gem = tmp_path / "vendored-1.0.gem"
    with tarfile.open(gem, mode="w") as tar:
        _add_bytes(tar, "data.tar.gz", data_tar.getvalue())
        _add_bytes(tar, "sources.tgz", sources.getvalue())

    artifact = read_gem_archive(gem)

    assert artifact.documentation_text == README
    assert artifact.build_config_text == EXTCONF
    assert any("layered archive walk" in m for m in log_messages)


def test_unreadable_archive_raises_extraction_error(tmp_path: Path) -> None:
    gem = tmp_path / "broken.gem"
    gem.write_bytes(b"this is not a tar archive")

    with pytest.raises(ExtractionError):
        read_gem_archive(gem)


def test_raw_artifact_is_empty() -> None:
    assert RawArtifact().is_empty
    assert not RawArtifact(build_config_text="x").is_empty
