"""Shared fixtures: on-the-fly .gem archives and Loguru capture."""

from __future__ import annotations

import gzip
import io
import tarfile
from pathlib import Path
from typing import Callable, Dict, List

import pytest
from loguru import logger


def _tar_bytes(files: Dict[str, bytes], *, compress: bool = False) -> bytes:
    buffer = io.BytesIO()
    mode = "w:gz" if compress else "w"
    with tarfile.open(fileobj=buffer, mode=mode) as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def build_gem_bytes(files: Dict[str, str], *, legacy: bool = False) -> bytes:
    """Build a gem: plain outer tar (or gzipped for ``legacy``) wrapping data.tar.gz."""
    data_tar = _tar_bytes({name: text.encode("utf-8") for name, text in files.items()}, compress=True)
    outer = {
        "metadata.gz": gzip.compress(b"--- !ruby/object:Gem::Specification\nname: demo\n"),
        "data.tar.gz": data_tar,
    }
    return _tar_bytes(outer, compress=legacy)


@pytest.fixture
def make_gem(tmp_path: Path) -> Callable[..., Path]:
    def _make(name: str, files: Dict[str, str], *, legacy: bool = False) -> Path:
        path = tmp_path / "gems" / f"{name}.gem"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(build_gem_bytes(files, legacy=legacy))
        return path

    return _make


@pytest.fixture
def log_messages() -> List[str]:
    """Collect Loguru messages (``LEVEL|message``) emitted during a test."""
    messages: List[str] = []
    handler_id = logger.add(
        lambda msg: messages.append(f"{msg.record['level'].name}|{msg.record['message']}"),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def gem_bytes() -> Callable[..., bytes]:
    return build_gem_bytes
