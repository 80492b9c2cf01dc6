"""Pytest configuration and fixtures for cabparse tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from cabparse import samples
from cabparse.samples import write_samples


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    """Point the config file at an empty temp location for every test.

    Keeps a developer's ~/.cabparse/config.toml from changing severities
    or strict mode underneath the assertions.
    """
    monkeypatch.setattr("cabparse.config.CONFIG_FILE", tmp_path / "config.toml")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_dir(temp_dir: Path) -> Path:
    """Directory holding every bundled sample, broken ones included."""
    target = temp_dir / "samples"
    write_samples(target, include_broken=True)
    return target


@pytest.fixture
def markup_text() -> str:
    """Well-formed markup: 2 parts, 4 parameters, 1 constraint."""
    return samples.MARKUP_SAMPLE


@pytest.fixture
def broken_markup_text() -> str:
    """Markup with one missing required parameter and one blank constraint."""
    return samples.BROKEN_MARKUP_SAMPLE


@pytest.fixture
def line_a_text() -> str:
    return samples.LINE_A_SAMPLE


@pytest.fixture
def line_b_text() -> str:
    return samples.LINE_B_SAMPLE


@pytest.fixture
def model_text() -> str:
    return samples.MODEL_SAMPLE


@pytest.fixture
def simple_cab_text() -> str:
    """Two part headers and four assignments, nothing else."""
    return """CAB_DOOR
width = 600
height = 720

CAB_PANEL
thickness: 18
material = oak
"""
