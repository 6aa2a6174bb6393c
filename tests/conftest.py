import shutil
from pathlib import Path

import pytest

from sppcat.core.catalog import Catalog
from tests.bundles import SAMPLE_BUNDLE, write_bundle


@pytest.fixture
def sample_bundle(tmp_path) -> Path:
    """A writable copy of the bundle in tests/data"""
    root = tmp_path / SAMPLE_BUNDLE.name
    shutil.copytree(SAMPLE_BUNDLE, root)
    return root


@pytest.fixture
def bundle_writer(tmp_path):
    """Write bundles into their own directories under tmp_path, named after their version"""

    def _write(version: str, *args, **kwargs) -> Path:
        root = tmp_path / f"spp-{version}{kwargs.get('revision', '')}"
        return write_bundle(root, version, *args, **kwargs)

    return _write


@pytest.fixture
def catalog(db) -> Catalog:
    return Catalog.open()


@pytest.fixture
def progress_log():
    """A progress callback which remembers what it was called with"""
    calls = []

    def _progress(message: str, percent: int) -> None:
        calls.append((message, percent))

    _progress.calls = calls
    return _progress
