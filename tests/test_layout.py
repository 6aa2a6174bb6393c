import os

import pytest

from sppcat.collectors.layout import BundleLayout, detect_layout, resolve_layout
from sppcat.core.exceptions import InvalidLayout, NotFound
from tests.bundles import write_bundle

pytestmark = pytest.mark.unit


def test_detect_packages_layout(tmp_path):
    root = write_bundle(tmp_path / "spp", "2018.03.0")
    layout = detect_layout(root)
    assert layout == BundleLayout(
        str(root / "packages" / "bp000001.xml"), str(root / "manifest"), str(root / "packages")
    )


def test_detect_hp_layout(tmp_path):
    root = write_bundle(tmp_path / "spp", "2018.03.0", hp_layout=True)
    layout = detect_layout(root)
    assert layout.packages_dir == str(root / "hp" / "swpackages")
    assert layout.manifest_dir == str(root / "hp_manifest")
    assert layout.file == str(root / "hp" / "swpackages" / "bp000001.xml")


def test_detect_layout_canonical_path(tmp_path):
    root = write_bundle(tmp_path / "spp", "2018.03.0")
    layout = detect_layout(f"{root}{os.sep}..{os.sep}spp{os.sep}")
    assert layout.file == str(root / "packages" / "bp000001.xml")


def test_bundle_file_name_case_insensitive(tmp_path):
    root = write_bundle(tmp_path / "spp", "2018.03.0", bundle_file="BP000042.XML")
    assert detect_layout(root).file.endswith("BP000042.XML")


def test_missing_root(tmp_path):
    with pytest.raises(NotFound):
        detect_layout(tmp_path / "nowhere")


def test_unknown_layout(tmp_path):
    (tmp_path / "spp" / "swpackages").mkdir(parents=True)
    with pytest.raises(InvalidLayout):
        detect_layout(tmp_path / "spp")


def test_missing_bundle_file(tmp_path):
    root = write_bundle(tmp_path / "spp", "2018.03.0")
    os.remove(root / "packages" / "bp000001.xml")
    with pytest.raises(NotFound, match="bp\\*.xml"):
        detect_layout(root)


def test_empty_packages_layout_falls_through(tmp_path):
    root = write_bundle(tmp_path / "spp", "2018.03.0", hp_layout=True)
    (root / "packages").mkdir()
    (root / "manifest").mkdir()
    layout = detect_layout(root)
    assert layout.file == str(root / "hp" / "swpackages" / "bp000001.xml")


def test_ambiguous_bundle_file(tmp_path):
    root = write_bundle(tmp_path / "spp", "2018.03.0")
    write_bundle(root, "2018.06.0", bundle_file="bp000002.xml")
    with pytest.raises(InvalidLayout, match="found 2"):
        detect_layout(root)


def test_resolve_explicit_triple(tmp_path):
    root = write_bundle(tmp_path / "spp", "2018.03.0")
    layout = resolve_layout(
        (root / "packages" / "bp000001.xml", root / "manifest", root / "packages")
    )
    assert layout == detect_layout(root)


def test_resolve_explicit_triple_missing_directory(tmp_path):
    root = write_bundle(tmp_path / "spp", "2018.03.0")
    with pytest.raises(NotFound, match="elsewhere"):
        resolve_layout(
            (root / "packages" / "bp000001.xml", root / "elsewhere", root / "packages")
        )
