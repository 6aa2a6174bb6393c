import logging
import os
from fnmatch import fnmatch
from typing import NamedTuple, Union

from sppcat.core.constants import BUNDLE_FILE_PATTERN, BUNDLE_LAYOUTS
from sppcat.core.exceptions import InvalidLayout, NotFound

logger = logging.getLogger(__name__)


class BundleLayout(NamedTuple):
    """Where the pieces of one bundle live on disk"""

    file: str
    manifest_dir: str
    packages_dir: str


Locator = Union[str, os.PathLike, BundleLayout, tuple]


def canonical_path(path: Union[str, os.PathLike]) -> str:
    return os.path.normpath(os.path.abspath(os.fspath(path)))


def find_bundle_files(packages_dir: str) -> list[str]:
    """All bp*.xml files directly inside the packages directory, matched case-insensitively"""
    return sorted(
        os.path.join(packages_dir, entry)
        for entry in os.listdir(packages_dir)
        if fnmatch(entry.lower(), BUNDLE_FILE_PATTERN)
        and os.path.isfile(os.path.join(packages_dir, entry))
    )


def detect_layout(root: Union[str, os.PathLike]) -> BundleLayout:
    """Find the bundle file, manifest directory and packages directory under a bundle root.

    Two conventions are known: {root}/packages + {root}/manifest, as used on extracted
    ISO images, and {root}/hp/swpackages + {root}/hp_manifest. They are tried in that order,
    and a convention whose directories exist but hold no bp*.xml file is skipped.
    """
    root = canonical_path(root)
    if not os.path.isdir(root):
        raise NotFound(f"Bundle directory {root} does not exist")

    empty_packages_dirs = []
    for packages_subdir, manifest_subdir in BUNDLE_LAYOUTS:
        packages_dir = os.path.join(root, packages_subdir)
        manifest_dir = os.path.join(root, manifest_subdir)
        if not (os.path.isdir(packages_dir) and os.path.isdir(manifest_dir)):
            continue

        bundle_files = find_bundle_files(packages_dir)
        if not bundle_files:
            empty_packages_dirs.append(packages_dir)
            continue
        if len(bundle_files) > 1:
            raise InvalidLayout(
                f"Expected one {BUNDLE_FILE_PATTERN} bundle file in {packages_dir}, "
                f"found {len(bundle_files)}: {', '.join(bundle_files)}"
            )
        logger.debug(f"Detected bundle {bundle_files[0]} with manifests in {manifest_dir}")
        return BundleLayout(bundle_files[0], manifest_dir, packages_dir)

    if empty_packages_dirs:
        raise NotFound(
            f"No {BUNDLE_FILE_PATTERN} bundle file in {' or '.join(empty_packages_dirs)}"
        )
    raise InvalidLayout(
        f"{root} matches none of the known bundle layouts: "
        + ", ".join(f"{packages}/ + {manifest}/" for packages, manifest in BUNDLE_LAYOUTS)
    )


def resolve_layout(locator: Locator) -> BundleLayout:
    """Accept either a bundle root directory or an explicit (file, manifest dir, packages dir)
    triple, and return a layout whose paths are canonical and known to exist."""
    if isinstance(locator, (str, os.PathLike)):
        return detect_layout(locator)

    bundle_file, manifest_dir, packages_dir = (canonical_path(path) for path in locator)
    if not os.path.isfile(bundle_file):
        raise NotFound(f"Bundle file {bundle_file} does not exist")
    for directory in (manifest_dir, packages_dir):
        if not os.path.isdir(directory):
            raise NotFound(f"Bundle directory {directory} does not exist")
    return BundleLayout(bundle_file, manifest_dir, packages_dir)
