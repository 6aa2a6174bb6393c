import logging
import os
import shutil
from typing import Iterable, Optional

from sppcat.core.exceptions import NotFound
from sppcat.core.models import Component
from sppcat.core.progress import ProgressCallback, report_progress

logger = logging.getLogger(__name__)


def copy_components(
    components: Iterable[Component],
    destination: str,
    progress: Optional[ProgressCallback] = None,
) -> list[str]:
    """Copy the package files of each component into one flat destination directory.

    All sources are checked before anything is copied, so a missing file leaves the
    destination untouched. Existing files in the destination are overwritten.
    Returns the destination paths, in copy order.
    """
    components = list(components)
    sources = [(component, component.package_files()) for component in components]
    missing = [path for _, paths in sources for path in paths if not os.path.isfile(path)]
    if missing:
        raise NotFound(f"Missing package files: {', '.join(missing)}")

    os.makedirs(destination, exist_ok=True)
    copied: list[str] = []
    for index, (component, paths) in enumerate(sources, start=1):
        report_progress(progress, f"Copying {component.name}", int(index * 100 / len(sources)))
        for path in paths:
            target = os.path.join(destination, os.path.basename(path))
            if target in copied:
                # Same file shipped by another bundle; the last copy wins
                logger.debug(f"Overwriting {target} with {path}")
            shutil.copy2(path, target)
            copied.append(target)
            logger.debug(f"Copied {path} to {target}")

    unique = list(dict.fromkeys(copied))
    logger.info(f"Copied {len(unique)} files of {len(components)} components to {destination}")
    return unique
