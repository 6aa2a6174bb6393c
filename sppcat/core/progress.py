import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# Called with a stage description and a completion percentage
ProgressCallback = Callable[[str, int], None]


def report_progress(progress: Optional[ProgressCallback], message: str, percent: int) -> None:
    logger.debug(f"{message} ({percent}%)")
    if progress is not None:
        progress(message, percent)
