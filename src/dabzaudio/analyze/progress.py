"""Progress reporting hook for long-running analysis."""

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


def report(progress: Optional[ProgressCallback], message: str) -> None:
    """
    Send a status message to the progress callback, if any.

    The callback is an observer only: its failures are logged and never
    reach the analysis result.
    """
    logger.debug(message)
    if progress is None:
        return
    try:
        progress(message)
    except Exception as e:
        logger.warning(f"Progress callback failed on {message!r}: {e}")
