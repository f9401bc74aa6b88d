"""Navigation hook for code that has no access to the UI layer.

The frontend registers a callable once; the HTTP wrapper and the guards
call ``app_navigate`` to ask for a route change.
"""
from typing import Callable, Optional

from ..logging_config import get_logger

logger = get_logger(__name__)

Navigator = Callable[[str], None]

_navigator: Optional[Navigator] = None


def register_navigate(fn: Optional[Navigator]) -> None:
    global _navigator
    _navigator = fn


def app_navigate(path: str) -> None:
    if _navigator is None:
        logger.warning("No navigator registered; cannot go to %s", path)
        return
    _navigator(path)
