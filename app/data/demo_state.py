from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class DemoModeState:
    """
    Session-scoped "backend is unreachable" flag.

    Created once per session and handed to the RequestClient. Once engaged it
    stays engaged for the rest of the session; `reset()` exists for tests and
    for starting a brand-new session.
    """

    def __init__(self, active: bool = False):
        self._active = active
        self.reason: Optional[str] = "configured" if active else None

    @property
    def active(self) -> bool:
        return self._active

    def engage(self, reason: str) -> bool:
        """Turn demo mode on. Returns True only for the call that flipped it."""
        if self._active:
            return False
        self._active = True
        self.reason = reason
        logger.warning("Demo mode engaged (%s); all further data is synthetic", reason)
        return True

    def reset(self) -> None:
        self._active = False
        self.reason = None

    def __bool__(self) -> bool:
        return self._active
