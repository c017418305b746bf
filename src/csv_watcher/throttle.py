"""Time-window gate for repetitive log messages."""

from __future__ import annotations

import logging
import time
from typing import Callable


class ThrottledLogger:
    """Emits a message at most once per ``interval`` seconds."""

    def __init__(
        self,
        logger: logging.Logger,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the throttled logger.

        Args:
            logger: Logger to forward to.
            interval: Minimum seconds between two emitted messages.
            clock: Monotonic time source.

        """
        self.logger = logger
        self.interval = interval
        self._clock = clock
        self._last_emit: float | None = None

    def log(self, level: int, msg: str, *args: object) -> bool:
        """Log ``msg`` unless one was emitted within the window.

        Returns:
            True if the message was emitted.

        """
        now = self._clock()
        if self._last_emit is not None and now - self._last_emit < self.interval:
            return False
        self._last_emit = now
        self.logger.log(level, msg, *args)
        return True

    def info(self, msg: str, *args: object) -> bool:
        return self.log(logging.INFO, msg, *args)

    def reset(self) -> None:
        """Open the window so the next message is emitted."""
        self._last_emit = None
