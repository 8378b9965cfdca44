from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Run ``callback`` once after ``delay`` seconds of quiet.

    Each ``schedule()`` supersedes the timer that has not fired yet. A delay of
    zero runs the callback inline, which keeps tests and scripts synchronous.
    """

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = max(0.0, float(delay))
        self._callback = callback
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._pending = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending

    def schedule(self) -> None:
        if self.delay <= 0:
            with self._lock:
                self._pending = True
            self.flush()
            return

        with self._lock:
            self._pending = True
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            self._pending = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def flush(self) -> bool:
        """Run pending work now. Returns False when nothing was pending."""
        with self._lock:
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if not self._pending:
                return False
            self._pending = False
        self._callback()
        return True

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A newer schedule/cancel/flush already took over.
            if generation != self._generation or not self._pending:
                return
            self._timer = None
            self._pending = False
        try:
            self._callback()
        except Exception:  # noqa: BLE001
            logger.exception("Debounced callback failed")
