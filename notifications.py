"""Single transient status message with automatic expiry."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

from models import Notification

logger = logging.getLogger(__name__)

DEFAULT_DURATION_S = 5.0

NotificationCallback = Callable[[Optional[Notification]], None]
TimerFactory = Callable[[float, Callable[[], None]], Any]


class NotificationCenter:
    def __init__(
        self,
        duration_s: float = DEFAULT_DURATION_S,
        on_change: Optional[NotificationCallback] = None,
        timer_factory: TimerFactory = threading.Timer,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._duration_s = duration_s
        self._on_change = on_change
        self._timer_factory = timer_factory
        self._clock = clock

        self._lock = threading.RLock()
        self._current: Optional[Notification] = None
        self._timer: Any = None

    @property
    def current(self) -> Optional[Notification]:
        return self._current

    def notify(self, message: str, is_error: bool = False) -> Notification:
        with self._lock:
            self._cancel_timer()
            notification = Notification(
                message=message,
                is_error=is_error,
                expires_at=self._clock() + self._duration_s,
            )
            self._current = notification
            timer = self._timer_factory(self._duration_s, lambda: self._expire(notification))
            if hasattr(timer, "daemon"):
                timer.daemon = True
            self._timer = timer
            timer.start()
            if is_error:
                logger.info("notify error: %s", message)
            else:
                logger.info("notify: %s", message)
            self._emit()
            return notification

    def clear(self) -> None:
        with self._lock:
            self._cancel_timer()
            if self._current is None:
                return
            self._current = None
            self._emit()

    def shutdown(self) -> None:
        with self._lock:
            self._cancel_timer()

    def _expire(self, notification: Notification) -> None:
        with self._lock:
            # superseded after the timer already fired
            if self._current is not notification:
                return
            self._timer = None
            self._current = None
            self._emit()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _emit(self) -> None:
        if self._on_change:
            self._on_change(self._current)
