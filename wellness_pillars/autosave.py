from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Runs ``fn`` once the caller has been quiet for ``delay`` seconds.

    Each ``schedule`` cancels the pending call and starts a new timer, so only
    the last arguments are saved. ``flush`` runs the pending call right away.
    A failing call is logged and handed to ``on_error``.
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        delay: float = 1.0,
        timer_factory=threading.Timer,
        on_error: Optional[Callable[[Exception], Any]] = None,
    ):
        self.fn = fn
        self.delay = delay
        self.on_error = on_error
        self._timer_factory = timer_factory
        self._timer = None
        self._token: Optional[object] = None
        self._pending: Optional[tuple] = None
        self._lock = threading.Lock()

    def schedule(self, *args, **kwargs) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            token = object()
            self._token = token
            self._pending = (args, kwargs)
            self._timer = self._timer_factory(self.delay, lambda: self._fire(token))
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, token: Optional[object] = None) -> None:
        with self._lock:
            # A timer replaced by a later schedule must not run the newer arguments.
            if token is not None and token is not self._token:
                return
            pending, self._pending = self._pending, None
            self._timer = None
            self._token = None
        if pending is None:
            return
        args, kwargs = pending
        try:
            self.fn(*args, **kwargs)
        except Exception as e:
            logger.exception("debounced save failed")
            if self.on_error is not None:
                self.on_error(e)

    def flush(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
        self._fire()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._token = None
            self._pending = None

    @property
    def pending(self) -> bool:
        return self._pending is not None
