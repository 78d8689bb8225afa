"""
Re-runs token derivation whenever the TOTP time window advances.

The clock is sampled every `poll_interval` seconds, well under half a window,
and the callback only fires when the sampled window differs from the last one.
"""

import threading
from typing import Callable

from ticketgimp import constants as tcst
from ticketgimp.logging_utils import get_logger
from ticketgimp.utils import unix_now_ms

logger = get_logger(__name__)


class RefreshScheduler:
    """
    Level-triggered scheduler over the time window counter.

    Attributes:
        on_window_change (Callable[[int], None]): Called with the sample time in ms on each new window.
        last_window (int | None): Window seen at the last recompute, None until the first sample.
        stop_event (threading.Event): Set once the scheduler is disposed.
        error (Exception | None): The exception that stopped the background loop, if any.
    """

    def __init__(
        self,
        on_window_change: Callable[[int], None],
        clock: Callable[[], int] = unix_now_ms,
        poll_interval: float = tcst.POLL_INTERVAL_SECONDS,
        window_ms: int = tcst.TOTP_WINDOW_MS,
    ) -> None:
        if poll_interval <= 0 or poll_interval * 1000 >= window_ms / 2:
            raise ValueError(f"poll_interval must be positive and under half the window, got {poll_interval}s")

        self.on_window_change = on_window_change
        self.clock = clock
        self.poll_interval = poll_interval
        self.window_ms = window_ms
        self.last_window: int | None = None
        self.stop_event = threading.Event()
        self._lock = threading.RLock()
        self._thread: threading.Thread | None = None
        self.error: Exception | None = None

    @property
    def is_disposed(self) -> bool:
        return self.stop_event.is_set()

    def sample(self, now_ms: int | None = None) -> bool:
        """
        Takes one sample of the clock and recomputes if the window moved.

        Args:
            now_ms (int | None): Sample time, read from the clock when omitted.

        Returns:
            bool: True if `on_window_change` was called.
        """
        with self._lock:
            if self.stop_event.is_set():
                return False

            if now_ms is None:
                now_ms = self.clock()
            window = now_ms // self.window_ms
            if window == self.last_window:
                return False

            logger.debug(f"Time window moved from {self.last_window} to {window}")
            self.last_window = window
            self.on_window_change(now_ms)
            return True

    def run(self) -> None:
        logger.info(f"Refreshing tokens, sampling every {self.poll_interval}s")
        while not self.stop_event.is_set():
            try:
                self.sample()
            except Exception as e:
                logger.exception("Token refresh failed, stopping scheduler")
                self.error = e
                self.stop_event.set()
                raise
            self.stop_event.wait(self.poll_interval)
        logger.info("Refresh scheduler stopped")

    def start(self) -> None:
        if self.stop_event.is_set():
            raise RuntimeError("Cannot restart a disposed scheduler")
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self.run, name="refresh-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        # Set before anything else so no sample started after this point can fire
        self.stop_event.set()
        with self._lock:
            pass
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    dispose = stop

    def __enter__(self) -> "RefreshScheduler":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
