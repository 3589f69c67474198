#!/usr/bin/env python3
"""
Live clock for Timecard.
Re-reads "now" on a fixed interval so running totals keep moving.
"""

import threading
from datetime import datetime
from typing import Callable, Optional


class LiveClock:
    """Calls ``on_tick(clock())`` every ``interval`` seconds on a daemon thread."""

    def __init__(
        self,
        on_tick: Callable[[datetime], None],
        interval: float = 1.0,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.on_tick = on_tick
        self.interval = interval
        self.clock = clock
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> datetime:
        now = self.clock()
        self.on_tick(now)
        return now

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.tick()
            except Exception as e:
                print(f"Error in clock tick: {e}")

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval + 1)
        self._thread = None
