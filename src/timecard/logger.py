#!/usr/bin/env python3
"""
Console logging for Timecard.
"""

from datetime import datetime


class TrackerLogger:
    """Handles logging and output for session tracking."""

    def __init__(self, verbose: bool = True):
        self.verbose = verbose

    @staticmethod
    def _stamp() -> str:
        return datetime.now().strftime("%H:%M:%S")

    def info(self, message: str) -> None:
        if not self.verbose:
            return
        print(f"[{self._stamp()}] {message}")

    def warning(self, message: str) -> None:
        if not self.verbose:
            return
        print(f"[{self._stamp()}] [WARN] {message}")

    def error(self, message: str) -> None:
        """Errors are printed regardless of verbosity."""
        print(f"[{self._stamp()}] [ERROR] {message}")

    def log_time_in(self, rounded: datetime) -> None:
        self.info(f"Time in recorded (counts from {rounded.strftime('%H:%M')})")

    def log_time_out(self, rounded: datetime) -> None:
        self.info(f"Time out recorded (counts until {rounded.strftime('%H:%M')})")

    def log_snapshot(self, count: int) -> None:
        self.info(f"Snapshot received - {count} sessions")

    def log_bulk_result(self, action: str, total: int, failed: int) -> None:
        if failed:
            self.error(f"{action}: {failed} of {total} writes failed")
        else:
            self.info(f"{action}: {total} sessions updated")
