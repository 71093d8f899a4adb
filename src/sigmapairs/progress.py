# src/sigmapairs/progress.py
from __future__ import annotations

import sys
import time


class Progress:
    """Throttled one-line progress bar on stderr, so stdout stays clean for the result."""

    def __init__(self, total: int, *, enabled: bool = True, stream=None):
        self.total = max(1, int(total))
        self.stream = stream or sys.stderr
        self.enabled = enabled and self.stream.isatty()
        self.start = time.perf_counter()
        self.last_draw = 0.0
        self.spin = "|/-\\"
        self.i = 0

    def update(self, done: int, label: str = ""):
        THROTTLE = 0.05
        if not self.enabled:
            return
        now = time.perf_counter()
        if now - self.last_draw < THROTTLE:  # throttle to avoid flicker
            return
        self.last_draw = now
        self.i = (self.i + 1) % len(self.spin)
        frac = min(max(done / self.total, 0.0), 1.0)
        pct = int(frac * 100)
        bar_len = 24
        fill = int(frac * bar_len)
        bar = "#" * fill + "-" * (bar_len - fill)
        msg = f"\r[{self.spin[self.i]}] [{bar}] {pct:3d}%  {label[:50]}"
        self.stream.write(msg)
        self.stream.flush()

    def on_block(self, last_n: int, k: int) -> None:
        """Callback shape used by SegmentedSieve(on_block=...)."""
        self.update(last_n, f"N = {last_n:,} / {k:,}")

    def done(self):
        if not self.enabled:
            return
        self.stream.write("\r" + " " * 80 + "\r")
        self.stream.flush()
