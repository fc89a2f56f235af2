"""Fixed-interval scheduling of reconciliation cycles."""

from __future__ import annotations

import logging
import re
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DESCRIPTORS = {
    "@hourly": 3600.0,
    "@daily": 86400.0,
    "@midnight": 86400.0,
    "@weekly": 7 * 86400.0,
}

DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Parse a duration like "10m", "1h30m" or "1.5s" into seconds."""
    text = value.strip()
    if not text:
        raise ValueError("Empty duration")

    total = 0.0
    pos = 0
    for match in DURATION_PART_RE.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"Invalid duration: {value!r}")
    return total


def parse_schedule(spec: str) -> float:
    """Return the interval in seconds for a schedule spec.

    Supports "@every <duration>" and the descriptors @hourly, @daily,
    @midnight and @weekly.
    """
    text = spec.strip()
    lowered = text.lower()
    if lowered in DESCRIPTORS:
        return DESCRIPTORS[lowered]

    if lowered.startswith("@every "):
        interval = parse_duration(text[len("@every "):])
        if interval <= 0:
            raise ValueError(f"Schedule interval must be positive: {spec!r}")
        return interval

    raise ValueError(
        f"Unsupported schedule {spec!r}. Use '@every <duration>' (e.g. '@every 10m') "
        f"or one of {', '.join(sorted(DESCRIPTORS))}"
    )


class Scheduler:
    """Run a job at a fixed cadence until stopped.

    Jobs run sequentially on the calling thread, so ticks never overlap. A tick
    that overruns the interval causes the missed ticks to be skipped.
    Exceptions raised by the job propagate out of run_forever().
    """

    def __init__(
        self,
        interval_seconds: float,
        job: Callable[[], None],
        stop_event: Optional[threading.Event] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval = interval_seconds
        self.job = job
        self.stop_event = stop_event or threading.Event()
        self.ticks = 0

    def stop(self) -> None:
        self.stop_event.set()

    def run_once(self) -> None:
        self.ticks += 1
        logger.debug(f"Starting tick {self.ticks}")
        self.job()

    def run_forever(self) -> None:
        logger.info(f"Scheduler started, interval {self.interval:g}s")
        next_run = time.monotonic()
        while not self.stop_event.is_set():
            self.run_once()

            now = time.monotonic()
            next_run += self.interval
            if next_run <= now:
                skipped = int((now - next_run) // self.interval) + 1
                logger.warning(f"Tick overran the interval, skipping {skipped} tick(s)")
                next_run += skipped * self.interval

            self.stop_event.wait(max(0.0, next_run - time.monotonic()))
        logger.info("Scheduler stopped")
