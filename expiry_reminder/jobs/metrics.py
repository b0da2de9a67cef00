"""Counters for a single sweep."""
import time
import logging
from collections import defaultdict
from typing import Dict

logger = logging.getLogger(__name__)

COUNTERS = ("scanned", "skipped", "matched", "sent", "failed")


class SweepMetrics:
    """Track sweep counters and elapsed time."""

    def __init__(self):
        self.start_time = time.time()
        self.counters: Dict[str, int] = defaultdict(int)

    def increment(self, key: str, amount: int = 1) -> None:
        """Increment a counter."""
        self.counters[key] += amount

    def elapsed(self) -> float:
        return time.time() - self.start_time

    def report(self) -> None:
        """Log current counters."""
        logger.info(
            f"Scanned: {self.counters['scanned']} | "
            f"Skipped: {self.counters['skipped']} | "
            f"Matched: {self.counters['matched']} | "
            f"Sent: {self.counters['sent']} | "
            f"Failed: {self.counters['failed']} | "
            f"Elapsed: {self.elapsed():.2f}s"
        )

    def get_summary(self) -> Dict:
        """Get summary statistics."""
        summary = {key: self.counters.get(key, 0) for key in COUNTERS}
        summary["elapsed_seconds"] = round(self.elapsed(), 3)
        return summary
