"""Metrics exporter for observability."""
import json
import time
from pathlib import Path
from typing import Dict
import aiofiles

from expiry_reminder.config import DATA_DIR

METRICS_FILE = DATA_DIR / "metrics.jsonl"


class MetricsExporter:
    """Exports one JSON line per sweep."""

    def __init__(self, metrics_file: Path = METRICS_FILE):
        self.metrics_file = metrics_file

    async def export_metrics(self, run_id: str, run_date: str, status: str, summary: Dict) -> None:
        """Append sweep metrics to the JSONL file."""
        metrics = {
            "ts": time.time(),
            "run_id": run_id,
            "run_date": run_date,
            "status": status,
            **summary,
        }
        line = json.dumps(metrics) + "\n"
        async with aiofiles.open(self.metrics_file, "a") as f:
            await f.write(line)


def read_recent_metrics(metrics_file: Path = METRICS_FILE, limit: int = 100) -> list[dict]:
    if not metrics_file.exists():
        return []
    lines = []
    with open(metrics_file, "r") as f:
        for line in f:
            if line.strip():
                lines.append(json.loads(line))
    return lines[-limit:]
