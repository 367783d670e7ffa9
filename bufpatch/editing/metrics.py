"""
Patch metrics — records one JSONL entry per patch run.
"""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

_METRICS_DIR = ".bufpatch"
_METRICS_FILE = "patch_metrics.jsonl"


def _metrics_path(project_root: str | None = None) -> str:
    """Return the absolute path to the metrics file."""
    base = project_root or os.getcwd()
    return os.path.join(base, _METRICS_DIR, _METRICS_FILE)


def log_patch_metric(data: dict, project_root: str | None = None) -> None:
    """Append a single patch metric entry to the JSONL log.

    Parameters
    ----------
    data:
        Fields to log (file, mode, hunks_applied, hunks_skipped, noop, ...).
    project_root:
        Directory holding the ``.bufpatch`` folder. Defaults to CWD.
    """
    path = _metrics_path(project_root)
    os.makedirs(os.path.dirname(path), exist_ok=True)

    entry = {"timestamp": datetime.now(timezone.utc).isoformat()}
    entry.update(data)

    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError as exc:
        logger.warning("[Metrics] Failed to write metrics: %s", exc)


def _read_entries(path: str) -> list[dict]:
    entries: list[dict] = []
    if not os.path.isfile(path):
        return entries
    try:
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError:
                    continue
    except OSError as exc:
        logger.warning("[Metrics] Failed to read metrics: %s", exc)
    return entries


def read_patch_stats(
    last_n: int = 50,
    project_root: str | None = None,
) -> dict:
    """Compute rolling statistics over the most recent *last_n* entries.

    Returns
    -------
    dict
        ``total_patches``, ``avg_hunks_applied``, ``skip_rate`` (percent of
        parsed hunks that were skipped), ``noop_rate`` (percent of runs that
        wrote nothing) and ``modes`` (percent of runs per mode).
    """
    entries = _read_entries(_metrics_path(project_root))[-last_n:]

    if not entries:
        return {
            "total_patches": 0,
            "avg_hunks_applied": 0.0,
            "skip_rate": 0.0,
            "noop_rate": 0.0,
            "modes": {},
        }

    total = len(entries)
    applied = sum(e.get("hunks_applied", 0) for e in entries)
    skipped = sum(e.get("hunks_skipped", 0) for e in entries)
    noops = sum(1 for e in entries if e.get("noop", False))
    modes = Counter(e.get("mode", "unknown") for e in entries)

    return {
        "total_patches": total,
        "avg_hunks_applied": applied / total,
        "skip_rate": skipped / (applied + skipped) * 100 if applied + skipped else 0.0,
        "noop_rate": noops / total * 100,
        "modes": {
            mode: count / total * 100
            for mode, count in modes.most_common()
        },
    }
