"""JSON run reports for optimizer batch runs."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

DEFAULT_REPORT_DIR = "output/run_reports"


def report_path(run_id: str, output_dir: str = DEFAULT_REPORT_DIR) -> Path:
    return Path(output_dir) / f"optimizer-{run_id}.json"


def build_run_report(
    stats: Mapping[str, Any],
    run_id: str,
    config: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Assemble the report payload from batch statistics.

    Run id, UTC timestamp and a ``status`` derived from ``files_failed`` are
    added unless ``stats`` already carries them. ``config`` is embedded as a
    summary of the run settings.
    """
    payload = dict(stats)
    payload.setdefault("run_id", run_id)
    payload.setdefault("timestamp_utc", datetime.now(timezone.utc).isoformat())
    payload.setdefault("status", "failed" if payload.get("files_failed") else "success")
    if config is not None:
        payload.setdefault("config", dict(config))
    return payload


def write_run_report(
    report: Mapping[str, Any],
    run_id: str,
    output_dir: str = DEFAULT_REPORT_DIR,
    config: Optional[Mapping[str, Any]] = None,
) -> str:
    """Write ``optimizer-<run_id>.json`` into ``output_dir`` and return its path."""
    path = report_path(run_id, output_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = build_run_report(report, run_id, config)
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    return str(path)
