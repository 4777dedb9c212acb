#!/usr/bin/env python3
"""
Per-photo pipeline metrics.

Each processed photo produces one ``photo_job_complete`` JSON event with the
time spent in every stage (download, normalize, folder lookup, transcribe,
persist), the engine that produced the text and the outcome.
"""
import json
import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from config.settings import LOG_DIR, METRICS_ENABLED, METRICS_LOG_FILE, METRICS_LOG_TO_STDOUT


class StageTimer:
    """Accumulates wall time over every ``with`` block it is used in."""

    def __init__(self):
        self.elapsed_ms = 0.0
        self.runs = 0
        self._started: Optional[float] = None

    def __enter__(self):
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms += (time.perf_counter() - self._started) * 1000.0
        self.runs += 1
        self._started = None
        return False


class JobMetrics:
    """
    Stage timings and outcome for one photo.

    Usage:
        metrics = JobMetrics(worker="photo", job_id="42:7", notebook="3")
        with metrics.timer("download"):
            ...
        metrics.mark_success(engine="openai", text_length=120)
        metrics.emit(log)
    """

    def __init__(self, worker: str, job_id: str, **context):
        self.worker = worker
        self.job_id = job_id
        self.context = context
        self.stages: Dict[str, StageTimer] = {}
        self.fields: Dict[str, Any] = {}
        self.outcome = "unknown"

    def timer(self, stage: str) -> StageTimer:
        return self.stages.setdefault(stage, StageTimer())

    def mark_success(self, **fields):
        self.outcome = "success"
        self.fields.update(fields)

    def mark_failure(self, exc: BaseException):
        self.outcome = "failure"
        self.fields["error_type"] = exc.__class__.__name__

    def to_event(self) -> Dict[str, Any]:
        timings = {f"{stage}_ms": round(t.elapsed_ms, 3) for stage, t in self.stages.items()}
        event = {
            "event": f"{self.worker}_job_complete",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "job_id": self.job_id,
            "outcome": self.outcome,
            "timings": timings,
            **self.fields,
        }
        event.update(self.context)
        return event

    def emit(self, logger: logging.Logger, log_file: Optional[str] = None):
        """Write the event to the log and the JSONL metrics file. Failures only go to debug."""
        if not METRICS_ENABLED:
            return
        log_file = METRICS_LOG_FILE if log_file is None else log_file

        try:
            line = json.dumps(self.to_event(), ensure_ascii=False)
            if METRICS_LOG_TO_STDOUT:
                logger.info(f"📈 METRICS: {line}")
            if log_file:
                if not os.path.isabs(log_file):
                    log_file = os.path.join(LOG_DIR, log_file)
                with open(log_file, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
        except (OSError, TypeError, ValueError) as e:
            logger.debug(f"Failed to emit metrics for {self.job_id}: {e}")
