"""Progress and timing helpers for generation steps."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator


def emit_progress(metadata: dict[str, Any] | None, step: str, status: str, detail: str = "") -> None:
    """Emit a progress event if the metadata includes a progress callback."""
    if metadata is None:
        return
    callback = metadata.get("_progress_callback")
    if callable(callback):
        callback(step=step, status=status, detail=detail)


@contextmanager
def track_step(metadata: dict[str, Any] | None, label: str, description: str = "") -> Iterator[dict[str, Any]]:
    """
    Time one generation step and report it through ``emit_progress``.

    The context manager:
    - emits `running/done/failed` progress events
    - yields a mapping that receives `_timing` in seconds on exit
    - re-raises whatever the step raised
    """
    timing: dict[str, Any] = {}
    emit_progress(metadata, label, "running", description)
    start_time = time.perf_counter()
    try:
        yield timing
    except Exception:
        timing["_timing"] = time.perf_counter() - start_time
        emit_progress(metadata, label, "failed", description)
        raise
    timing["_timing"] = time.perf_counter() - start_time
    emit_progress(metadata, label, "done", description)
