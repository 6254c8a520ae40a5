from __future__ import annotations

import pytest

from paramflow.progress import emit_progress, track_step


def _make_metadata(events: list) -> dict:
    def _callback(step, status, detail):
        events.append((step, status, detail))

    return {"_progress_callback": _callback}


def test_emit_progress_without_callback_is_noop():
    emit_progress(None, "step", "running")
    emit_progress({}, "step", "running")
    emit_progress({"_progress_callback": "not callable"}, "step", "running")


def test_track_step_reports_running_then_done():
    events: list = []
    with track_step(_make_metadata(events), "Shop.get", "Classify") as timing:
        pass
    assert events == [("Shop.get", "running", "Classify"), ("Shop.get", "done", "Classify")]
    assert timing["_timing"] >= 0


def test_track_step_reports_failure_and_reraises():
    events: list = []
    with pytest.raises(RuntimeError):
        with track_step(_make_metadata(events), "Shop.get") as timing:
            raise RuntimeError("boom")
    assert [status for _, status, _ in events] == ["running", "failed"]
    assert "_timing" in timing
