"""Tests for callgrader.pipelines.batch: sequential runs, isolation, snapshots, guard."""
import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from callgrader.core.models import BatchJob, JobState, RunState, UploadResult
from callgrader.pipelines.batch import (
    BatchOrchestrator,
    collect_audio_files,
    jobs_from_paths,
    parse_rep_from_filename,
)
from callgrader.services.analysis_client import AnalysisServiceError, AnalysisTransportError
from tests.payloads import result_payload


# ── Helpers ──────────────────────────────────────────────────────────────────

class _FakeClient:
    """Client that fails for the filenames it is told to, succeeds otherwise."""

    def __init__(self, failures=None):
        self.failures = failures or {}
        self.calls = []

    def upload_call(self, file_path, rep_name, call_type):
        name = Path(file_path).name
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]
        return UploadResult.from_dict(result_payload(call_id=f"id-{name}", rep_name=rep_name))


def _jobs(*names):
    return [BatchJob(file=Path(n), rep_name="Jane Doe", call_type="inbound") for n in names]


# ── Runs ─────────────────────────────────────────────────────────────────────

class TestRun:

    def test_middle_failure_is_isolated(self):
        client = _FakeClient({"b.mp3": AnalysisServiceError(502, "Bad Gateway")})
        orch = BatchOrchestrator(client)

        final = orch.run(_jobs("a.mp3", "b.mp3", "c.mp3"))

        assert final.completed == 3
        assert [r.filename for r in final.results] == ["a.mp3", "c.mp3"]
        assert [(e.filename, e.error) for e in final.errors] == [("b.mp3", "502 Bad Gateway")]
        assert client.calls == ["a.mp3", "b.mp3", "c.mp3"]
        assert final.job_states == (JobState.SUCCEEDED, JobState.FAILED, JobState.SUCCEEDED)
        assert final.state is RunState.IDLE
        assert final.current == ""

    def test_transport_errors_and_unexpected_errors_are_recorded(self):
        client = _FakeClient({
            "a.mp3": AnalysisTransportError("connection refused"),
            "b.mp3": RuntimeError("boom"),
        })
        final = BatchOrchestrator(client).run(_jobs("a.mp3", "b.mp3"))

        assert final.results == ()
        assert [e.error for e in final.errors] == ["connection refused", "boom"]
        assert final.completed == 2

    def test_service_error_body_kept_in_error(self):
        client = _FakeClient({"a.mp3": AnalysisServiceError(502, "Bad Gateway", "upstream timed out")})
        final = BatchOrchestrator(client).run(_jobs("a.mp3"))

        assert final.errors[0].error == "502 Bad Gateway: upstream timed out"

    def test_results_tagged_with_filename(self):
        final = BatchOrchestrator(_FakeClient()).run(_jobs("x.wav"))
        assert final.results[0].filename == "x.wav"
        assert final.results[0].display_name == "x.wav"

    def test_empty_job_list_is_rejected(self):
        orch = BatchOrchestrator(_FakeClient())
        assert orch.run([]) is None
        assert orch.state is RunState.IDLE
        assert orch.snapshot() is None

    def test_empty_job_list_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="callgrader.pipelines.batch"):
            BatchOrchestrator(_FakeClient()).run([])
        assert "no jobs" in caplog.text


# ── Snapshots ────────────────────────────────────────────────────────────────

class TestSnapshots:

    def test_every_snapshot_keeps_invariants(self):
        client = _FakeClient({"b.mp3": AnalysisServiceError(500, "Internal Server Error")})
        orch = BatchOrchestrator(client)
        seen = []
        orch.subscribe(seen.append)

        orch.run(_jobs("a.mp3", "b.mp3", "c.mp3"))

        # start + (in-flight, done) per job + final
        assert len(seen) == 1 + 2 * 3 + 1
        completed = [s.completed for s in seen]
        assert completed == sorted(completed)
        for snap in seen:
            assert snap.completed == len(snap.results) + len(snap.errors)
            in_flight = JobState.IN_FLIGHT in snap.job_states
            assert (snap.current != "") == in_flight

    def test_progress_sequence(self):
        orch = BatchOrchestrator(_FakeClient())
        seen = []
        orch.subscribe(seen.append)

        orch.run(_jobs("a.mp3", "b.mp3"))

        assert [(s.state, s.completed, s.current) for s in seen] == [
            (RunState.RUNNING, 0, ""),
            (RunState.RUNNING, 0, "a.mp3"),
            (RunState.RUNNING, 1, ""),
            (RunState.RUNNING, 1, "b.mp3"),
            (RunState.RUNNING, 2, ""),
            (RunState.IDLE, 2, ""),
        ]

    def test_snapshots_are_not_mutated_later(self):
        orch = BatchOrchestrator(_FakeClient())
        seen = []
        orch.subscribe(seen.append)

        orch.run(_jobs("a.mp3", "b.mp3"))

        assert seen[2].results[0].filename == "a.mp3"
        assert len(seen[2].results) == 1

    def test_unsubscribe(self):
        orch = BatchOrchestrator(_FakeClient())
        listener = MagicMock()
        unsubscribe = orch.subscribe(listener)
        unsubscribe()

        orch.run(_jobs("a.mp3"))

        listener.assert_not_called()

    def test_failing_listener_does_not_break_run(self):
        orch = BatchOrchestrator(_FakeClient())
        orch.subscribe(MagicMock(side_effect=RuntimeError("ui gone")))
        good = []
        orch.subscribe(good.append)

        final = orch.run(_jobs("a.mp3", "b.mp3"))

        assert final.completed == 2
        assert good[-1] == final


# ── Re-entrancy guard ────────────────────────────────────────────────────────

class TestGuard:

    def test_second_run_while_running_is_ignored(self):
        nested = []

        class _ReentrantClient(_FakeClient):
            def upload_call(self, file_path, rep_name, call_type):
                nested.append(orch.run(_jobs("other.mp3")))
                return super().upload_call(file_path, rep_name, call_type)

        client = _ReentrantClient()
        orch = BatchOrchestrator(client)

        final = orch.run(_jobs("a.mp3"))

        assert nested == [None]
        assert client.calls == ["a.mp3"]
        assert final.total == 1

    def test_can_run_again_after_finishing(self):
        orch = BatchOrchestrator(_FakeClient())
        orch.run(_jobs("a.mp3"))
        second = orch.run(_jobs("b.mp3", "c.mp3"))

        assert second.total == 2
        assert [r.filename for r in second.results] == ["b.mp3", "c.mp3"]

    def test_guard_released_when_run_is_interrupted(self):
        orch = BatchOrchestrator(_FakeClient())
        orch.subscribe(MagicMock())
        orch._process = MagicMock(side_effect=KeyboardInterrupt)

        with pytest.raises(KeyboardInterrupt):
            orch.run(_jobs("a.mp3"))

        assert orch.state is RunState.IDLE
        del orch._process
        assert orch.run(_jobs("a.mp3")).completed == 1


# ── Job building ─────────────────────────────────────────────────────────────

class TestJobs:

    @pytest.mark.parametrize("name, expected", [
        ("Jan Kowalski.mp3", "Jan Kowalski"),
        ("Jan Kowalski – follow up.mp3", "Jan Kowalski"),
        ("Jane Doe - 2026-01-02.wav", "Jane Doe"),
        ("call_0001.mp3", ""),
    ])
    def test_parse_rep_from_filename(self, name, expected):
        assert parse_rep_from_filename(name) == expected

    def test_explicit_rep_name_wins(self):
        jobs = jobs_from_paths([Path("Jan Kowalski.mp3")], rep_name="Team Lead", call_type="t65")
        assert jobs == [BatchJob(file=Path("Jan Kowalski.mp3"), rep_name="Team Lead", call_type="t65")]

    def test_rep_name_from_filename(self):
        jobs = jobs_from_paths([Path("in/Jan Kowalski.mp3")])
        assert jobs[0].rep_name == "Jan Kowalski"
        assert jobs[0].filename == "Jan Kowalski.mp3"

    def test_collect_audio_files(self, tmp_path):
        for name in ["b.mp3", "a.WAV", "notes.txt"]:
            (tmp_path / name).write_bytes(b"x")
        (tmp_path / "sub.mp3").mkdir()

        assert [p.name for p in collect_audio_files(tmp_path)] == ["a.WAV", "b.mp3"]

    def test_collect_audio_files_missing_dir(self, tmp_path):
        assert collect_audio_files(tmp_path / "nope") == []
