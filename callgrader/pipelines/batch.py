from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Callable, Iterable, List, Optional, Protocol

from callgrader.core.models import (
    BatchError,
    BatchJob,
    BatchSnapshot,
    JobState,
    RunState,
    UploadResult,
)
from callgrader.services.analysis_client import AnalysisServiceError


logger = logging.getLogger(__name__)

AUDIO_SUFFIXES = {".mp3", ".wav", ".m4a", ".ogg", ".flac", ".webm", ".mp4"}

# "First Last.mp3" or "First Last - note.mp3"
REP_NAME_REGEX = re.compile(r"^(\w+ \w+)(?:\s*[ _\-–].*)?$")

Listener = Callable[[BatchSnapshot], None]


class CallUploader(Protocol):
    def upload_call(self, file_path: Path, rep_name: str, call_type: str) -> UploadResult: ...


def parse_rep_from_filename(name: str) -> str:
    match = REP_NAME_REGEX.match(Path(name).stem.strip())
    return match.group(1) if match else ""


def collect_audio_files(directory: Path) -> List[Path]:
    if not directory.is_dir():
        return []
    return sorted(
        (p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in AUDIO_SUFFIXES),
        key=lambda p: p.name,
    )


def jobs_from_paths(paths: Iterable[Path], rep_name: str = "", call_type: str = "") -> List[BatchJob]:
    return [
        BatchJob(file=Path(p), rep_name=rep_name or parse_rep_from_filename(Path(p).name), call_type=call_type)
        for p in paths
    ]


@dataclass
class _BatchRun:
    total: int
    completed: int = 0
    current: str = ""
    results: List[UploadResult] = field(default_factory=list)
    errors: List[BatchError] = field(default_factory=list)
    job_states: List[JobState] = field(default_factory=list)


def _describe_failure(exc: Exception) -> str:
    if isinstance(exc, AnalysisServiceError) and exc.body:
        return f"{exc}: {exc.body}"
    return str(exc)


class BatchOrchestrator:
    """Runs upload jobs one at a time and publishes a snapshot after every step.

    Only the orchestrator mutates run state. Listeners get frozen snapshots.
    A second ``run`` while one is active is rejected.
    """

    def __init__(self, client: CallUploader) -> None:
        self.client = client
        self._listeners: List[Listener] = []
        self._guard = Lock()
        self._state = RunState.IDLE
        self._run: Optional[_BatchRun] = None

    @property
    def state(self) -> RunState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> Optional[BatchSnapshot]:
        run = self._run
        if run is None:
            return None
        return BatchSnapshot(
            state=self._state,
            total=run.total,
            completed=run.completed,
            current=run.current,
            results=tuple(run.results),
            errors=tuple(run.errors),
            job_states=tuple(run.job_states),
        )

    def run(self, jobs: Iterable[BatchJob]) -> Optional[BatchSnapshot]:
        jobs = list(jobs)
        if not jobs:
            logger.warning("Batch submitted with no jobs, ignoring")
            return None
        if not self._guard.acquire(blocking=False):
            logger.warning("Batch already running, ignoring submission of %d jobs", len(jobs))
            return None

        try:
            self._state = RunState.RUNNING
            self._run = _BatchRun(total=len(jobs), job_states=[JobState.PENDING] * len(jobs))
            logger.info("Batch started: %d jobs", len(jobs))
            self._publish()

            for index, job in enumerate(jobs):
                self._process(index, job)

            self._state = RunState.IDLE
            final = self._publish()
            logger.info(
                "Batch finished: %d ok, %d failed", len(self._run.results), len(self._run.errors)
            )
            return final
        finally:
            self._state = RunState.IDLE
            self._guard.release()

    def _process(self, index: int, job: BatchJob) -> None:
        run = self._run
        run.current = job.filename
        run.job_states[index] = JobState.IN_FLIGHT
        self._publish()

        try:
            result = self.client.upload_call(job.file, job.rep_name, job.call_type)
        except Exception as exc:
            logger.error("Batch job %s failed: %s", job.filename, exc)
            run.errors.append(BatchError(filename=job.filename, error=_describe_failure(exc)))
            run.job_states[index] = JobState.FAILED
        else:
            run.results.append(result.with_filename(job.filename))
            run.job_states[index] = JobState.SUCCEEDED

        run.completed += 1
        run.current = ""
        self._publish()

    def _publish(self) -> BatchSnapshot:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("Batch listener failed")
        return snap
