"""
Job Queue for Bill Processing
==============================
Runs bill extraction jobs on a thread pool with status tracking, so the
frontend can upload a batch and poll per-document progress.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, Future
from typing import Dict, Any, Callable, Optional
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(moment: Optional[datetime]) -> Optional[str]:
    return moment.isoformat() if moment else None


class JobState(Enum):
    """Lifecycle of one uploaded bill job."""
    QUEUED = "queued"
    EXTRACTING_TEXT = "extracting_text"
    PARSING = "parsing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class JobStatus:
    """Pollable snapshot of one bill job; `result` holds the pipeline payload once finished."""
    job_id: str
    filename: str
    state: JobState
    progress: float  # 0.0 to 1.0
    message: str = ""
    started_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None

    @property
    def finished(self) -> bool:
        return self.state in (JobState.DONE, JobState.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "job_id": self.job_id,
            "filename": self.filename,
            "state": self.state.value,
            "progress": self.progress,
            "message": self.message,
            "started_at": _iso(self.started_at),
            "updated_at": _iso(self.updated_at),
            "completed_at": _iso(self.completed_at),
            "error": self.error,
            "result": self.result,
        }


class JobQueue:
    """
    Manages bill processing jobs using a thread pool.

    Jobs share nothing but this queue's bookkeeping, so a failing document
    only marks its own job as FAILED.

    Finished jobs keep their result payload until they are older than
    `retention_seconds`; expired records are dropped on the next submit.
    """

    STATE_PROGRESS = {
        JobState.QUEUED: 0.0,
        JobState.EXTRACTING_TEXT: 0.3,
        JobState.PARSING: 0.7,
        JobState.DONE: 1.0,
        JobState.FAILED: 1.0,
    }

    def __init__(self, max_workers: int = 4, retention_seconds: Optional[float] = 3600):
        self.max_workers = max_workers
        self.retention_seconds = retention_seconds
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="bill_job")
        self._lock = threading.Lock()
        self._jobs: Dict[str, JobStatus] = {}
        self._futures: Dict[str, Future] = {}
        self._callbacks: Dict[str, Callable[[str, Dict[str, Any]], None]] = {}

    def submit(
        self,
        job_id: str,
        filename: str,
        process_func: Callable[..., Dict[str, Any]],
        *args,
        on_complete: Optional[Callable[[str, Dict[str, Any]], None]] = None,
        **kwargs
    ) -> bool:
        """
        Submit a bill processing job.

        `process_func` is called as process_func(job_id, queue, *args, **kwargs)
        and may report progress through update_state().

        Returns:
            True if job was submitted, False if the id is already in progress
        """
        if self.retention_seconds is not None:
            self.cleanup_old_jobs(self.retention_seconds)

        with self._lock:
            if job_id in self._jobs and not self._jobs[job_id].finished:
                logger.warning(f"Job {job_id} already in progress")
                return False

            now = _utcnow()
            self._jobs[job_id] = JobStatus(
                job_id=job_id,
                filename=filename,
                state=JobState.QUEUED,
                progress=0.0,
                message="Queued for processing",
                started_at=now,
                updated_at=now
            )

            if on_complete:
                self._callbacks[job_id] = on_complete

        def wrapped_process():
            try:
                result = process_func(job_id, self, *args, **kwargs)
            except Exception as e:
                logger.exception(f"Job {job_id} failed")
                self._on_job_failed(job_id, str(e))
                raise
            self._on_job_complete(job_id, result)
            return result

        future = self.executor.submit(wrapped_process)
        with self._lock:
            self._futures[job_id] = future

        logger.info(f"Submitted job {job_id} for {filename}")
        return True

    def update_state(
        self,
        job_id: str,
        state: JobState,
        message: str = "",
        progress: Optional[float] = None
    ) -> None:
        """Update job state. Call this from within the processing function."""
        with self._lock:
            if job_id not in self._jobs:
                logger.warning(f"Cannot update unknown job {job_id}")
                return

            job = self._jobs[job_id]
            job.state = state
            job.message = message
            job.updated_at = _utcnow()
            job.progress = progress if progress is not None else self.STATE_PROGRESS.get(state, 0.5)

            logger.debug(f"Job {job_id}: {state.value} ({job.progress:.0%}) - {message}")

    def get_status(self, job_id: str) -> Optional[JobStatus]:
        with self._lock:
            return self._jobs.get(job_id)

    def get_status_dict(self, job_id: str) -> Optional[Dict[str, Any]]:
        status = self.get_status(job_id)
        return status.to_dict() if status else None

    def wait(self, job_id: str, timeout: Optional[float] = None) -> Optional[JobStatus]:
        """Block until a job finishes (its exception, if any, is already recorded)."""
        with self._lock:
            future = self._futures.get(job_id)
        if future is not None:
            try:
                future.result(timeout=timeout)
            except Exception:
                logger.debug(f"Job {job_id} finished with an error")
        return self.get_status(job_id)

    def _finish_locked(
        self,
        job_id: str,
        state: JobState,
        message: str,
        error: Optional[str] = None,
        result: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Move a job to a terminal state. Caller holds self._lock."""
        job = self._jobs.get(job_id)
        if job is None:
            return
        job.state = state
        job.progress = 1.0
        job.message = message
        job.error = error
        job.result = result
        job.completed_at = job.updated_at = _utcnow()

    def _on_job_complete(self, job_id: str, result: Dict[str, Any]) -> None:
        """
        A job that returns a payload with success=False (e.g. an unreadable
        bill) is recorded as FAILED with the payload's error.
        """
        failed = isinstance(result, dict) and result.get("success") is False
        with self._lock:
            if failed:
                self._finish_locked(job_id, JobState.FAILED, "Processing failed", result.get("error"), result)
            else:
                self._finish_locked(job_id, JobState.DONE, "Processing complete", result=result)
            callback = self._callbacks.pop(job_id, None)

        if callback:
            try:
                callback(job_id, result)
            except Exception:
                logger.exception(f"Callback failed for job {job_id}")

        logger.info(f"Job {job_id} {'failed' if failed else 'done'}")

    def _on_job_failed(self, job_id: str, error: str) -> None:
        with self._lock:
            self._finish_locked(job_id, JobState.FAILED, f"Failed: {error}", error)
            self._callbacks.pop(job_id, None)

    def is_processing(self, job_id: str) -> bool:
        with self._lock:
            job = self._jobs.get(job_id)
            return job is not None and not job.finished

    def cancel(self, job_id: str) -> bool:
        """Cancel a job that has not started yet. Running jobs are left alone."""
        with self._lock:
            future = self._futures.get(job_id)
            if future is None or not future.cancel():
                return False
            self._finish_locked(job_id, JobState.FAILED, "Cancelled", "Cancelled")
            self._callbacks.pop(job_id, None)
        logger.info(f"Job {job_id} cancelled")
        return True

    def get_active_count(self) -> int:
        """Jobs still queued or running."""
        with self._lock:
            return sum(1 for job in self._jobs.values() if not job.finished)

    def cleanup_old_jobs(self, max_age_seconds: float = 3600) -> int:
        """Forget finished jobs completed more than max_age_seconds ago; returns how many."""
        now = _utcnow()
        with self._lock:
            expired = [
                job_id for job_id, job in self._jobs.items()
                if job.finished and job.completed_at
                and (now - job.completed_at).total_seconds() > max_age_seconds
            ]
            for job_id in expired:
                self._jobs.pop(job_id)
                self._futures.pop(job_id, None)

        if expired:
            logger.info(f"Dropped {len(expired)} finished job records")
        return len(expired)

    def shutdown(self, wait: bool = True) -> None:
        logger.info(f"Shutting down bill job queue ({self.get_active_count()} active)")
        self.executor.shutdown(wait=wait)
