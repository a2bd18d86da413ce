"""Export job repository: lifecycle rules over an in-memory store.

WHY: Export runs for minutes, so the API returns a job id immediately and
clients poll for progress. The job record is the only channel between the
background render task and the polling endpoint, so its lifecycle rules
(monotonic progress, final terminal states) are enforced here rather than
trusted to every writer.

HOW: Three components work together:
  JobStatus             — enum of valid job states
  ExportJob             — dataclass holding id, status, progress and result
  JobRepository         — create/get/update interface, so a persistent
                          store can replace the in-memory one
  InMemoryJobRepository — dict-based implementation guarded by a lock

RULES:
- Jobs start as processing with progress 0
- While processing, progress never decreases and never exceeds 99
- complete sets progress to 100 and requires a download_url
- failed requires an error message
- complete and failed are final; further updates raise JobStateError
- get() returns a snapshot copy (None for unknown ids); update() on an
  unknown id raises NotFoundError
- Optional TTL eviction of terminal jobs; disabled when ttl_seconds is 0
"""

from __future__ import annotations

import abc
import dataclasses
import enum
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_PROCESSING_PROGRESS = 99


class JobStatus(str, enum.Enum):
    """Valid states for an export job.

    Inherits from str so values serialize cleanly to JSON.
    """

    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PROCESSING


class NotFoundError(KeyError):
    """Raised for an unknown job id (distinct from "still processing")."""


class JobStateError(RuntimeError):
    """Raised on an update that would violate the job lifecycle."""


@dataclass
class ExportJob:
    """State of a single export job.

    RULES:
    - id: uuid4 hex, unique and immutable
    - progress: integer 0–100
    - download_url: only set once status is complete
    - error: only set once status is failed
    """

    id: str
    status: JobStatus
    progress: int
    created_at: float
    updated_at: float
    completed_at: Optional[float] = None
    download_url: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "progress": self.progress,
            "createdAt": self.created_at,
        }
        if self.download_url is not None:
            out["downloadUrl"] = self.download_url
        if self.error is not None:
            out["error"] = self.error
        return out


class JobRepository(abc.ABC):
    """Storage interface for export jobs."""

    @abc.abstractmethod
    def create(self) -> ExportJob:
        """Create and store a new job in the processing state."""

    @abc.abstractmethod
    def get(self, job_id: str) -> Optional[ExportJob]:
        """Return a snapshot of the job, or None if unknown."""

    @abc.abstractmethod
    def update(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        progress: Optional[int] = None,
        download_url: Optional[str] = None,
        error: Optional[str] = None,
    ) -> ExportJob:
        """Apply a lifecycle-checked update and return the new snapshot."""


class InMemoryJobRepository(JobRepository):
    """Thread-safe in-memory job store for the lifetime of the process.

    WHY: The HTTP handlers read job state while background tasks write it.
    A single lock around the dict keeps every read a consistent snapshot.

    RULES:
    - All public methods acquire self._lock
    - Returned jobs are copies; callers cannot mutate stored state
    """

    def __init__(self, ttl_seconds: int = 0) -> None:
        self._jobs: Dict[str, ExportJob] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds

    def create(self) -> ExportJob:
        job_id = uuid.uuid4().hex
        now = time.time()
        job = ExportJob(
            id=job_id,
            status=JobStatus.PROCESSING,
            progress=0,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._jobs[job_id] = job
            snapshot = dataclasses.replace(job)

        logger.info("Created export job %s", job_id)
        return snapshot

    def get(self, job_id: str) -> Optional[ExportJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            return dataclasses.replace(job) if job is not None else None

    def list(self) -> List[ExportJob]:
        """All jobs, oldest first."""
        with self._lock:
            jobs = sorted(self._jobs.values(), key=lambda j: j.created_at)
            return [dataclasses.replace(j) for j in jobs]

    def update(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        progress: Optional[int] = None,
        download_url: Optional[str] = None,
        error: Optional[str] = None,
    ) -> ExportJob:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise NotFoundError(job_id)
            if job.status.is_terminal:
                raise JobStateError(
                    "Job {} is already {}".format(job_id, job.status.value)
                )

            now = time.time()

            if status is JobStatus.COMPLETE:
                if not download_url:
                    raise JobStateError("A completed job needs a download_url")
                job.status = status
                job.progress = 100
                job.download_url = download_url
                job.completed_at = now
            elif status is JobStatus.FAILED:
                job.status = status
                job.error = error or "Export failed"
                job.completed_at = now
            elif progress is not None:
                clamped = min(max(int(progress), 0), MAX_PROCESSING_PROGRESS)
                job.progress = max(job.progress, clamped)

            job.updated_at = now
            return dataclasses.replace(job)

    def cleanup_expired(self) -> int:
        """Remove terminal jobs older than the TTL; return how many.

        A no-op when the repository was created with ttl_seconds=0.
        """
        if not self._ttl_seconds:
            return 0

        now = time.time()
        with self._lock:
            expired = [
                job_id for job_id, job in self._jobs.items()
                if job.completed_at is not None
                and now - job.completed_at > self._ttl_seconds
            ]
            for job_id in expired:
                del self._jobs[job_id]

        for job_id in expired:
            logger.info("Expired export job %s", job_id)
        return len(expired)
