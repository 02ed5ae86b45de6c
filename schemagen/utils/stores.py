"""
Injected in-process stores for the request-handling layer.

The FastAPI app receives these through create_app() instead of keeping
module-level dicts, so tests can pass fresh instances and each app owns
its own state.
"""
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

V = TypeVar("V")


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class Job:
    """Progress of one background batch."""
    job_id: str
    total: int
    status: JobStatus = JobStatus.PENDING
    processed: int = 0
    results: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "status": self.status.value,
            "total": self.total,
            "processed": self.processed,
            "results": list(self.results),
            "errors": list(self.errors),
            "error": self.error,
        }


class JobStore:
    """Thread-safe job registry, oldest jobs evicted past max_jobs."""

    def __init__(self, max_jobs: int = 100):
        self.max_jobs = max_jobs
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def create(self, total: int) -> Job:
        job = Job(job_id=uuid.uuid4().hex[:12], total=total)
        with self._lock:
            self._jobs[job.job_id] = job
            while len(self._jobs) > self.max_jobs:
                oldest = min(self._jobs.values(), key=lambda j: j.created_at)
                del self._jobs[oldest.job_id]
        return job

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def record(
        self,
        job_id: str,
        result: Optional[Dict[str, Any]] = None,
        error: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Count one processed item and keep its result or error."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            job.status = JobStatus.RUNNING
            job.processed += 1
            if result is not None:
                job.results.append(result)
            if error is not None:
                job.errors.append(error)

    def finish(self, job_id: str, error: Optional[str] = None) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            job.status = JobStatus.ERROR if error else JobStatus.COMPLETED
            job.error = error


class TTLCache(Generic[V]):
    """
    Small thread-safe cache whose entries expire after ttl seconds.

    Args:
        ttl: Entry lifetime in seconds
        clock: Time source (tests pass a fake)
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[str, tuple] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self.clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._entries[key] = (self.clock() + self.ttl, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        now = self.clock()
        with self._lock:
            return sum(1 for expires_at, _ in self._entries.values() if now < expires_at)
