"""Background job records, a registry for them and a thread pool runner."""
from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Union

LOGGER = logging.getLogger(__name__)

JOB_PENDING = "pending"
JOB_RUNNING = "running"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"


class JobNotFoundError(KeyError):
    """Raised when a job id is not known to the job store."""


def new_job_id() -> str:
    return uuid.uuid4().hex


@dataclass
class ScrapeTarget:
    """One area to search, e.g. a postal code area or a neighbourhood."""

    name: str
    location: str
    postal_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "location": self.location, "postalCode": self.postal_code}


@dataclass
class ScrapeJob:
    """State of one scrape run, polled by id while it executes."""

    id: str
    campaign_name: str
    targets: List[ScrapeTarget]
    mode: str = "category"
    category: Optional[str] = None
    postal_codes: List[str] = field(default_factory=list)
    city: Optional[str] = None
    status: str = JOB_PENDING
    progress: int = 0
    current_target: Optional[str] = None
    current_category: Optional[str] = None
    total_found: int = 0
    results: List[Any] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "scrape",
            "campaignName": self.campaign_name,
            "targets": [target.to_dict() for target in self.targets],
            "mode": self.mode,
            "category": self.category,
            "postalCodes": list(self.postal_codes),
            "status": self.status,
            "progress": self.progress,
            "currentTarget": self.current_target,
            "currentCategory": self.current_category,
            "totalFound": self.total_found,
            "errors": list(self.errors),
            "summary": dict(self.summary),
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "error": self.error,
        }


@dataclass
class EmailExtractionResult:
    lead_id: str
    status: str
    name: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    all_emails: List[str] = field(default_factory=list)
    total_found: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "leadId": self.lead_id,
            "status": self.status,
            "name": self.name,
            "website": self.website,
            "email": self.email,
            "allEmails": list(self.all_emails),
            "totalFound": self.total_found,
            "error": self.error,
        }


@dataclass
class EmailExtractionJob:
    """State of a bulk email extraction run."""

    id: str
    lead_ids: List[str]
    status: str = JOB_PENDING
    progress: int = 0
    processed: int = 0
    found: int = 0
    failed: int = 0
    skipped: int = 0
    results: List[EmailExtractionResult] = field(default_factory=list)
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    error: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.lead_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "email_extraction",
            "status": self.status,
            "progress": self.progress,
            "total": self.total,
            "processed": self.processed,
            "found": self.found,
            "failed": self.failed,
            "skipped": self.skipped,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "error": self.error,
        }


Job = Union[ScrapeJob, EmailExtractionJob]


class JobStore(Protocol):
    """Registry of jobs addressable by id."""

    def get(self, job_id: str) -> Optional[Job]:  # pragma: no cover - runtime protocol
        """Return the job or ``None`` when unknown."""

    def put(self, job: Job) -> None:  # pragma: no cover - runtime protocol
        """Insert or replace ``job``."""

    def list(self) -> Sequence[Job]:  # pragma: no cover - runtime protocol
        """Return every job known to the store."""


class InMemoryJobStore:
    """Thread-safe dictionary of jobs kept for the lifetime of the process."""

    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def put(self, job: Job) -> None:
        with self._lock:
            self._jobs[job.id] = job

    def list(self) -> List[Job]:
        with self._lock:
            return list(self._jobs.values())


class JobHandle:
    """Container representing a job running in the background."""

    def __init__(self, job_id: str, future: Future[Any]) -> None:
        self.job_id = job_id
        self._future = future

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> Any:
        return self._future.result(timeout=timeout)


class JobRunner:
    """Run job callables on a thread pool.

    Jobs are independent of each other; each job performs its own network
    calls one after another.
    """

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="lead-job")
        self._handles: Dict[str, JobHandle] = {}
        self._lock = threading.Lock()

    def submit(self, job_id: str, func: Callable[..., Any], *args: Any) -> JobHandle:
        handle = JobHandle(job_id, self._executor.submit(func, *args))
        with self._lock:
            self._handles[job_id] = handle
        LOGGER.debug("Submitted job %s", job_id)
        return handle

    def handle(self, job_id: str) -> Optional[JobHandle]:
        with self._lock:
            return self._handles.get(job_id)

    def wait(self, job_id: str, timeout: Optional[float] = None) -> Any:
        handle = self.handle(job_id)
        if handle is None:
            raise JobNotFoundError(job_id)
        return handle.result(timeout)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._executor.shutdown(wait=wait)


__all__ = [
    "EmailExtractionJob",
    "EmailExtractionResult",
    "InMemoryJobStore",
    "JOB_COMPLETED",
    "JOB_FAILED",
    "JOB_PENDING",
    "JOB_RUNNING",
    "Job",
    "JobHandle",
    "JobNotFoundError",
    "JobRunner",
    "JobStore",
    "ScrapeJob",
    "ScrapeTarget",
    "new_job_id",
]
