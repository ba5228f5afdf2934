"""In-memory job registry.

Owns every JobRecord. All reads return snapshot copies and every mutation
happens under a single lock, so a reader sees a record either before or
after an update, never halfway through one.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from stylizer.errors import JobNotFoundError, JobStateError
from stylizer.jobs.models import JobRecord, JobStatus

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS = {"id", "original_path", "created_at"}


class JobStore:
    """Thread-safe CRUD over job records keyed by integer id."""

    def __init__(self):
        self._jobs: Dict[int, JobRecord] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def create(
        self,
        original_path: str,
        original_file_name: str,
        created_at: Optional[datetime] = None,
    ) -> JobRecord:
        """Register a new pending job and return it."""
        with self._lock:
            job = JobRecord(
                id=self._next_id,
                original_file_name=original_file_name,
                original_path=original_path,
                created_at=created_at or datetime.utcnow(),
            )
            self._next_id += 1
            self._jobs[job.id] = job
            logger.info("Created job %d for %s", job.id, original_file_name)
            return job.model_copy()

    def get(self, job_id: int) -> Optional[JobRecord]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job is not None else None

    def update(self, job_id: int, **fields) -> JobRecord:
        """Merge fields into an existing record.

        Raises JobNotFoundError for unknown ids and JobStateError when the
        update sets the status of a job that is already terminal.
        """
        unknown = set(fields) - set(JobRecord.model_fields)
        if unknown:
            raise ValueError(f"Unknown job fields: {sorted(unknown)}")
        frozen = set(fields) & _IMMUTABLE_FIELDS
        if frozen:
            raise ValueError(f"Immutable job fields: {sorted(frozen)}")

        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                raise JobNotFoundError(job_id)

            if "status" in fields:
                new_status = JobStatus(fields["status"])
                if current.status.is_terminal:
                    raise JobStateError(
                        f"Job {job_id} is already {current.status.value}; "
                        f"cannot move to {new_status.value}"
                    )
                fields["status"] = new_status

            updated = current.model_copy(update=fields)
            self._jobs[job_id] = updated
            return updated.model_copy()

    def delete(self, job_id: int) -> bool:
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def list(self, status: Optional[JobStatus] = None) -> List[JobRecord]:
        with self._lock:
            jobs = [j.model_copy() for j in self._jobs.values()]
        if status is not None:
            jobs = [j for j in jobs if j.status == status]
        return sorted(jobs, key=lambda j: j.id)

    def counts(self) -> Dict[str, int]:
        """Number of jobs per status."""
        totals = {s.value: 0 for s in JobStatus}
        with self._lock:
            for job in self._jobs.values():
                totals[job.status.value] += 1
        return totals
