"""In-process job dispatcher using asyncio tasks.

Every job runs in its own task so slow providers never hold up other
jobs. A done-callback supervises each task: if it dies before writing a
terminal state (crash or cancellation) the job is marked as an error
instead of being left pending forever.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional

from stylizer.errors import JobNotFoundError, JobStateError
from stylizer.jobs.dispatcher import JobDispatcher
from stylizer.jobs.models import JobRecord, JobStatus
from stylizer.jobs.store import JobStore

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Processing was interrupted before the image could be transformed"


class InProcessDispatcher(JobDispatcher):
    """Fire-and-forget launcher with per-task failure supervision."""

    def __init__(self, store: JobStore, worker_fn: Callable[[int], Awaitable[JobRecord]]):
        """
        worker_fn: async callable(job_id) -> JobRecord
            Drives the job to a terminal state (JobOrchestrator.run).
        """
        self._store = store
        self._worker_fn = worker_fn
        self._tasks: Dict[int, asyncio.Task] = {}
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def launch(self, job: JobRecord) -> None:
        if not self._running:
            raise RuntimeError("Dispatcher is not running")
        if job.id in self._tasks:
            logger.warning("Job %d is already being processed", job.id)
            return
        task = asyncio.create_task(self._worker_fn(job.id), name=f"stylize-job-{job.id}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda t, job_id=job.id: self._on_done(job_id, t))

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            logger.info("Cancelling %d in-flight job(s)", len(tasks))
            await asyncio.gather(*tasks, return_exceptions=True)

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)
            # Let done-callbacks run
            await asyncio.sleep(0)

    def _on_done(self, job_id: int, task: asyncio.Task) -> None:
        self._tasks.pop(job_id, None)

        failure: Optional[BaseException]
        if task.cancelled():
            failure = asyncio.CancelledError()
            logger.warning("Job %d was cancelled", job_id)
        else:
            failure = task.exception()
            if failure is not None:
                logger.error(
                    "Job %d task crashed", job_id,
                    exc_info=(type(failure), failure, failure.__traceback__),
                )
        if failure is None:
            return

        try:
            self._store.update(
                job_id,
                status=JobStatus.ERROR,
                error=INTERRUPTED_MESSAGE,
                completed_at=datetime.utcnow(),
            )
        except JobStateError:
            # Terminal state was already recorded
            pass
        except JobNotFoundError:
            logger.warning("Job %d vanished before its failure could be recorded", job_id)
