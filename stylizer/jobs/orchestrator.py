"""Drives one job from pending to a terminal state.

Steps:
1. Derive the output destination from the job id
2. Submit the original to the provider (once, no retry)
3. Poll at a fixed interval until completed, failed or the attempt ceiling
4. Fetch the result into the processed area
5. Record exactly one terminal update in the job store
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable

from stylizer.errors import JobNotFoundError, ProviderError, ProviderTimeoutError
from stylizer.jobs.models import JobRecord, JobStatus
from stylizer.jobs.store import JobStore
from stylizer.providers.base import STYLE_DIRECTIVE, PollState, TransformationProvider
from stylizer.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_MAX_ATTEMPTS = 60


class JobOrchestrator:
    """Runs the submit/poll/fetch cycle for a job and records the outcome."""

    def __init__(
        self,
        store: JobStore,
        provider: TransformationProvider,
        artifacts: ArtifactStore,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        style_directive: str = STYLE_DIRECTIVE,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self._provider = provider
        self._artifacts = artifacts
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._style_directive = style_directive
        self._sleep = sleep

    async def run(self, job_id: int) -> JobRecord:
        """Process a job. Provider and timeout failures end up on the record."""
        job = self._store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        logger.info("Starting to process image %d from %s", job.id, job.original_path)
        output_path = self._artifacts.processed_path_for(job)

        try:
            processed_path = await self._transform(job, output_path)
        except ProviderError as exc:
            message = str(exc) or "Unknown error during image processing"
        except Exception as exc:
            logger.exception("Unexpected error processing image %d", job.id)
            message = str(exc) or "Unknown error during image processing"
        else:
            logger.info("Image %d completed: %s", job.id, processed_path)
            return self._store.update(
                job.id,
                status=JobStatus.COMPLETED,
                processed_path=processed_path,
                completed_at=datetime.utcnow(),
            )

        logger.warning("Image %d failed: %s", job.id, message)
        return self._store.update(
            job.id,
            status=JobStatus.ERROR,
            error=message,
            completed_at=datetime.utcnow(),
        )

    async def _transform(self, job: JobRecord, output_path: str) -> str:
        handle = await self._provider.submit(job.original_path, self._style_directive)
        logger.info("Image %d submitted to %s as %s", job.id, self._provider.name, handle)

        try:
            result_ref = await self._wait_for_result(job.id, handle)
            return await self._provider.fetch(result_ref, output_path)
        finally:
            await self._provider.discard(handle)

    async def _wait_for_result(self, job_id: int, handle: str) -> str:
        for attempt in range(1, self._max_attempts + 1):
            result = await self._provider.poll(handle)
            logger.debug(
                "Image %d poll %d/%d: %s (progress=%s)",
                job_id, attempt, self._max_attempts, result.state.value, result.progress,
            )
            if result.state == PollState.COMPLETED:
                if not result.result_ref:
                    raise ProviderError("Transformation completed without a result")
                return result.result_ref
            if result.state == PollState.FAILED:
                raise ProviderError(result.reason or "Transformation failed")
            if attempt < self._max_attempts:
                await self._sleep(self._poll_interval)

        raise ProviderTimeoutError(
            f"Transformation timed out after {self._max_attempts} status checks"
        )
