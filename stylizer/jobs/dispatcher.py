"""Job dispatcher interface."""

from abc import ABC, abstractmethod

from stylizer.jobs.models import JobRecord


class JobDispatcher(ABC):
    """Abstract interface for launching job processing."""

    @property
    @abstractmethod
    def running(self) -> bool:
        ...

    @abstractmethod
    def launch(self, job: JobRecord) -> None:
        """Start processing a job without waiting for it to finish."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start the dispatcher."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the dispatcher, cancelling jobs still in flight."""
        ...

    @abstractmethod
    async def wait_idle(self) -> None:
        """Wait until every launched job has finished."""
        ...
