"""Abstract repository interface (port) for classification jobs."""

from abc import ABC, abstractmethod

from orchestrator.domain.entities.job import Job, JobStatus


class JobRepository(ABC):
    """Port for job persistence, implemented in the infrastructure layer.

    Updates are conditional on the status the caller read, so two writers
    racing on one job cannot silently overwrite each other.
    """

    @property
    def supports_conditional_writes(self) -> bool:
        """Whether :meth:`update` is an atomic compare-and-swap on status.

        When ``False`` the caller must serialize writes per job itself.
        """
        return True

    @abstractmethod
    async def get_by_id(self, job_id: str) -> Job | None:
        """Retrieve a single job by ID."""
        ...

    @abstractmethod
    async def create(self, job: Job) -> Job:
        """Persist a new job. Raises DuplicateEntityError if the ID is taken."""
        ...

    @abstractmethod
    async def update(self, job: Job, expected_status: JobStatus) -> bool:
        """Write *job* only if the stored status still equals *expected_status*.

        Returns ``False`` (writing nothing) when the stored job has moved on
        or no longer exists.
        """
        ...

    @abstractmethod
    async def query(
        self,
        *,
        device_id: str | None = None,
        status: JobStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Job], int]:
        """Return a page of matching jobs, newest first, and the total match count."""
        ...

    @abstractmethod
    async def count_by_status(self) -> dict[JobStatus, int]:
        """Return the number of stored jobs per status; absent statuses may be omitted."""
        ...
