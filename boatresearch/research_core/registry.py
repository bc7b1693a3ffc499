from __future__ import annotations

import asyncio

from loguru import logger

from boatresearch.config import settings
from boatresearch.models.schemas import ResearchStatus
from boatresearch.research_core.jobs import ResearchJob
from boatresearch.research_core.models.interfaces import JobStatus, ResearchStore, SelectionKind
from boatresearch.research_core.pipeline import PipelineRunner
from boatresearch.services import logger as log_service
from boatresearch.services.status_publisher import StatusPublisher


class ResearchAdmissionError(RuntimeError):
    """Research could not be started; the caller may retry later."""


class ResearchAlreadyRunningError(ResearchAdmissionError):
    pass


class TooManyConcurrentResearchError(ResearchAdmissionError):
    pass


class JobRegistry:
    """Owns every in-memory research job and admits new ones."""

    def __init__(
        self,
        runner: PipelineRunner,
        store: ResearchStore,
        publisher: StatusPublisher,
        *,
        max_concurrent: int | None = None,
        retention: int | None = None,
    ):
        self.runner = runner
        self.store = store
        self.publisher = publisher
        self.max_concurrent = max_concurrent or settings.research_max_concurrent
        self.retention = retention or settings.research_job_retention
        self._jobs: dict[int, ResearchJob] = {}
        self._tasks: set[asyncio.Task] = set()

    def get_job(self, listing_id: int) -> ResearchJob | None:
        return self._jobs.get(listing_id)

    def active_count(self) -> int:
        return sum(1 for job in self._jobs.values() if job.is_active)

    def get_status(self, listing_id: int) -> ResearchStatus:
        job = self._jobs.get(listing_id)
        if job is None:
            return ResearchStatus(listing_id=listing_id, status=JobStatus.PENDING)
        return job.snapshot()

    async def start(self, listing_id: int) -> ResearchStatus:
        existing = self._jobs.get(listing_id)
        if existing is not None and existing.is_active:
            raise ResearchAlreadyRunningError("Research already running for this listing")
        if self.active_count() >= self.max_concurrent:
            raise TooManyConcurrentResearchError("Too many concurrent research jobs")

        self._evict_stale()
        job = ResearchJob(listing_id, on_change=self._publish)
        # Registered before the first await so concurrent starts see it.
        self._jobs.pop(listing_id, None)
        self._jobs[listing_id] = job
        self._publish(job)

        try:
            await self.store.upsert_research_record(
                listing_id, status="running", error_message=None
            )
        except Exception as exc:
            job.fail(str(exc) or exc.__class__.__name__)
            raise

        task = asyncio.create_task(self.runner.run(job), name=f"research-{listing_id}")
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

        log_service.log_event("research_started", "Research started", listing_id=listing_id)
        return job.snapshot()

    def select_specs(self, listing_id: int, slug: str | None) -> bool:
        return self._resume(listing_id, SelectionKind.SPECS, slug or None)

    def select_reviews(self, listing_id: int, urls: list[str]) -> bool:
        return self._resume(listing_id, SelectionKind.REVIEWS, list(urls))

    def select_forums(self, listing_id: int, urls: list[str]) -> bool:
        return self._resume(listing_id, SelectionKind.FORUMS, list(urls))

    async def shutdown(self) -> None:
        """Cancel in-flight pipelines; used on process exit only."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _resume(self, listing_id: int, kind: SelectionKind, selection) -> bool:
        job = self._jobs.get(listing_id)
        if job is None:
            return False
        resumed = job.resume(kind, selection)
        if not resumed:
            logger.info(f"Ignoring {kind.value} selection for listing {listing_id}: nothing pending")
        return resumed

    def _publish(self, job: ResearchJob) -> None:
        self.publisher.publish(job.listing_id, job.snapshot())

    def _evict_stale(self) -> None:
        """Forget the oldest finished jobs nobody is watching once over retention."""
        overflow = len(self._jobs) - self.retention + 1
        if overflow <= 0:
            return
        for listing_id, job in list(self._jobs.items()):
            if overflow <= 0:
                break
            if job.is_terminal and not self.publisher.has_subscribers(listing_id):
                del self._jobs[listing_id]
                overflow -= 1

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Research task {task.get_name()} crashed: {exc}")
