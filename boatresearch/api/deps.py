from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from boatresearch.research_core.models.interfaces import ResearchStore
from boatresearch.research_core.pipeline import PipelineRunner
from boatresearch.research_core.registry import JobRegistry
from boatresearch.services.browser_mutex import BrowserMutex
from boatresearch.services.database import ResearchDatabase
from boatresearch.services.status_publisher import StatusPublisher
from boatresearch.tools.page_fetcher import PageFetcher
from boatresearch.tools.specs_site import SpecsSiteClient


@dataclass
class ResearchServices:
    """Process-wide research services, built once at startup."""

    store: ResearchStore
    publisher: StatusPublisher
    registry: JobRegistry

    async def close(self) -> None:
        await self.registry.shutdown()
        close = getattr(self.store, "close", None)
        if close is not None:
            await close()


def build_services(store: ResearchStore | None = None) -> ResearchServices:
    store = store or ResearchDatabase()
    fetcher = PageFetcher(BrowserMutex())
    publisher = StatusPublisher()
    runner = PipelineRunner(store, SpecsSiteClient(fetcher), fetcher)
    registry = JobRegistry(runner, store, publisher)
    return ResearchServices(store=store, publisher=publisher, registry=registry)


def get_services(request: Request) -> ResearchServices:
    return request.app.state.services
