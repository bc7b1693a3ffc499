from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable

from boatresearch.models.schemas import ResearchStatus
from boatresearch.research_core.models.interfaces import JobStatus, SelectionKind

ACTIVE_STATUSES = frozenset({JobStatus.RUNNING, JobStatus.WAITING_FOR_INPUT})
TERMINAL_STATUSES = frozenset({JobStatus.COMPLETE, JobStatus.FAILED})


@dataclass
class PendingSelection:
    kind: SelectionKind
    step: str | None
    candidates: list[Any] = field(default_factory=list)


class ResearchJob:
    """In-memory state of one listing's research run.

    Transitions: running -> (waiting_for_input <-> running)* -> complete | failed.
    While waiting, the job holds exactly one single-shot resume future; the
    pipeline coroutine is suspended on it until ``resume`` is called.
    """

    def __init__(
        self,
        listing_id: int,
        on_change: Callable[[ResearchJob], None] | None = None,
    ):
        self.listing_id = listing_id
        self.status = JobStatus.RUNNING
        self.step: str | None = None
        self.error_message: str | None = None
        self.pending_selection: PendingSelection | None = None
        self._resume_handle: asyncio.Future[Any] | None = None
        self._on_change = on_change

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def snapshot(self) -> ResearchStatus:
        status = ResearchStatus(
            listing_id=self.listing_id,
            status=self.status,
            step=self.step,
            error_message=self.error_message,
        )
        pending = self.pending_selection
        if self.status is JobStatus.WAITING_FOR_INPUT and pending is not None:
            if pending.kind is SelectionKind.SPECS:
                status.candidates = list(pending.candidates)
            elif pending.kind is SelectionKind.REVIEWS:
                status.review_candidates = list(pending.candidates)
            else:
                status.forum_candidates = list(pending.candidates)
        return status

    def set_step(self, step: str) -> None:
        self.step = step
        self._notify()

    async def wait_for_selection(self, kind: SelectionKind, candidates: list[Any]) -> Any:
        """Park the pipeline until a human submits a selection of ``kind``."""
        if self._resume_handle is not None:
            raise RuntimeError(f"Job {self.listing_id} is already waiting for input")

        handle: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self.pending_selection = PendingSelection(kind=kind, step=self.step, candidates=list(candidates))
        self._resume_handle = handle
        self.status = JobStatus.WAITING_FOR_INPUT
        self._notify()
        return await handle

    def resume(self, kind: SelectionKind, selection: Any) -> bool:
        """Deliver a selection; returns False when nothing of ``kind`` is pending."""
        pending = self.pending_selection
        handle = self._resume_handle
        if (
            self.status is not JobStatus.WAITING_FOR_INPUT
            or pending is None
            or pending.kind is not kind
            or handle is None
            or handle.done()
        ):
            return False

        # Cleared before waking the pipeline so a duplicate submission is a no-op.
        self.pending_selection = None
        self._resume_handle = None
        self.status = JobStatus.RUNNING
        self.step = pending.step
        handle.set_result(selection)
        self._notify()
        return True

    def complete(self) -> None:
        self.status = JobStatus.COMPLETE
        self.step = None
        self._notify()

    def fail(self, message: str) -> None:
        self.status = JobStatus.FAILED
        self.error_message = message
        self.step = None
        self.pending_selection = None
        self._resume_handle = None
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self)
