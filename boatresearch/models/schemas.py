from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from boatresearch.research_core.models.interfaces import (
    JobStatus,
    LinkCandidate,
    SpecsCandidate,
)


# --- Requests ---


class SpecsSelectionRequest(BaseModel):
    slug: str | None = None


class LinkSelectionRequest(BaseModel):
    urls: list[str] = Field(default_factory=list)


# --- Responses ---


class ResearchStatus(BaseModel):
    listing_id: int
    status: JobStatus
    step: str | None = None
    error_message: str | None = None
    candidates: list[SpecsCandidate] | None = None
    review_candidates: list[LinkCandidate] | None = None
    forum_candidates: list[LinkCandidate] | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETE, JobStatus.FAILED)


class SelectionResponse(BaseModel):
    ok: bool


class ResearchResultResponse(BaseModel):
    listing: dict[str, Any] | None
    model: dict[str, Any] | None
