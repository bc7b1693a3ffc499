from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Protocol


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    WAITING_FOR_INPUT = "waiting_for_input"
    COMPLETE = "complete"
    FAILED = "failed"


class SelectionKind(str, Enum):
    SPECS = "specs"
    REVIEWS = "reviews"
    FORUMS = "forums"


@dataclass(slots=True)
class Listing:
    """Read-only view of a scraped listing row."""

    id: int
    link_url: str | None = None
    listing_name: str | None = None
    manufacturer: str | None = None
    boat_class: str | None = None
    build_year: int | None = None
    length_in_meters: float | None = None


@dataclass(slots=True)
class SpecsCandidate:
    model_name: str
    slug: str
    length_overall: str | None = None
    first_built: str | None = None
    recommended: bool = False


@dataclass(slots=True)
class LinkCandidate:
    """A review or forum search hit offered for selection."""

    title: str
    url: str
    source: str
    snippet: str = ""


@dataclass(slots=True)
class LinkResult:
    title: str
    source: str
    url: str
    excerpt: str = ""

    @classmethod
    def from_candidate(cls, candidate: LinkCandidate) -> LinkResult:
        return cls(
            title=candidate.title,
            source=candidate.source,
            url=candidate.url,
            excerpt=candidate.snippet,
        )


@dataclass(slots=True)
class SailboatSpecs:
    url: str | None = None
    hull_type: str | None = None
    rigging: str | None = None
    construction: str | None = None
    displacement: float | None = None
    ballast: float | None = None
    loa: float | None = None
    lwl: float | None = None
    beam: float | None = None
    draft_min: float | None = None
    draft_max: float | None = None
    sail_area: float | None = None
    sa_displacement: float | None = None
    ballast_displacement: float | None = None
    displacement_length: float | None = None
    comfort_ratio: float | None = None
    capsize_screening: float | None = None
    engine: str | None = None
    aux_power_make: str | None = None
    aux_power_model: str | None = None
    aux_power_fuel: str | None = None
    water: float | None = None
    designer: str | None = None
    first_built: int | None = None
    last_built: int | None = None
    number_built: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def filled_fields(self) -> int:
        return sum(1 for value in self.to_dict().values() if value is not None)


@dataclass(frozen=True, slots=True)
class ModelKey:
    manufacturer: str
    boat_class: str
    year_min: int
    year_max: int

    @classmethod
    def build(
        cls,
        manufacturer: str | None,
        boat_class: str | None,
        year_min: int | None,
        year_max: int | None,
    ) -> ModelKey:
        return cls(
            manufacturer=manufacturer or "Unknown",
            boat_class=boat_class or "Unknown",
            year_min=year_min or 0,
            year_max=year_max or 0,
        )


class ResearchStore(Protocol):
    """Persistence collaborator used by the research pipeline."""

    async def get_listing(self, listing_id: int) -> Listing | None: ...

    async def get_research_record(self, listing_id: int) -> dict[str, Any] | None: ...

    async def upsert_research_record(self, listing_id: int, **fields: Any) -> None: ...

    async def find_model_research(self, key: ModelKey) -> dict[str, Any] | None: ...

    async def create_model_research(
        self, key: ModelKey, *, sailboat_data: dict[str, Any] | None
    ) -> dict[str, Any] | None: ...

    async def update_model_research(self, model_id: int, **fields: Any) -> None: ...

    async def find_latest_model_research(
        self, manufacturer: str, boat_class: str
    ) -> dict[str, Any] | None: ...

    async def find_search_mapping(self, search_key: str) -> dict[str, Any] | None: ...

    async def create_search_mapping(
        self, search_key: str, *, slug: str | None, model_name: str | None
    ) -> None: ...
