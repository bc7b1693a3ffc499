from __future__ import annotations

import pytest

from boatresearch.research_core.models.interfaces import Listing
from tests.fakes import InMemoryStore


@pytest.fixture
def catalina_listing() -> Listing:
    return Listing(
        id=1,
        link_url="https://listings.example.com/boat/1",
        listing_name="2005 Catalina 42",
        manufacturer="Catalina",
        boat_class="42",
        build_year=2005,
        length_in_meters=12.8,
    )


@pytest.fixture
def store(catalina_listing) -> InMemoryStore:
    return InMemoryStore([catalina_listing])
