"""Boat Research - listing research from the terminal

Runs the research pipeline for one listing in-process and prompts on stdin
whenever a stage needs a human selection.
"""

import argparse
import asyncio

from boatresearch.api.deps import build_services
from boatresearch.models.schemas import ResearchStatus
from boatresearch.research_core.models.interfaces import JobStatus
from boatresearch.services.database import ResearchDatabase


def _prompt(question: str) -> str:
    return input(question).strip()


async def _ask_specs(status: ResearchStatus) -> str | None:
    candidates = status.candidates or []
    print(f"\n[?] Which specs entry matches? ({len(candidates)} candidates)")
    for i, c in enumerate(candidates, 1):
        marker = " *recommended*" if c.recommended else ""
        print(f"  {i}. {c.model_name} (LOA {c.length_overall or '?'}, first built {c.first_built or '?'}){marker}")
    answer = await asyncio.to_thread(_prompt, "Number (blank = none match): ")
    if not answer.isdigit() or not 1 <= int(answer) <= len(candidates):
        return None
    return candidates[int(answer) - 1].slug


async def _ask_links(label: str, candidates: list) -> list[str]:
    print(f"\n[?] Select {label} to keep ({len(candidates)} candidates)")
    for i, c in enumerate(candidates, 1):
        print(f"  {i}. {c.title} [{c.source}]")
        if c.snippet:
            print(f"     {c.snippet[:120]}")
    answer = await asyncio.to_thread(_prompt, "Numbers, comma separated (blank = skip): ")
    picked: list[str] = []
    for part in answer.split(","):
        part = part.strip()
        if part.isdigit() and 1 <= int(part) <= len(candidates):
            picked.append(candidates[int(part) - 1].url)
    return picked


async def run_research(listing_id: int, init_schema: bool = False):
    """Research one listing, answering selection prompts interactively."""
    store = ResearchDatabase()
    if init_schema:
        await store.ensure_schema()
    services = build_services(store)
    registry = services.registry

    queue: asyncio.Queue[ResearchStatus] = asyncio.Queue()
    unsubscribe = services.publisher.subscribe(listing_id, queue.put_nowait)
    try:
        if await store.get_listing(listing_id) is None:
            print(f"[!] Listing {listing_id} not found")
            return

        await registry.start(listing_id)
        print(f"Researching listing {listing_id}")
        print("-" * 50)

        while True:
            status = await queue.get()

            if status.status is JobStatus.RUNNING:
                print(f"[~] {status.step or 'starting'}")

            elif status.status is JobStatus.WAITING_FOR_INPUT:
                if status.candidates is not None:
                    registry.select_specs(listing_id, await _ask_specs(status))
                elif status.review_candidates is not None:
                    registry.select_reviews(listing_id, await _ask_links("reviews", status.review_candidates))
                elif status.forum_candidates is not None:
                    registry.select_forums(listing_id, await _ask_links("forum threads", status.forum_candidates))

            elif status.status is JobStatus.COMPLETE:
                record = await store.get_research_record(listing_id) or {}
                print("\n[*] Research Complete!")
                if record.get("listing_summary"):
                    print(f"\n{record['listing_summary']}")
                break

            elif status.status is JobStatus.FAILED:
                print(f"\n[!] Error: {status.error_message or 'Unknown error'}")
                break
    finally:
        unsubscribe()
        await services.close()


def main():
    parser = argparse.ArgumentParser(description="Boat listing research")
    parser.add_argument("--listing-id", "-l", type=int, required=True, help="Listing id to research")
    parser.add_argument("--init-schema", action="store_true", help="Create research tables if missing")

    args = parser.parse_args()

    asyncio.run(run_research(args.listing_id, args.init_schema))


if __name__ == "__main__":
    main()
