from __future__ import annotations

from collections import defaultdict
from typing import Callable

from loguru import logger

from boatresearch.models.schemas import ResearchStatus

StatusListener = Callable[[ResearchStatus], None]


class StatusPublisher:
    """Fans research status snapshots out to per-listing subscribers.

    Delivery is synchronous and best-effort: a listener that raises is
    dropped and the remaining listeners still receive the snapshot.
    Subscribers unsubscribe themselves after a terminal snapshot.
    """

    def __init__(self) -> None:
        self._listeners: dict[int, list[StatusListener]] = defaultdict(list)

    def subscribe(self, listing_id: int, listener: StatusListener) -> Callable[[], None]:
        self._listeners[listing_id].append(listener)

        def unsubscribe() -> None:
            self._remove(listing_id, listener)

        return unsubscribe

    def has_subscribers(self, listing_id: int) -> bool:
        return bool(self._listeners.get(listing_id))

    def publish(self, listing_id: int, status: ResearchStatus) -> None:
        for listener in list(self._listeners.get(listing_id, ())):
            try:
                listener(status)
            except Exception as exc:
                logger.warning(f"Dropping status listener for listing {listing_id}: {exc}")
                self._remove(listing_id, listener)

    def _remove(self, listing_id: int, listener: StatusListener) -> None:
        listeners = self._listeners.get(listing_id)
        if not listeners:
            return
        try:
            listeners.remove(listener)
        except ValueError:
            return
        if not listeners:
            del self._listeners[listing_id]
