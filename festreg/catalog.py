"""Event catalog lookups."""

import logging

from rapidfuzz.distance import JaroWinkler

from festreg import Event

log = logging.getLogger(__name__)

DEFAULT_TITLE_THRESHOLD = 0.85


def _normalize_key(value: str) -> str:
    return value.strip().upper()


def find_event(
    events: list[Event],
    query: str,
    threshold: float = DEFAULT_TITLE_THRESHOLD,
) -> Event:
    """Resolve an operator-typed event reference to a catalog entry.

    Lookup order:
    1. Exact event id
    2. Case-insensitive title
    3. Best Jaro-Winkler title similarity at or above the threshold

    Args:
        events: The event catalog.
        query: Event id or (possibly misspelt) title.
        threshold: Minimum title similarity for stage 3 (0 to 1).

    Returns:
        The matching Event.

    Raises:
        ValueError: If no event matches.
    """
    for event in events:
        if event.id == query.strip():
            return event

    key = _normalize_key(query)
    for event in events:
        if _normalize_key(event.title) == key:
            return event

    best: Event | None = None
    best_sim = -1.0
    for event in events:
        sim = JaroWinkler.similarity(key, _normalize_key(event.title))
        if sim >= threshold and sim > best_sim:
            best = event
            best_sim = sim

    if best is None:
        raise ValueError(f"Unknown event: {query!r}")

    log.debug("Event %r resolved to %s (similarity %.2f)", query, best.id, best_sim)
    return best


def events_by_category(events: list[Event], category: str) -> list[Event]:
    return [e for e in events if e.category == category.lower()]


def event_ids(events: list[Event]) -> list[str]:
    return [e.id for e in events]
