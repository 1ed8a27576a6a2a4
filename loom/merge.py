"""Chronological merge of events from independent agent logs."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from loom.events import Event

logger = logging.getLogger(__name__)

# Sort position for events from a source that carries no timestamps at all.
_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def _source_key(event: Event) -> str:
    if event.source_agent is not None:
        return event.source_agent
    return event.agent_id or ""


def _effective_times(events: list[Event]) -> list[datetime]:
    """Timestamp per event, borrowing from neighbours in source order when missing."""
    times: list[datetime | None] = [e.timestamp for e in events]
    last = None
    for i, ts in enumerate(times):
        if ts is None:
            times[i] = last
        else:
            last = ts
    # leading gaps borrow from the first timestamped event after them
    following = None
    for i in range(len(times) - 1, -1, -1):
        if events[i].timestamp is not None:
            following = events[i].timestamp
        elif times[i] is None:
            times[i] = following
    return [ts if ts is not None else _EARLIEST for ts in times]


def _by_source(events: Iterable[Event]) -> dict[str, list[Event]]:
    sources: dict[str, list[Event]] = {}
    for e in events:
        sources.setdefault(_source_key(e), []).append(e)
    for evs in sources.values():
        evs.sort(key=lambda e: e.source_index)
    return sources


def chronological(events: Iterable[Event]) -> list[Event]:
    """Return events ordered by time, independent of input order.

    Events are regrouped by the agent owning their log (the producing agent
    when no owner was recorded) and ordered within it by line position; an
    event missing a timestamp takes the time of its nearest timestamped
    predecessor, so it stays right after it. Ties fall back to owner (main
    first), line position, then event id, so a log mixing records of several
    agents keeps its own order.
    """
    keyed = []
    for source, evs in _by_source(events).items():
        for pos, (e, ts) in enumerate(zip(evs, _effective_times(evs))):
            keyed.append(((ts, source != "", source, pos, e.id), e))
    keyed.sort(key=lambda x: x[0])
    return [e for _, e in keyed]


def merge_logs(sources: Iterable[list[Event]]) -> list[Event]:
    """Merge per-agent event lists into one ascending sequence.

    Each list is owned by the agent of its first event.
    """
    merged: list[Event] = []
    for evs in sources:
        if not evs:
            continue
        owner = evs[0].agent_id or ""
        for e in evs:
            e.source_agent = owner
        merged.extend(evs)
    return chronological(merged)


def dedupe_events(events: list[Event]) -> tuple[list[Event], list[str]]:
    """Drop repeated event ids, keeping the first in the given order."""
    seen: set[str] = set()
    kept: list[Event] = []
    dupes: list[str] = []
    for e in events:
        if e.id in seen:
            dupes.append(e.id)
            continue
        seen.add(e.id)
        kept.append(e)
    if dupes:
        logger.debug("dropped %d duplicate event ids: %s", len(dupes), dupes)
    return kept, sorted(set(dupes))
