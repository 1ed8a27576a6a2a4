"""Tool-use / tool-result correlation across all agents of a session."""
from __future__ import annotations

import logging
from typing import Iterable

from loom.events import Event, ToolResultBlock
from loom.merge import chronological

logger = logging.getLogger(__name__)


class ToolResult:
    __slots__ = ("content", "is_error", "source_event_id")

    def __init__(self, content: str, is_error: bool, source_event_id: str):
        self.content = content
        self.is_error = is_error
        self.source_event_id = source_event_id

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "is_error": self.is_error,
            "source_event_id": self.source_event_id,
        }

    def __eq__(self, other):
        return isinstance(other, ToolResult) and other.to_dict() == self.to_dict()

    def __repr__(self):
        return f"ToolResult({self.content[:20]!r}, from={self.source_event_id!r})"


class Correlation:
    """Resolved results per tool id plus the events they make redundant."""

    __slots__ = ("results", "elided_ids", "duplicate_result_ids")

    def __init__(self, results: dict[str, ToolResult | None], elided_ids: set[str],
                 duplicate_result_ids: list[str]):
        self.results = results
        self.elided_ids = elided_ids
        self.duplicate_result_ids = duplicate_result_ids

    def result_for(self, tool_id: str) -> ToolResult | None:
        return self.results.get(tool_id)


def index_tool_uses(events: Iterable[Event]) -> dict[str, str]:
    """Map tool id -> id of the event that declared it (first declaration wins)."""
    index: dict[str, str] = {}
    for e in events:
        for tu in e.tool_uses:
            if not tu.tool_id:
                continue
            if tu.tool_id in index:
                logger.debug("tool id %s declared again in event %s (first in %s)",
                             tu.tool_id, e.id, index[tu.tool_id])
                continue
            index[tu.tool_id] = e.id
    return index


def is_fully_matched(event: Event, index: dict[str, str]) -> bool:
    """True if every block is a tool result answering an indexed tool use."""
    blocks = event.blocks
    if not blocks:
        return False
    return all(isinstance(b, ToolResultBlock) and b.tool_id in index for b in blocks)


def correlate(events: Iterable[Event]) -> Correlation:
    ordered = chronological(events)
    index = index_tool_uses(ordered)

    results: dict[str, ToolResult | None] = {tool_id: None for tool_id in index}
    duplicates: set[str] = set()
    elided: set[str] = set()

    for e in ordered:
        for tr in e.tool_results:
            if tr.tool_id not in index:
                continue
            if results[tr.tool_id] is not None:
                logger.debug("ignoring later result for %s in event %s",
                             tr.tool_id, e.id)
                duplicates.add(tr.tool_id)
                continue
            results[tr.tool_id] = ToolResult(tr.content, tr.is_error, e.id)
        if is_fully_matched(e, index):
            elided.add(e.id)

    return Correlation(results, elided, sorted(duplicates))
