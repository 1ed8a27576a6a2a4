"""Timeline facade: raw per-agent logs in, display groups out."""
from __future__ import annotations

import logging
from typing import Iterator, Mapping

from loom.correlate import correlate
from loom.enrich import enrich_events
from loom.events import Event, parse_log
from loom.group import TimelineGroup, build_groups
from loom.merge import dedupe_events, merge_logs

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """The caller passed arguments the engine cannot work with."""


class RawLog:
    """Contents of one agent's JSONL log, as fetched."""

    __slots__ = ("text", "agent_id")

    def __init__(self, text: str | list[str], agent_id: str | None = None):
        self.text = text
        self.agent_id = agent_id


class Diagnostics:
    __slots__ = ("skipped_lines", "missing_fields", "duplicate_tool_result_ids",
                 "duplicate_event_ids", "elided_events")

    def __init__(self, skipped_lines: int = 0, missing_fields: int = 0,
                 duplicate_tool_result_ids: list[str] | None = None,
                 duplicate_event_ids: list[str] | None = None,
                 elided_events: int = 0):
        self.skipped_lines = skipped_lines
        self.missing_fields = missing_fields
        self.duplicate_tool_result_ids = duplicate_tool_result_ids or []
        self.duplicate_event_ids = duplicate_event_ids or []
        self.elided_events = elided_events

    def to_dict(self) -> dict:
        return {
            "skipped_lines": self.skipped_lines,
            "missing_fields": self.missing_fields,
            "duplicate_tool_result_ids": list(self.duplicate_tool_result_ids),
            "duplicate_event_ids": list(self.duplicate_event_ids),
            "elided_events": self.elided_events,
        }


class Timeline:
    __slots__ = ("session_id", "groups", "diagnostics")

    def __init__(self, session_id: str, groups: list[TimelineGroup], diagnostics: Diagnostics):
        self.session_id = session_id
        self.groups = groups
        self.diagnostics = diagnostics

    def __iter__(self) -> Iterator[TimelineGroup]:
        return iter(self.groups)

    def __len__(self) -> int:
        return len(self.groups)

    def __getitem__(self, i):
        return self.groups[i]

    def to_dict(self) -> dict:
        return {
            "session": self.session_id,
            "groups": [g.to_dict() for g in self.groups],
            "diagnostics": self.diagnostics.to_dict(),
        }


def _log_source(log) -> RawLog:
    agent_id = None
    if isinstance(log, RawLog):
        log, agent_id = log.text, log.agent_id
    if isinstance(log, str):
        return RawLog(log, agent_id)
    if isinstance(log, (list, tuple)) and all(isinstance(line, str) for line in log):
        return RawLog(list(log), agent_id)
    raise InvalidInputError(f"Unsupported log entry of type {type(log).__name__}")


def _validate(session_id, raw_logs, agent_names) -> None:
    if not session_id or not isinstance(session_id, str):
        raise InvalidInputError("session_id is required")
    if raw_logs is None:
        raise InvalidInputError("raw_logs is required")
    if not isinstance(raw_logs, (list, tuple)):
        raise InvalidInputError(f"raw_logs must be a list, got {type(raw_logs).__name__}")
    if agent_names is not None and not isinstance(agent_names, Mapping):
        raise InvalidInputError("agent_names must be a mapping of agent id to name")


def build_timeline(session_id: str, root_agent_id: str | None, raw_logs: list,
                   agent_names: Mapping[str, str] | None = None,
                   skip_blank: bool = True) -> Timeline:
    """Parse, correlate, merge, enrich and group one session's agent logs."""
    _validate(session_id, raw_logs, agent_names)
    sources = [_log_source(log) for log in raw_logs]

    parsed: list[list[Event]] = []
    skipped = missing = 0
    for source in sources:
        result = parse_log(source.text, skip_blank=skip_blank)
        if source.agent_id:
            # records without agentId belong to the agent whose log they came from
            for e in result.events:
                if e.agent_id is None:
                    e.agent_id = source.agent_id
        parsed.append(result.events)
        skipped += result.skipped_lines
        missing += result.missing_fields

    merged, dup_events = dedupe_events(merge_logs(parsed))
    correlation = correlate(merged)
    visible = [e for e in merged if e.id not in correlation.elided_ids]

    enriched = enrich_events(visible, correlation.results, root_agent_id=root_agent_id,
                             session_id=session_id, agent_names=agent_names)
    groups = build_groups(enriched, agent_names)

    diagnostics = Diagnostics(
        skipped_lines=skipped,
        missing_fields=missing,
        duplicate_tool_result_ids=correlation.duplicate_result_ids,
        duplicate_event_ids=dup_events,
        elided_events=len(merged) - len(visible),
    )
    if skipped or missing:
        logger.warning("session %s: skipped %d malformed and %d incomplete lines",
                       session_id, skipped, missing)
    logger.debug("session %s: %d events, %d groups, diagnostics=%s",
                 session_id, len(merged), len(groups), diagnostics.to_dict())
    return Timeline(session_id, groups, diagnostics)
