"""Fold the merged event sequence into display groups."""
from __future__ import annotations

from typing import Mapping, Union

from loom.enrich import EnrichedEvent, agent_label


class MainGroup:
    __slots__ = ("event",)

    kind = "main"

    def __init__(self, event: EnrichedEvent):
        self.event = event

    @property
    def events(self) -> list[EnrichedEvent]:
        return [self.event]

    def to_dict(self) -> dict:
        return {"kind": self.kind, "event": self.event.to_dict()}


class SubagentRun:
    __slots__ = ("group_key", "agent_id", "label", "events")

    kind = "subagent"

    def __init__(self, group_key: str, agent_id: str, label: str,
                 events: list[EnrichedEvent]):
        self.group_key = group_key
        self.agent_id = agent_id
        self.label = label
        self.events = events

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "group_key": self.group_key,
            "agent_id": self.agent_id,
            "label": self.label,
            "events": [e.to_dict() for e in self.events],
        }


TimelineGroup = Union[MainGroup, SubagentRun]


def group_key(agent_id: str, first_event_id: str) -> str:
    return f"{agent_id}-{first_event_id}"


def build_groups(events: list[EnrichedEvent],
                 agent_names: Mapping[str, str] | None = None) -> list[TimelineGroup]:
    """Single pass: main events stand alone, adjacent same-agent subagent events merge."""
    groups: list[TimelineGroup] = []
    run: SubagentRun | None = None
    for ev in events:
        if not ev.is_subagent:
            run = None
            groups.append(MainGroup(ev))
            continue
        if run is not None and run.agent_id == ev.agent_id:
            run.events.append(ev)
            continue
        agent_id = ev.agent_id
        label = agent_label(agent_id, agent_names) if agent_names else (ev.subagent_label or agent_id)
        run = SubagentRun(group_key(agent_id, ev.id), agent_id, label, [ev])
        groups.append(run)
    return groups
