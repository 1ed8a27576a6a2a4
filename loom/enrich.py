"""Per-event enrichment: display text, agent attribution, paired tool calls."""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from loom.correlate import ToolResult
from loom.events import Event


class ToolInvocation:
    __slots__ = ("id", "name", "input", "subagent_type", "result")

    def __init__(self, id: str, name: str, input: Any,
                 subagent_type: str | None = None, result: ToolResult | None = None):
        self.id = id
        self.name = name
        self.input = input
        self.subagent_type = subagent_type
        self.result = result

    @property
    def pending(self) -> bool:
        return self.result is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "input": self.input,
            "subagent_type": self.subagent_type,
            "result": self.result.to_dict() if self.result else None,
        }


class EnrichedEvent:
    __slots__ = ("event", "is_subagent", "subagent_label", "display_text", "tool_invocations")

    def __init__(self, event: Event, is_subagent: bool, subagent_label: str | None,
                 display_text: str, tool_invocations: list[ToolInvocation]):
        self.event = event
        self.is_subagent = is_subagent
        self.subagent_label = subagent_label
        self.display_text = display_text
        self.tool_invocations = tool_invocations

    @property
    def id(self) -> str:
        return self.event.id

    @property
    def agent_id(self) -> str | None:
        return self.event.agent_id

    @property
    def timestamp(self):
        return self.event.timestamp

    def to_dict(self) -> dict:
        e = self.event
        return {
            "id": e.id,
            "parent_id": e.parent_id,
            "agent_id": e.agent_id,
            "timestamp": e.timestamp_raw,
            "role": e.role,
            "text": self.display_text,
            "is_subagent": self.is_subagent,
            "subagent_label": self.subagent_label,
            "tools": [t.to_dict() for t in self.tool_invocations],
        }


def is_main_agent(agent_id: str | None, root_agent_id: str | None = None,
                  session_id: str | None = None) -> bool:
    if not agent_id:
        return True
    return agent_id in (root_agent_id, session_id)


def agent_label(agent_id: str, agent_names: Mapping[str, str] | None = None) -> str:
    if agent_names:
        return agent_names.get(agent_id) or agent_id
    return agent_id


def enrich_event(event: Event, results: Mapping[str, ToolResult | None],
                 root_agent_id: str | None = None, session_id: str | None = None,
                 agent_names: Mapping[str, str] | None = None) -> EnrichedEvent:
    is_subagent = not is_main_agent(event.agent_id, root_agent_id, session_id)
    label = agent_label(event.agent_id, agent_names) if is_subagent else None
    invocations = [
        ToolInvocation(tu.tool_id, tu.name, tu.input, tu.subagent_type,
                       results.get(tu.tool_id) if tu.tool_id else None)
        for tu in event.tool_uses
    ]
    return EnrichedEvent(event, is_subagent, label, event.text, invocations)


def enrich_events(events: Iterable[Event], results: Mapping[str, ToolResult | None],
                  root_agent_id: str | None = None, session_id: str | None = None,
                  agent_names: Mapping[str, str] | None = None) -> list[EnrichedEvent]:
    return [enrich_event(e, results, root_agent_id, session_id, agent_names)
            for e in events]
