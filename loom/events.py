"""Event parsing: raw JSONL lines to typed events and content blocks."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Iterable, Union

ROLES = ("user", "assistant")


# ── Content blocks ────────────────────────────────────────────────────

class TextBlock:
    __slots__ = ("text",)

    type = "text"

    def __init__(self, text: str):
        self.text = text

    def __eq__(self, other):
        return isinstance(other, TextBlock) and other.text == self.text

    def __repr__(self):
        return f"TextBlock({self.text!r})"


class ToolUseBlock:
    __slots__ = ("tool_id", "name", "input", "subagent_type")

    type = "tool_use"

    def __init__(self, tool_id: str, name: str, input: Any,
                 subagent_type: str | None = None):
        self.tool_id = tool_id
        self.name = name
        self.input = input
        self.subagent_type = subagent_type

    def __eq__(self, other):
        return (isinstance(other, ToolUseBlock)
                and other.tool_id == self.tool_id
                and other.name == self.name
                and other.input == self.input
                and other.subagent_type == self.subagent_type)

    def __repr__(self):
        return f"ToolUseBlock({self.tool_id!r}, {self.name!r})"


class ToolResultBlock:
    __slots__ = ("tool_id", "content", "is_error")

    type = "tool_result"

    def __init__(self, tool_id: str, content: str, is_error: bool = False):
        self.tool_id = tool_id
        self.content = content
        self.is_error = is_error

    def __eq__(self, other):
        return (isinstance(other, ToolResultBlock)
                and other.tool_id == self.tool_id
                and other.content == self.content
                and other.is_error == self.is_error)

    def __repr__(self):
        return f"ToolResultBlock({self.tool_id!r}, is_error={self.is_error})"


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock]
Content = Union[str, list[ContentBlock]]


# ── Event ─────────────────────────────────────────────────────────────

class Event:
    """One parsed record from a per-agent log."""

    __slots__ = ("id", "parent_id", "agent_id", "session_id", "timestamp",
                 "timestamp_raw", "role", "content", "model", "source_index",
                 "source_agent")

    def __init__(self, id: str, role: str, content: Content = "",
                 parent_id: str | None = None, agent_id: str | None = None,
                 session_id: str | None = None, timestamp: datetime | None = None,
                 timestamp_raw: str | None = None, model: str = "",
                 source_index: int = 0):
        self.id = id
        self.parent_id = parent_id
        self.agent_id = agent_id
        self.session_id = session_id
        self.timestamp = timestamp
        self.timestamp_raw = timestamp_raw
        self.role = role
        self.content = content
        self.model = model
        self.source_index = source_index
        # agent owning the log this event was read from; set by merge_logs
        self.source_agent: str | None = None

    @property
    def blocks(self) -> list[ContentBlock]:
        if isinstance(self.content, str):
            return []
        return self.content

    @property
    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return "\n".join(b.text for b in self.content
                         if isinstance(b, TextBlock) and b.text)

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        return [b for b in self.blocks if isinstance(b, ToolUseBlock)]

    @property
    def tool_results(self) -> list[ToolResultBlock]:
        return [b for b in self.blocks if isinstance(b, ToolResultBlock)]

    def __repr__(self):
        return f"Event({self.id!r}, {self.role!r}, agent={self.agent_id!r})"


class ParseResult:
    __slots__ = ("events", "skipped_lines", "missing_fields")

    def __init__(self, events: list[Event], skipped_lines: int = 0,
                 missing_fields: int = 0):
        self.events = events
        self.skipped_lines = skipped_lines
        self.missing_fields = missing_fields


# ── Parsing ───────────────────────────────────────────────────────────

def parse_ts(ts: Any) -> datetime | None:
    if not ts or not isinstance(ts, str):
        return None
    try:
        dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _str(value: Any) -> str | None:
    """Non-empty string values only; anything else reads as absent."""
    if isinstance(value, str) and value:
        return value
    return None


def _result_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for c in content:
            if isinstance(c, str):
                parts.append(c)
            elif isinstance(c, dict) and c.get("type") == "text":
                parts.append(_str(c.get("text")) or "")
            else:
                parts.append(json.dumps(c, ensure_ascii=False, separators=(",", ":")))
        return "\n".join(parts)
    return json.dumps(content, ensure_ascii=False, separators=(",", ":"))


def _subagent_type(name: str, inp: Any) -> str | None:
    if name != "Task" or not isinstance(inp, dict):
        return None
    return _str(inp.get("subagent_type"))


def parse_block(block: Any) -> ContentBlock | None:
    """Convert one raw content block; unknown block types yield None."""
    if isinstance(block, str):
        return TextBlock(block)
    if not isinstance(block, dict):
        return None
    bt = block.get("type")
    if bt == "text":
        return TextBlock(_str(block.get("text")) or "")
    if bt == "tool_use":
        name = _str(block.get("name")) or ""
        inp = block.get("input", {})
        return ToolUseBlock(_str(block.get("id")) or "", name, inp, _subagent_type(name, inp))
    if bt == "tool_result":
        return ToolResultBlock(
            _str(block.get("tool_use_id")) or "",
            _result_text(block.get("content")),
            bool(block.get("is_error")),
        )
    return None


def parse_content(value: Any) -> Content:
    if isinstance(value, list):
        blocks = []
        for raw in value:
            block = parse_block(raw)
            if block is not None:
                blocks.append(block)
        return blocks
    if isinstance(value, str):
        return value
    return ""


def _role(raw: dict) -> str | None:
    message = raw.get("message")
    role = raw.get("role")
    if role is None and isinstance(message, dict):
        role = message.get("role")
    if role is None:
        role = raw.get("type")
    return role if role in ROLES else None


def parse_event(raw: dict, source_index: int = 0) -> Event | None:
    """Build an Event from a decoded record, or None if id/role is missing."""
    event_id = _str(raw.get("id")) or _str(raw.get("uuid"))
    role = _role(raw)
    if event_id is None or role is None:
        return None

    message = raw.get("message")
    if not isinstance(message, dict):
        message = {}
    content = raw["content"] if "content" in raw else message.get("content")

    ts_raw = raw.get("timestamp")
    return Event(
        id=event_id,
        role=role,
        content=parse_content(content),
        parent_id=_str(raw.get("parentId")) or _str(raw.get("parentUuid")),
        agent_id=_str(raw.get("agentId")),
        session_id=_str(raw.get("sessionId")),
        timestamp=parse_ts(ts_raw),
        timestamp_raw=ts_raw if isinstance(ts_raw, str) else None,
        model=_str(message.get("model")) or "",
        source_index=source_index,
    )


def _lines(source: str | Iterable[str]) -> Iterable[str]:
    if isinstance(source, str):
        return source.splitlines()
    return source


def parse_log(source: str | Iterable[str], skip_blank: bool = True) -> ParseResult:
    """Parse one JSONL log, counting malformed and incomplete lines."""
    events: list[Event] = []
    skipped = 0
    missing = 0
    for line in _lines(source):
        line = line.strip()
        if not line:
            if not skip_blank:
                skipped += 1
            continue
        try:
            raw = json.loads(line)
        except json.JSONDecodeError:
            skipped += 1
            continue
        if not isinstance(raw, dict):
            skipped += 1
            continue
        event = parse_event(raw, source_index=len(events))
        if event is None:
            missing += 1
            continue
        events.append(event)
    return ParseResult(events, skipped_lines=skipped, missing_fields=missing)
