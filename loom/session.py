"""Session discovery on disk and shared formatting helpers."""
from __future__ import annotations

import json
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Any

from loom.events import parse_log
from loom.timeline import RawLog


# ── Paths ─────────────────────────────────────────────────────────────

def config_dir() -> Path:
    """Claude config root: $CLAUDE_CONFIG_DIR, else the first default that exists."""
    override = os.environ.get("CLAUDE_CONFIG_DIR")
    if override:
        return Path(override)
    candidates = [Path.home() / ".config" / "claude", Path.home() / ".claude"]
    return next((p for p in candidates if p.exists()), candidates[0])


def projects_dir() -> Path:
    return config_dir() / "projects"


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


# ── Agent ─────────────────────────────────────────────────────────────

class Agent:
    __slots__ = ("id", "path", "size")

    def __init__(self, id: str, path: Path, size: int):
        self.id = id
        self.path = path
        self.size = size

    def raw_log(self) -> RawLog:
        return RawLog(read_text(self.path), agent_id=self.id)

    def first_timestamp(self) -> datetime | None:
        for e in parse_log(read_text(self.path)).events:
            if e.timestamp:
                return e.timestamp
        return None


# ── Session ───────────────────────────────────────────────────────────

class Session:
    __slots__ = ("id", "path", "project", "size", "mtime", "subagent_dir")

    def __init__(self, id: str, path: Path, project: str, size: int,
                 mtime: float, subagent_dir: Path | None = None):
        self.id = id
        self.path = path
        self.project = project
        self.size = size
        self.mtime = mtime
        self.subagent_dir = subagent_dir

    @property
    def has_agents(self) -> bool:
        return self.subagent_dir is not None

    def agents(self) -> list[Agent]:
        if not self.subagent_dir or not self.subagent_dir.is_dir():
            return []
        agents = []
        for f in sorted(self.subagent_dir.iterdir()):
            if f.suffix == ".jsonl":
                aid = f.stem.removeprefix("agent-")
                agents.append(Agent(aid, f, f.stat().st_size))
        return agents

    def raw_logs(self) -> list[RawLog]:
        """Main log first, then one RawLog per subagent file."""
        logs = [RawLog(read_text(self.path))]
        logs.extend(a.raw_log() for a in self.agents())
        return logs

    def task_spawns(self) -> list[dict]:
        """Task tool_use calls from the main log, in order."""
        spawns = []
        for e in parse_log(read_text(self.path)).events:
            for tu in e.tool_uses:
                if tu.name != "Task":
                    continue
                inp = tu.input if isinstance(tu.input, dict) else {}
                spawns.append({
                    "subagent_type": inp.get("subagent_type", ""),
                    "description": inp.get("description", ""),
                })
        return spawns

    def agent_names(self) -> dict[str, str]:
        """Pair subagents (by first activity) with Task spawns (in call order)."""
        agents = [(a.first_timestamp(), a.id) for a in self.agents()]
        agents.sort(key=lambda x: (x[0] is None, x[0] or datetime.min, x[1]))
        names: dict[str, str] = {}
        for (_ts, aid), spawn in zip(agents, self.task_spawns()):
            name = spawn["description"] or spawn["subagent_type"]
            if name:
                names[aid] = name
        return names


# ── Discovery ─────────────────────────────────────────────────────────

def discover_sessions() -> list[Session]:
    """Find all sessions across all project directories."""
    pdir = projects_dir()
    if not pdir.exists():
        return []
    sessions = []
    for project in sorted(pdir.iterdir()):
        if not project.is_dir():
            continue
        for f in sorted(project.iterdir()):
            if f.suffix == ".jsonl" and f.is_file():
                sid = f.stem
                subagent_dir = project / sid / "subagents"
                has_agents = subagent_dir.is_dir() and any(subagent_dir.iterdir())
                stat = f.stat()
                sessions.append(Session(
                    id=sid,
                    path=f,
                    project=project.name,
                    size=stat.st_size,
                    mtime=stat.st_mtime,
                    subagent_dir=subagent_dir if has_agents else None,
                ))
    sessions.sort(key=lambda s: s.mtime, reverse=True)
    return sessions


def resolve_session_verbose(sessions: list[Session], query: str, console) -> Session | None:
    """Resolve by UUID found in the text, else by id prefix."""
    uuid = parse_first_uuid(query)
    prefix = uuid or query.strip()
    matches = [s for s in sessions if s.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        console.print(f"[yellow]Ambiguous prefix '{prefix}', matches {len(matches)} sessions:[/]")
        for m in matches[:5]:
            console.print(f"  {m.id}")
    return None


def locate_event(sessions: list[Session], event_id: str) -> tuple[Session, str | None] | None:
    """Find the session (and subagent id, None for main) holding an event id."""
    for session in sessions:
        candidates: list[tuple[str | None, Path]] = [(None, session.path)]
        candidates.extend((a.id, a.path) for a in session.agents())
        for agent_id, path in candidates:
            text = read_text(path)
            if event_id not in text:
                continue
            if any(e.id == event_id for e in parse_log(text).events):
                return session, agent_id
    return None


# ── Formatting helpers ────────────────────────────────────────────────

AGENT_COLORS = [
    "bright_cyan", "bright_green", "bright_magenta", "bright_yellow",
    "bright_blue", "bright_red", "deep_sky_blue1", "spring_green1",
    "orchid1", "gold1", "turquoise2", "hot_pink",
]

_UUID_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.I)


def parse_uuids(text: str) -> list[str]:
    """All UUIDs in text, lowercased and deduplicated in order of appearance."""
    if not text or not isinstance(text, str):
        return []
    seen: dict[str, None] = {}
    for m in _UUID_RE.findall(text):
        seen.setdefault(m.lower(), None)
    return list(seen)


def parse_first_uuid(text: str) -> str | None:
    uuids = parse_uuids(text)
    return uuids[0] if uuids else None


def short_id(full_id: str) -> str:
    return full_id[:8]


_SIZE_UNITS = (("M", 1024 * 1024), ("K", 1024))


def human_size(n: int) -> str:
    for suffix, scale in _SIZE_UNITS:
        if n >= scale:
            return f"{n / scale:.1f}{suffix}"
    return f"{n}B"


def relative_delta(a: datetime | None, b: datetime | None) -> str:
    """Gap from a to b as 30s / 5m / 1.2h; empty below one second or backwards."""
    if not a or not b:
        return ""
    delta = (b - a).total_seconds()
    if delta < 1:
        return ""
    if delta < 60:
        return f"{delta:.0f}s"
    if delta < 3600:
        return f"{delta / 60:.0f}m"
    return f"{delta / 3600:.1f}h"


_BASE64_RUN = re.compile(r"[A-Za-z0-9+/]{200,}={0,2}")


def elide_base64(text: str) -> str:
    """Swap long base64 runs for their approximate decoded size."""
    return _BASE64_RUN.sub(
        lambda m: f"[base64 ~{human_size(len(m.group(0)) * 3 // 4)}]", text)


def one_line_json(obj: Any, limit: int = 120) -> str:
    try:
        s = json.dumps(obj, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        s = str(obj)
    s = elide_base64(s)
    return s if len(s) <= limit else s[:limit] + "..."


def clip_lines(text: str, limit: int = 3) -> str:
    lines = text.split("\n")
    hidden = len(lines) - limit
    if hidden <= 0:
        return text
    return "\n".join(lines[:limit] + [f"... ({hidden} more lines)"])


def truncate_tool_id(tool_id: str, prefix_len: int = 8) -> str:
    if not tool_id or len(tool_id) <= prefix_len:
        return tool_id or ""
    return tool_id[:prefix_len] + "..."


def truncate_file_path(path: str) -> str:
    """Keep only the last path component; deep paths get a '...' prefix."""
    if not path:
        return ""
    parts = re.split(r"[/\\]", path)
    if len(parts) == 1:
        return path
    non_empty = [p for p in parts if p]
    trailing = "/" if path.endswith(("/", "\\")) else ""
    if not non_empty:
        return path
    name = non_empty[-1]
    if len(non_empty) <= 2:
        return f"{name}{trailing}"
    return f"...{name}{trailing}"


def _looks_like_path(value: str) -> bool:
    return bool(re.match(r"^(/|[A-Z]:\\|\.\.?/)", value)) or "/" in value or "\\" in value


def truncate_paths_in(obj: Any) -> Any:
    """Copy of obj with every path-like string shortened."""
    if isinstance(obj, str):
        return truncate_file_path(obj) if _looks_like_path(obj) else obj
    if isinstance(obj, list):
        return [truncate_paths_in(v) for v in obj]
    if isinstance(obj, dict):
        return {k: truncate_paths_in(v) for k, v in obj.items()}
    return obj
