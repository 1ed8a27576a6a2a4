"""Session listing command."""
from __future__ import annotations

from datetime import datetime

from loom.events import parse_log
from loom.session import Session, read_text


def _preview(session: Session) -> tuple[int, str]:
    """Event count and the first non-empty user text of the main log."""
    events = parse_log(read_text(session.path)).events
    for e in events:
        if e.role == "user" and not e.agent_id:
            text = " ".join(e.text.split())
            if text and not text.startswith("<"):
                return len(events), text[:80]
    return len(events), ""


def cmd_find(sessions: list[Session], include_empty: bool = False) -> list[dict]:
    """Return session list as canonical dicts."""
    result = []
    for s in sessions:
        count, preview = _preview(s)
        if not include_empty and count == 0:
            continue
        result.append({
            "id": s.id,
            "project": s.project,
            "date": datetime.fromtimestamp(s.mtime).isoformat(),
            "size": s.size,
            "events": count,
            "agent_count": len(s.agents()),
            "preview": preview,
        })
    return result
