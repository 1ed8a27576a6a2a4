"""Timeline command: build the merged, grouped view of one session."""
from __future__ import annotations

import json
from pathlib import Path

from loom.session import Session
from loom.timeline import Timeline, build_timeline


def load_agent_names(path: str | Path) -> dict[str, str]:
    """Read an agent id -> display name table from a JSON object file."""
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object of agent id -> name")
    return {str(k): str(v) for k, v in data.items()}


def build_session_timeline(session: Session, agent_names: dict[str, str] | None = None,
                           skip_blank: bool = True) -> Timeline:
    names = session.agent_names()
    if agent_names:
        names.update(agent_names)
    return build_timeline(session.id, session.id, session.raw_logs(),
                          agent_names=names, skip_blank=skip_blank)


def cmd_timeline(session: Session, agent_names: dict[str, str] | None = None,
                 skip_blank: bool = True) -> dict:
    """Return the session timeline as a canonical dict."""
    timeline = build_session_timeline(session, agent_names, skip_blank=skip_blank)
    data = timeline.to_dict()
    data["agents"] = [a.id for a in session.agents()]
    return data
