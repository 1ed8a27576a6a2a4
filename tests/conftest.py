"""Shared fixtures for loom tests."""
from __future__ import annotations

import json
import pytest
from pathlib import Path


def ts(sec: int) -> str:
    return f"2026-01-01T00:00:{sec:02d}Z"


def record(id: str, role: str, content, t: int | None = None,
           agent: str | None = None, session: str = "sess-1",
           parent: str | None = None) -> dict:
    rec = {"id": id, "role": role, "content": content, "sessionId": session}
    if t is not None:
        rec["timestamp"] = ts(t)
    if agent:
        rec["agentId"] = agent
    if parent:
        rec["parentId"] = parent
    return rec


def tool_use(tool_id: str, name: str = "Read", **inp) -> dict:
    return {"type": "tool_use", "id": tool_id, "name": name, "input": inp}


def tool_result(tool_id: str, content="ok", is_error: bool = False) -> dict:
    return {"type": "tool_result", "tool_use_id": tool_id, "content": content,
            "is_error": is_error}


def jsonl(records: list[dict]) -> str:
    return "".join(json.dumps(r) + "\n" for r in records)


@pytest.fixture
def tmp_jsonl(tmp_path):
    """Factory: write a list of dicts as a JSONL file, return path."""
    def _make(records: list[dict], name: str = "session.jsonl") -> Path:
        p = tmp_path / name
        p.parent.mkdir(parents=True, exist_ok=True)
        with open(p, "w") as f:
            for rec in records:
                f.write(json.dumps(rec) + "\n")
        return p
    return _make


@pytest.fixture
def main_records():
    return [
        record("m1", "user", "Can you help?", 0),
        record("m2", "assistant", [
            {"type": "text", "text": "Spawning a helper."},
            tool_use("task-1", "Task", description="Analyze", subagent_type="general-purpose"),
        ], 1),
        record("m3", "user", [tool_result("task-1", "analysis done")], 6),
        record("m4", "assistant", "Done", 7),
    ]


@pytest.fixture
def agent_records():
    return [
        record("a1", "user", "Starting analysis", 2, agent="agent-1"),
        record("a2", "assistant", [tool_use("read-1", "Read", file_path="/src/app/main.py")],
               3, agent="agent-1"),
        record("a3", "user", [tool_result("read-1", "print('hi')")], 4, agent="agent-1"),
        record("a4", "assistant", "Looks fine", 5, agent="agent-1"),
    ]


@pytest.fixture
def claude_home(tmp_path, monkeypatch, main_records, agent_records):
    """Fake CLAUDE_CONFIG_DIR with one session that has one subagent."""
    root = tmp_path / "claude"
    project = root / "projects" / "-home-user-demo"
    sid = "0b4f1a2c-1111-4222-8333-444455556666"
    project.mkdir(parents=True)
    (project / f"{sid}.jsonl").write_text(jsonl(main_records))
    subagents = project / sid / "subagents"
    subagents.mkdir(parents=True)
    (subagents / "agent-agent-1.jsonl").write_text(jsonl(agent_records))
    monkeypatch.setenv("CLAUDE_CONFIG_DIR", str(root))
    return {"root": root, "project": project, "session_id": sid}
