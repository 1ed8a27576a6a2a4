"""Tests for loom.commands and the CLI entry point."""
from __future__ import annotations

import json
import pytest

from loom.__main__ import main
from loom.commands.find import cmd_find
from loom.commands.locate import cmd_locate
from loom.commands.timeline import cmd_timeline, load_agent_names
from loom.session import discover_sessions


class TestCmdFind:
    def test_lists_session(self, claude_home):
        [row] = cmd_find(discover_sessions())
        assert row["id"] == claude_home["session_id"]
        assert row["events"] == 4
        assert row["agent_count"] == 1
        assert row["preview"] == "Can you help?"


class TestCmdTimeline:
    def test_groups(self, claude_home):
        data = cmd_timeline(discover_sessions()[0])
        assert data["session"] == claude_home["session_id"]
        assert data["agents"] == ["agent-1"]
        kinds = [g["kind"] for g in data["groups"]]
        assert kinds == ["main", "main", "subagent", "main"]
        run = data["groups"][2]
        assert run["label"] == "Analyze"
        assert run["group_key"] == "agent-1-a1"
        assert [e["id"] for e in run["events"]] == ["a1", "a2", "a4"]
        read = run["events"][1]["tools"][0]
        assert read["name"] == "Read"
        assert read["result"]["content"] == "print('hi')"
        assert data["diagnostics"]["elided_events"] == 2

    def test_names_override(self, claude_home):
        data = cmd_timeline(discover_sessions()[0], agent_names={"agent-1": "Helper"})
        assert data["groups"][2]["label"] == "Helper"

    def test_load_agent_names(self, tmp_path):
        p = tmp_path / "names.json"
        p.write_text('{"agent-1": "Helper"}')
        assert load_agent_names(p) == {"agent-1": "Helper"}
        p.write_text('["agent-1"]')
        with pytest.raises(ValueError):
            load_agent_names(p)


class TestCmdLocate:
    def test_found(self, claude_home):
        event_id = "9d2e7c10-aaaa-4bbb-8ccc-0123456789ab"
        other = claude_home["project"] / "7f000000-0000-4000-8000-000000000000.jsonl"
        other.write_text(json.dumps({"uuid": event_id, "type": "user",
                                     "message": {"role": "user", "content": "hi"}}) + "\n")
        data = cmd_locate(discover_sessions(), f"message {event_id.upper()} looks off")
        assert data["found"] is True
        assert data["session"] == "7f000000-0000-4000-8000-000000000000"
        assert data["agent"] is None

    def test_session_id_is_not_an_event(self, claude_home):
        data = cmd_locate(discover_sessions(), "id: " + claude_home["session_id"])
        assert data["found"] is False
        assert data["uuid"] == claude_home["session_id"]

    def test_no_uuid(self, claude_home):
        data = cmd_locate(discover_sessions(), "hello")
        assert data == {"query": "hello", "uuid": None, "found": False}


class TestCli:
    def test_timeline_json(self, claude_home, capsys):
        main(["timeline", claude_home["session_id"][:8], "--format", "json"])
        data = json.loads(capsys.readouterr().out)
        assert len(data["groups"]) == 4

    def test_bare_session_means_timeline(self, claude_home, capsys):
        main([claude_home["session_id"][:8], "-f", "json"])
        data = json.loads(capsys.readouterr().out)
        assert data["session"] == claude_home["session_id"]

    def test_find_json(self, claude_home, capsys):
        main(["find", "--format", "json"])
        data = json.loads(capsys.readouterr().out)
        assert data[0]["id"] == claude_home["session_id"]

    def test_timeline_human(self, claude_home, capsys):
        main(["timeline", claude_home["session_id"][:8], "--format", "human", "--ascii"])
        out = capsys.readouterr().out
        assert "Can you help?" in out
        assert "Analyze" in out

    def test_unknown_session_exits(self, claude_home):
        with pytest.raises(SystemExit) as exc:
            main(["timeline", "ffffffff", "--format", "json"])
        assert exc.value.code == 1

    def test_locate_miss_exits(self, claude_home, capsys):
        with pytest.raises(SystemExit):
            main(["locate", "nothing", "--format", "json"])
        assert json.loads(capsys.readouterr().out)["found"] is False
