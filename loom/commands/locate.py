"""Locate command: find which session holds a message id."""
from __future__ import annotations

from loom.session import Session, locate_event, parse_first_uuid


def cmd_locate(sessions: list[Session], text: str) -> dict:
    """Extract the first UUID from text and look it up across sessions."""
    uuid = parse_first_uuid(text)
    result: dict = {"query": text, "uuid": uuid, "found": False}
    if uuid is None:
        return result
    hit = locate_event(sessions, uuid)
    if hit is None:
        return result
    session, agent_id = hit
    result.update({
        "found": True,
        "session": session.id,
        "project": session.project,
        "agent": agent_id,
    })
    return result
