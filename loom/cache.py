"""Timeline cache keyed by session, invalidated when log contents change."""
from __future__ import annotations

import hashlib
import logging
from collections import OrderedDict
from typing import Callable

from loom.timeline import RawLog, Timeline

logger = logging.getLogger(__name__)


def logs_fingerprint(raw_logs: list) -> str:
    """md5 over every log's agent id and contents, in the order given."""
    h = hashlib.md5()
    for log in raw_logs:
        agent_id = None
        if isinstance(log, RawLog):
            log, agent_id = log.text, log.agent_id
        if not isinstance(log, str):
            log = "\n".join(log)
        h.update((agent_id or "").encode())
        h.update(b"\x00")
        h.update(log.encode())
        h.update(b"\x01")
    return h.hexdigest()


class TimelineCache:
    """LRU of built timelines; an entry is reused only while its logs are unchanged."""

    def __init__(self, maxsize: int = 32):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.maxsize = maxsize
        self._entries: OrderedDict[str, tuple[str, Timeline]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get_or_build(self, key: str, raw_logs: list,
                     build: Callable[[list], Timeline]) -> Timeline:
        fp = logs_fingerprint(raw_logs)
        entry = self._entries.get(key)
        if entry is not None and entry[0] == fp:
            self.hits += 1
            self._entries.move_to_end(key)
            return entry[1]

        self.misses += 1
        if entry is not None:
            logger.debug("logs for %s changed, rebuilding timeline", key)
        timeline = build(raw_logs)
        self._entries[key] = (fp, timeline)
        self._entries.move_to_end(key)
        while len(self._entries) > self.maxsize:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("evicted cached timeline %s", evicted)
        return timeline

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
