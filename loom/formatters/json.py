"""JSON formatter: structured output to stdout."""
from __future__ import annotations

import json
import sys
from datetime import datetime


def _default_serializer(obj):
    if isinstance(obj, datetime):
        return obj.isoformat()
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return str(obj)


def format_json(data, stream=None) -> None:
    """Write canonical data (or anything with to_dict) as JSON."""
    out = stream or sys.stdout
    json.dump(data, out, indent=2, ensure_ascii=False, default=_default_serializer)
    out.write("\n")
