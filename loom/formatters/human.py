"""Human formatter: Rich terminal output."""
from __future__ import annotations

import os
import sys
from datetime import datetime

from rich.box import ASCII as ASCII_BOX, HEAVY_HEAD, ROUNDED
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from loom.events import parse_ts
from loom.session import (
    AGENT_COLORS, clip_lines, human_size, one_line_json, relative_delta, short_id,
    truncate_paths_in, truncate_tool_id,
)

# ── Module state ──────────────────────────────────────────────────────

_ascii = False
console = Console()


def configure(ascii_mode: bool = False, force_color: bool = False) -> None:
    """Reset the shared console for one CLI run."""
    global _ascii, console
    _ascii = ascii_mode
    console = Console(force_terminal=True if force_color else None)


def terminal_lacks_unicode(stream=None) -> bool:
    stream = stream or sys.stdout
    encoding = (getattr(stream, "encoding", None) or "").lower().replace("-", "")
    if not encoding.startswith("utf"):
        return True
    locale_name = os.environ.get("LC_ALL") or os.environ.get("LANG") or ""
    return bool(locale_name) and "utf" not in locale_name.lower()


def _panel_box():
    return ASCII_BOX if _ascii else ROUNDED


def _table_box():
    return ASCII_BOX if _ascii else HEAVY_HEAD


# ── Find formatter ────────────────────────────────────────────────────

def format_find(data: list[dict]) -> None:
    w = min(console.width, 120)
    table = Table(title="Sessions", show_lines=False,
                  padding=(0, 1), width=w, box=_table_box())
    table.add_column("ID", style="bold cyan", no_wrap=True, min_width=8)
    table.add_column("Project", style="dim", no_wrap=True, justify="right", max_width=12)
    table.add_column("Date", style="green", no_wrap=True, justify="right", min_width=16)
    table.add_column("Size", justify="right", no_wrap=True)
    table.add_column("Events", justify="right", no_wrap=True)
    table.add_column("Ag", justify="right", style="magenta")
    table.add_column("First Message", no_wrap=True, overflow="ellipsis", ratio=1)

    for s in data:
        date_str = datetime.fromisoformat(s["date"]).strftime("%Y-%m-%d %H:%M")
        agent_count = s.get("agent_count", 0)
        table.add_row(
            short_id(s["id"]),
            s["project"],
            date_str,
            human_size(s["size"]),
            str(s["events"]),
            str(agent_count) if agent_count else "",
            escape(s["preview"]),
        )

    console.print(table)
    console.print(f"\n[dim]{len(data)} sessions; run loom <id> to view a timeline[/]")


# ── Timeline formatter ────────────────────────────────────────────────

def _render_tool(tool: dict, indent: str = "  ") -> list[Text]:
    t = Text()
    t.append(f"{indent}[tool] ", style="yellow")
    t.append(tool.get("name", "?"), style="bold yellow")
    if tool.get("subagent_type"):
        t.append(f" <{tool['subagent_type']}>", style="blue")
    t.append(f"({one_line_json(truncate_paths_in(tool.get('input')), limit=100)})",
             style="dim yellow")
    t.append(f" {truncate_tool_id(tool.get('id', ''))}", style="dim")
    lines = [t]

    result = tool.get("result")
    r = Text()
    if result is None:
        r.append(f"{indent}  [pending]", style="dim italic")
    else:
        style = "red" if result.get("is_error") else "dim"
        label = "[error] " if result.get("is_error") else "[result] "
        r.append(f"{indent}  {label}", style=style)
        r.append(clip_lines(result.get("content", "")), style=style)
    lines.append(r)
    return lines


def _render_event(ev: dict, prev_ts: datetime | None, color: str | None = None) -> datetime | None:
    ts = parse_ts(ev.get("timestamp"))
    delta = relative_delta(prev_ts, ts)
    if delta:
        console.print(Text(f"  +{delta}", style="dim italic"))

    label = ev.get("subagent_label")
    text = (ev.get("text") or "").strip()
    if text:
        if ev.get("role") == "user":
            title, border = "User", "cyan"
        else:
            title, border = "Assistant", "green"
        if label:
            title = f"{label} > {title}"
            border = color or border
        console.print(Panel(
            Markdown(text) if len(text) < 5000 else Text(clip_lines(text, 20)),
            title=title, title_align="left",
            border_style=border, width=min(console.width, 120),
            padding=(0, 1), box=_panel_box(),
        ))

    for tool in ev.get("tools", []):
        for line in _render_tool(tool, indent="    " if label else "  "):
            console.print(line)
    return ts or prev_ts


def format_timeline(data: dict) -> None:
    groups = data.get("groups", [])
    agents = data.get("agents", [])
    console.print(Panel(
        f"Timeline: {short_id(data.get('session', ''))} - {len(groups)} groups, "
        f"main + {len(agents)} subagents",
        style="bold magenta", box=_panel_box(),
    ))

    color_map = {aid: AGENT_COLORS[i % len(AGENT_COLORS)] for i, aid in enumerate(agents)}
    prev_ts = None
    for group in groups:
        if group["kind"] == "main":
            prev_ts = _render_event(group["event"], prev_ts)
            continue
        color = color_map.get(group["agent_id"], "magenta")
        events = group["events"]
        header = Text()
        header.append(f"  [{group['label']}] ", style=f"bold {color}")
        header.append(f"{len(events)} event{'s' if len(events) != 1 else ''}", style="dim")
        console.print(header)
        for ev in events:
            prev_ts = _render_event(ev, prev_ts, color=color)

    diag = data.get("diagnostics", {})
    notes = []
    if diag.get("skipped_lines"):
        notes.append(f"{diag['skipped_lines']} malformed lines skipped")
    if diag.get("missing_fields"):
        notes.append(f"{diag['missing_fields']} incomplete records skipped")
    if diag.get("duplicate_tool_result_ids"):
        notes.append(f"duplicate results for {', '.join(diag['duplicate_tool_result_ids'])}")
    if notes:
        console.print(f"\n[yellow]Warning: {'; '.join(notes)}[/]")


# ── Locate formatter ──────────────────────────────────────────────────

def format_locate(data: dict) -> None:
    if data.get("uuid") is None:
        console.print(f"[red]No UUID found in '{escape(data.get('query', ''))}'[/]")
        return
    if not data.get("found"):
        console.print(f"[yellow]No session contains message {data['uuid']}[/]")
        return
    where = f"agent {data['agent']}" if data.get("agent") else "main"
    console.print(f"[bold cyan]{data['session']}[/] [dim]({data['project']}, {where})[/]")
