"""CLI entry point for loom."""
from __future__ import annotations

import argparse
import logging
import sys

from loom.session import discover_sessions, resolve_session_verbose

KNOWN_COMMANDS = {"find", "timeline", "locate"}


def _build_parser() -> argparse.ArgumentParser:
    # Shared global options, inherited by every subcommand
    global_opts = argparse.ArgumentParser(add_help=False)
    global_opts.add_argument("--format", "-f", choices=["human", "json"],
                             default=None, help="Output format (default: auto-detect)")
    global_opts.add_argument("--project", "-p", metavar="NAME",
                             help="Filter by project name (substring match)")
    global_opts.add_argument("--ascii", action="store_true",
                             help="Force ASCII output (no Unicode box drawing)")
    global_opts.add_argument("--color", action="store_true",
                             help="Force color output (for piping to less -R)")
    global_opts.add_argument("--verbose", "-v", action="store_true",
                             help="Log engine diagnostics to stderr")

    parser = argparse.ArgumentParser(
        prog="loom",
        description="Merged timelines for multi-agent Claude transcripts",
        parents=[global_opts],
    )
    parser.add_argument("--version", action="version", version="loom 0.1.0")

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("find", parents=[global_opts], help="List all sessions")

    p_tl = sub.add_parser("timeline", parents=[global_opts],
                          help="Merged main + subagent timeline")
    p_tl.add_argument("session", help="Session ID prefix, or any text containing its UUID")
    p_tl.add_argument("--names", metavar="FILE",
                      help="JSON object mapping agent id to display name")
    p_tl.add_argument("--strict-blank", action="store_true",
                      help="Count blank lines as malformed")

    p_loc = sub.add_parser("locate", parents=[global_opts],
                           help="Find the session holding a message UUID")
    p_loc.add_argument("text", help="Text containing a message UUID")

    return parser


def _get_format(args) -> str:
    """Determine output format from args + TTY detection."""
    if args.format:
        return args.format
    if not sys.stdout.isatty():
        return "json"
    return "human"


def main(argv: list[str] | None = None):
    parser = _build_parser()

    # Bare `loom <session-id>` means timeline
    argv = sys.argv[1:] if argv is None else argv
    if argv and argv[0] not in KNOWN_COMMANDS and not argv[0].startswith("-"):
        argv = ["timeline"] + argv

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    from loom.formatters.human import configure, terminal_lacks_unicode
    configure(ascii_mode=args.ascii or terminal_lacks_unicode(), force_color=args.color)
    from loom.formatters.human import console
    from loom.formatters.json import format_json

    fmt = _get_format(args)

    sessions = discover_sessions()
    if args.project:
        sessions = [s for s in sessions if args.project in s.project]

    if not args.command or args.command == "find":
        from loom.commands.find import cmd_find
        data = cmd_find(sessions)
        if fmt == "json":
            format_json(data)
        else:
            from loom.formatters.human import format_find
            format_find(data)
        return

    if args.command == "locate":
        from loom.commands.locate import cmd_locate
        data = cmd_locate(sessions, args.text)
        if fmt == "json":
            format_json(data)
        else:
            from loom.formatters.human import format_locate
            format_locate(data)
        if not data["found"]:
            sys.exit(1)
        return

    session = resolve_session_verbose(sessions, args.session, console)
    if not session:
        console.print(f"[red]No session matching '{args.session}'[/]")
        sys.exit(1)

    from loom.commands.timeline import cmd_timeline, load_agent_names
    names = None
    if args.names:
        try:
            names = load_agent_names(args.names)
        except (OSError, ValueError) as e:
            parser.error(f"--names: {e}")
    data = cmd_timeline(session, agent_names=names, skip_blank=not args.strict_blank)
    if fmt == "json":
        format_json(data)
    else:
        from loom.formatters.human import format_timeline
        format_timeline(data)


if __name__ == "__main__":
    main()
