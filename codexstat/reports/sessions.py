"""
Sessions report for codexstat.

Generates the --sessions and --timeline views.
"""

from typing import Any, Dict

from codexstat.output.formatter import (
    Colors, bold, colorize, dim, format_duration, format_number,
    format_table, format_timestamp, format_tokens, truncate
)

TEXT_WIDTH = 100

KIND_COLORS = {
    'user': Colors.GREEN,
    'assistant': Colors.CYAN,
    'tool_call': Colors.YELLOW,
    'tool_output': Colors.GRAY,
    'error': Colors.RED,
}


def generate_sessions_list(result: Dict[str, Any], color_enabled: bool = True) -> str:
    """
    Generate a page of the session list.

    Args:
        result: Result of IndexService.list_sessions()
        color_enabled: Whether to apply colors
    """
    items = result["items"]
    header = bold("SESSIONS", color_enabled)
    if not items:
        return header + "\n\nNo sessions found."

    rows = []
    for s in items:
        errors = s['errors'] or 0
        err_str = format_number(errors)
        if errors:
            err_str = colorize(err_str, Colors.RED, color_enabled)
        rows.append([
            truncate(s['session_id'], 38),
            format_timestamp(s['started_at']),
            format_duration(s['duration_seconds']),
            format_number(s['messages']),
            format_number(s['tool_calls']),
            err_str,
            format_tokens(s['usage']['total_tokens']),
            truncate(s['cwd'] or '', 30),
        ])

    table = format_table(
        ['ID', 'Started', 'Dur', 'Msgs', 'Tools', 'Err', 'Tokens', 'Cwd'],
        rows,
        ['l', 'l', 'r', 'r', 'r', 'r', 'r', 'l'],
        color_enabled,
    )
    footer = f"Showing {len(items)} of {format_number(result['total'])} sessions"
    return f"{header}\n\n{table}\n\n{footer}"


def generate_timeline(timeline: Dict[str, Any], color_enabled: bool = True) -> str:
    """
    Generate the event-by-event view of one session.

    Args:
        timeline: Result of IndexService.get_session_timeline()
        color_enabled: Whether to apply colors
    """
    summary = timeline["summary"]
    usage = timeline.get("usage") or {}
    lines = [bold(f"SESSION {summary['session_id']}", color_enabled)]
    if summary.get('file_path'):
        lines.append(f"File: {summary['file_path']}")
    if summary.get('cwd'):
        lines.append(f"Cwd: {summary['cwd']}")
    lines.append(
        f"Started: {format_timestamp(summary.get('started_at'))}  "
        f"Duration: {format_duration(summary.get('duration_seconds'))}  "
        f"Tokens: {format_tokens(usage.get('total_tokens', 0))}"
    )
    lines.append("")

    for event in timeline["events"]:
        kind = event['kind']
        label = colorize(f"{kind:<11}", KIND_COLORS.get(kind, Colors.GRAY), color_enabled)
        ts = dim(event['ts'][11:19] or '--:--:--', color_enabled)
        if kind == 'token_usage':
            body = f"+{format_tokens(event['usage']['total_tokens'])} tokens"
        else:
            body = event.get('text') or ''
            if event.get('name'):
                body = f"[{event['name']}] {body}"
        lines.append(f"{ts} {label} {truncate(body, TEXT_WIDTH)}")

    if timeline.get("truncated"):
        lines.append("")
        lines.append(colorize("Timeline truncated.", Colors.YELLOW, color_enabled))

    return '\n'.join(lines)
