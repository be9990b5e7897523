"""
Summary report for codexstat.

Renders the index snapshot: totals, per-day breakdown and tool ranking.
"""

from typing import Any, Dict

from codexstat.output.formatter import (
    bold, create_bar, format_number, format_table, format_tokens, print_section
)

TOP_TOOLS = 15


def generate_summary(snapshot: Dict[str, Any], color_enabled: bool = True) -> str:
    """
    Generate the default summary view.

    Args:
        snapshot: Result of IndexService.get_index_snapshot()
        color_enabled: Whether to apply colors
    """
    totals = snapshot["totals"]
    lines = [bold("CODEX USAGE SUMMARY", color_enabled)]
    lines.append(f"Source: {snapshot['source_root']}")
    lines.append(f"Indexed at: {snapshot['generated_at']}")
    lines.append("")

    lines.append(f"{'Sessions:':<20}{format_number(totals['sessions']):>12}")
    lines.append(f"{'Messages:':<20}{format_number(totals['messages']):>12}")
    lines.append(f"{'Tool calls:':<20}{format_number(totals['tool_calls']):>12}")
    lines.append(f"{'Errors:':<20}{format_number(totals['errors']):>12}")
    lines.append(f"{'Total tokens:':<20}{format_tokens(totals['total_tokens']):>12}")
    lines.append(f"{'  Input:':<20}{format_tokens(totals['input_tokens']):>12}")
    lines.append(f"{'  Cached input:':<20}{format_tokens(totals['cached_input_tokens']):>12}")
    lines.append(f"{'  Output:':<20}{format_tokens(totals['output_tokens']):>12}")
    lines.append(f"{'  Reasoning:':<20}{format_tokens(totals['reasoning_output_tokens']):>12}")

    daily = snapshot.get("daily") or {}
    if daily:
        lines.append(print_section("DAILY", color_enabled))
        rows = [
            [
                day,
                format_number(agg['sessions']),
                format_number(agg['messages']),
                format_number(agg['tool_calls']),
                format_number(agg['errors']),
                format_tokens(agg['total_tokens']),
            ]
            for day, agg in daily.items()
        ]
        lines.append(format_table(
            ['Day', 'Sessions', 'Msgs', 'Tools', 'Errors', 'Tokens'],
            rows,
            ['l', 'r', 'r', 'r', 'r', 'r'],
            color_enabled,
        ))

    tools = snapshot.get("tools") or {}
    if tools:
        lines.append(print_section("TOP TOOLS", color_enabled))
        top = list(tools.items())[:TOP_TOOLS]
        max_count = top[0][1]
        rows = [[name, format_number(count), create_bar(count, max_count)] for name, count in top]
        lines.append(format_table(['Tool', 'Calls', ''], rows, ['l', 'r', 'l'], color_enabled))

    return '\n'.join(lines)
