"""
Output formatting for codexstat.

Handles ASCII tables, colors, and CLI output formatting.
"""

import os
import re
import sys
from typing import Any, List, Optional, Union

# Enable ANSI colors on Windows
if sys.platform == 'win32':
    os.system('')  # Triggers VT100 emulation

ANSI_ESCAPE_RE = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')


class Colors:
    """ANSI escape codes for terminal colors."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    RED = '\033[91m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    CYAN = '\033[96m'
    GRAY = '\033[90m'


def colorize(text: str, color: str, enabled: bool = True) -> str:
    """Apply color if enabled."""
    if not enabled:
        return text
    return f"{color}{text}{Colors.RESET}"


def bold(text: str, enabled: bool = True) -> str:
    """Make text bold."""
    if not enabled:
        return text
    return f"{Colors.BOLD}{text}{Colors.RESET}"


def dim(text: str, enabled: bool = True) -> str:
    """Make text dim/gray."""
    if not enabled:
        return text
    return f"{Colors.DIM}{text}{Colors.RESET}"


def format_number(value: Union[int, float], decimals: int = 0) -> str:
    """Format number with thousands separator."""
    if decimals > 0:
        return f"{value:,.{decimals}f}"
    return f"{int(value):,}"


def format_tokens(value: int) -> str:
    """Format token count with K/M suffix for large numbers."""
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    elif value >= 1_000:
        return f"{value / 1_000:.1f}K"
    return str(value)


def format_duration(seconds: Optional[int]) -> str:
    """Format duration in human-readable form; unknown durations render as '-'."""
    if seconds is None:
        return "-"
    if seconds < 60:
        return f"{seconds}s"
    elif seconds < 3600:
        minutes = seconds // 60
        secs = seconds % 60
        return f"{minutes}m {secs}s"
    else:
        hours = seconds // 3600
        minutes = (seconds % 3600) // 60
        return f"{hours}h {minutes}m"


def format_timestamp(iso: Optional[str]) -> str:
    """'YYYY-MM-DD HH:MM' from a normalized ISO timestamp."""
    if not iso:
        return 'N/A'
    return iso[:16].replace('T', ' ')


def truncate(text: str, width: int) -> str:
    """Single-line text cut to width characters."""
    text = ' '.join(text.split())
    if len(text) <= width:
        return text
    return text[:max(0, width - 3)] + '...'


def create_bar(value: float, max_value: float, width: int = 20) -> str:
    """Create ASCII progress bar."""
    if max_value == 0:
        return ' ' * width

    ratio = min(1.0, value / max_value)
    filled = int(ratio * width)

    return '█' * filled + '░' * (width - filled)


def format_table(
    headers: List[str],
    rows: List[List[Any]],
    alignments: Optional[List[str]] = None,
    color_enabled: bool = True
) -> str:
    """
    Format data as an ASCII table.

    Args:
        headers: Column headers
        rows: List of row tuples/lists
        alignments: List of 'l', 'r', or 'c' for each column
        color_enabled: Whether to apply colors to headers
    """
    if not rows:
        return "No data to display."

    str_rows = [[str(cell) for cell in row] for row in rows]

    col_widths = [len(h) for h in headers]
    for row in str_rows:
        for i, cell in enumerate(row):
            col_widths[i] = max(col_widths[i], len(strip_ansi(cell)))

    if alignments is None:
        alignments = ['l'] * len(headers)

    def align_cell(text: str, width: int, align: str) -> str:
        padding_needed = width - len(strip_ansi(text))
        if align == 'r':
            return ' ' * padding_needed + text
        elif align == 'c':
            left_pad = padding_needed // 2
            right_pad = padding_needed - left_pad
            return ' ' * left_pad + text + ' ' * right_pad
        else:  # left
            return text + ' ' * padding_needed

    lines = []

    header_cells = [
        align_cell(h, col_widths[i], alignments[i])
        for i, h in enumerate(headers)
    ]
    header_line = ' │ '.join(header_cells)
    if color_enabled:
        header_line = bold(header_line)
    lines.append(header_line)

    lines.append('─┼─'.join('─' * w for w in col_widths))

    for row in str_rows:
        row_cells = [
            align_cell(cell, col_widths[i], alignments[i])
            for i, cell in enumerate(row)
        ]
        lines.append(' │ '.join(row_cells))

    return '\n'.join(lines)


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    return ANSI_ESCAPE_RE.sub('', text)


def print_section(title: str, color_enabled: bool = True) -> str:
    """Create a section header."""
    return f"\n{bold(title, color_enabled)}\n{'-' * len(title)}"
