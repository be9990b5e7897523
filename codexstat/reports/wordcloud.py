"""Word-cloud report for codexstat."""

from typing import Any, Dict

from codexstat.output.formatter import bold, create_bar, format_number, format_table


def generate_wordcloud(cloud: Dict[str, Any], color_enabled: bool = True) -> str:
    """Ranked tokens from user messages, with relative-frequency bars."""
    title = "USER WORD CLOUD"
    if cloud.get("days"):
        title += f" (last {cloud['days']} days)"
    header = bold(title, color_enabled)

    items = cloud["items"]
    if not items:
        return header + "\n\nNo words found."

    max_value = items[0]["value"]
    rows = [
        [item["name"], format_number(item["value"]), create_bar(item["value"], max_value)]
        for item in items
    ]
    table = format_table(['Word', 'Count', ''], rows, ['l', 'r', 'l'], color_enabled)
    footer = f"{format_number(cloud['total_unique'])} distinct words with count >= {cloud['min_count']}"
    return f"{header}\n\n{table}\n\n{footer}"
