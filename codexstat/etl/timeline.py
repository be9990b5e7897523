"""
Timeline builder for codexstat.

Re-parses one session file into an ordered list of events. Counting and
token accounting go through the same SessionFolder as the index builder,
so a timeline's token events add up to the indexed totals.
"""

from contextlib import aclosing
from pathlib import Path
from typing import Any, Dict, Optional

from codexstat.etl.extractor import SessionFolder
from codexstat.etl.parser import stream_jsonl
from codexstat.etl.records import (
    MessageRecord,
    Record,
    TokenCountRecord,
    ToolCallRecord,
    ToolOutputRecord,
    TurnAbortedRecord,
    decode_record,
)
from codexstat.models.entities import TimelineEvent, TokenUsage

MAX_TIMELINE_EVENTS = 5000

MESSAGE_KINDS = {'user': 'user', 'assistant': 'assistant'}


def timeline_event(
    record: Record,
    folder: SessionFolder,
    delta: Optional[TokenUsage]
) -> Optional[TimelineEvent]:
    """The event a record contributes, or None for records that are not shown."""
    ts = record.timestamp or ""

    if isinstance(record, TurnAbortedRecord):
        return TimelineEvent(ts=ts, kind='error', text='turn_aborted')

    if isinstance(record, MessageRecord):
        kind = MESSAGE_KINDS.get(record.role or '', 'other')
        return TimelineEvent(ts=ts, kind=kind, text=record.text or "")

    if isinstance(record, ToolCallRecord):
        return TimelineEvent(
            ts=ts,
            kind='tool_call',
            name=record.name,
            text=record.arguments or record.input or "",
        )

    if isinstance(record, ToolOutputRecord):
        return TimelineEvent(
            ts=ts,
            kind='tool_output',
            name=folder.tool_name_for(record),
            text=record.output or "",
        )

    if isinstance(record, TokenCountRecord) and delta is not None:
        cumulative = None
        if record.total is not None and not record.total.is_empty():
            cumulative = record.total.to_dict()
        return TimelineEvent(
            ts=ts,
            kind='token_usage',
            usage=delta.to_dict(),
            cumulative=cumulative,
        )

    return None


async def build_timeline(
    file_path: Path,
    summary: Optional[Dict[str, Any]] = None,
    max_events: int = MAX_TIMELINE_EVENTS
) -> Dict[str, Any]:
    """
    Build the timeline of one session file.

    Parsing stops once max_events events have been collected and the
    result is marked truncated; 'usage' then covers only the parsed part.

    Args:
        file_path: Session JSONL file
        summary: Indexed summary to report; derived from the file if None
        max_events: Event cap

    Raises:
        OSError: If the file can't be opened or read
    """
    folder = SessionFolder(file_path)
    events = []
    truncated = False

    async with aclosing(stream_jsonl(file_path)) as entries:
        async for _, entry in entries:
            record = decode_record(entry)
            delta = folder.feed(record)
            event = timeline_event(record, folder, delta)
            if event is not None:
                events.append(event.to_dict())
            if len(events) >= max_events:
                truncated = True
                break

    parsed = folder.finish()
    return {
        "summary": summary if summary is not None else parsed.to_dict(),
        "truncated": truncated,
        "events": events,
        "usage": parsed.usage.to_dict(),
    }
