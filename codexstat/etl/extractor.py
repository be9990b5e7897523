"""
Field Extractor for codexstat.

Folds the decoded records of one session file into a FileIndex: the
session summary, the tool histogram, the token totals and the word-cloud
counts of user-authored text.
"""

import json
import re
from pathlib import Path
from typing import Dict, List, Optional

from codexstat.etl.parser import stream_jsonl
from codexstat.etl.records import (
    MessageRecord,
    Record,
    SessionMetaRecord,
    TokenCountRecord,
    ToolCallRecord,
    ToolOutputRecord,
    TurnAbortedRecord,
    decode_record,
)
from codexstat.etl.tokenizer import tokenize
from codexstat.etl.usage import UsageAccumulator
from codexstat.models.entities import FileIndex, SessionSummary
from codexstat.utils.timestamps import day_key, duration_seconds

ERROR_OUTPUT_RE = re.compile(r"error|exception|traceback", re.IGNORECASE)

COUNTED_ROLES = ('user', 'assistant')


def count_output_errors(output: Optional[str]) -> int:
    """
    Error signals in a tool's textual output (0, 1 or 2).

    One for an error/exception/traceback mention, one more when the output
    is a JSON object whose metadata carries a non-zero exit_code.
    """
    if not output:
        return 0

    errors = 0
    if ERROR_OUTPUT_RE.search(output):
        errors += 1

    if output.startswith('{'):
        try:
            parsed = json.loads(output)
        except (json.JSONDecodeError, ValueError):
            parsed = None
        if isinstance(parsed, dict):
            metadata = parsed.get('metadata')
            exit_code = metadata.get('exit_code') if isinstance(metadata, dict) else None
            if (isinstance(exit_code, (int, float)) and not isinstance(exit_code, bool)
                    and exit_code != 0):
                errors += 1

    return errors


def session_id_from_path(file_path: Path) -> str:
    """Fallback session id: the file name without its .jsonl suffix."""
    return Path(file_path).stem


class SessionFolder:
    """
    Accumulates one file's records into a summary.

    Shared by the index builder and the timeline builder so both agree on
    counts, timestamps and token totals.
    """

    def __init__(self, file_path: Path):
        self.file_path = Path(file_path)
        self.summary = SessionSummary(
            session_id=session_id_from_path(self.file_path),
            file_path=str(self.file_path),
        )
        self.tools: Dict[str, int] = {}
        self.call_names: Dict[str, str] = {}
        self.user_text: List[str] = []
        self.usage = UsageAccumulator()
        self.first_ts: Optional[str] = None
        self.last_ts: Optional[str] = None
        self.meta_started_at: Optional[str] = None

    def feed(self, record: Record):
        """
        Apply one record; returns the token delta for usage records.
        """
        if record.timestamp:
            if self.first_ts is None:
                self.first_ts = record.timestamp
            self.last_ts = record.timestamp

        if isinstance(record, SessionMetaRecord):
            self._apply_meta(record)
        elif isinstance(record, TurnAbortedRecord):
            self.summary.errors += 1
        elif isinstance(record, TokenCountRecord):
            return self.usage.observe(record.total, record.last)
        elif isinstance(record, MessageRecord):
            if record.role in COUNTED_ROLES:
                self.summary.messages += 1
            if record.role == 'user' and record.text:
                self.user_text.append(record.text)
        elif isinstance(record, ToolCallRecord):
            self.summary.tool_calls += 1
            self.tools[record.name] = self.tools.get(record.name, 0) + 1
            if record.call_id:
                self.call_names[record.call_id] = record.name
        elif isinstance(record, ToolOutputRecord):
            self.summary.errors += count_output_errors(record.output)
        return None

    def tool_name_for(self, record: ToolOutputRecord) -> Optional[str]:
        if record.name:
            return record.name
        if record.call_id:
            return self.call_names.get(record.call_id)
        return None

    def _apply_meta(self, record: SessionMetaRecord) -> None:
        # A later session_meta replaces the earlier header, counters stay
        if record.session_id:
            self.summary.session_id = record.session_id
        self.summary.cwd = record.cwd
        self.summary.originator = record.originator
        self.summary.cli_version = record.cli_version
        self.meta_started_at = record.started_at

    def finish(self) -> SessionSummary:
        """Resolve start/end/duration and token totals into the summary."""
        candidates = [ts for ts in (self.meta_started_at, self.first_ts) if ts]
        self.summary.started_at = min(candidates) if candidates else None
        self.summary.ended_at = self.last_ts
        self.summary.duration_seconds = duration_seconds(
            self.summary.started_at, self.summary.ended_at
        )
        self.summary.usage = self.usage.totals.copy()
        return self.summary


async def build_file_index(file_path: Path) -> FileIndex:
    """
    Parse one session file into its FileIndex.

    Raises:
        OSError: If the file can't be opened or read
    """
    folder = SessionFolder(file_path)

    async for _, entry in stream_jsonl(file_path):
        folder.feed(decode_record(entry))

    summary = folder.finish()
    return FileIndex(
        summary=summary,
        daily_key=day_key(summary.started_at),
        tools=dict(folder.tools),
        word_counts=tokenize('\n'.join(folder.user_text)),
    )
