"""
Record decoding for codexstat.

Turns one decoded JSONL object into one of a fixed set of record shapes.
A missing or wrongly-typed field becomes None (or an empty default),
never an exception.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from codexstat.models.entities import TokenUsage
from codexstat.utils.timestamps import normalize_timestamp

# Top-level discriminators
SESSION_META = 'session_meta'
EVENT_MSG = 'event_msg'
RESPONSE_ITEM = 'response_item'

# event_msg subtypes
TURN_ABORTED = 'turn_aborted'
TOKEN_COUNT = 'token_count'

# response_item subtypes
MESSAGE = 'message'
TOOL_CALL_TYPES = ('function_call', 'custom_tool_call')
TOOL_OUTPUT_TYPES = ('function_call_output', 'custom_tool_call_output')


def _str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _obj(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


@dataclass
class SessionMetaRecord:
    """Session header: identity and client details."""
    timestamp: Optional[str]
    session_id: Optional[str] = None
    started_at: Optional[str] = None
    cwd: Optional[str] = None
    originator: Optional[str] = None
    cli_version: Optional[str] = None


@dataclass
class TurnAbortedRecord:
    timestamp: Optional[str]


@dataclass
class TokenCountRecord:
    """Periodic usage report carrying a cumulative and a last-turn snapshot."""
    timestamp: Optional[str]
    total: Optional[TokenUsage] = None
    last: Optional[TokenUsage] = None


@dataclass
class MessageRecord:
    timestamp: Optional[str]
    role: Optional[str] = None
    text: Optional[str] = None


@dataclass
class ToolCallRecord:
    timestamp: Optional[str]
    name: str = 'unknown'
    call_id: Optional[str] = None
    arguments: Optional[str] = None
    input: Optional[str] = None


@dataclass
class ToolOutputRecord:
    timestamp: Optional[str]
    call_id: Optional[str] = None
    name: Optional[str] = None
    output: Optional[str] = None


@dataclass
class OtherRecord:
    """Anything outside the recognised shapes; only its timestamp matters."""
    timestamp: Optional[str]
    type: Optional[str] = None


Record = Union[
    SessionMetaRecord,
    TurnAbortedRecord,
    TokenCountRecord,
    MessageRecord,
    ToolCallRecord,
    ToolOutputRecord,
    OtherRecord,
]


def extract_message_text(payload: Dict[str, Any]) -> Optional[str]:
    """
    Join the textual parts of a message's content with newlines.

    Any part carrying a string 'text' counts, whatever its sub-kind
    (input_text, output_text, ...). Returns None when nothing remains.
    """
    content = payload.get('content')
    if not isinstance(content, list):
        return None
    parts = []
    for block in content:
        if isinstance(block, dict) and isinstance(block.get('text'), str):
            parts.append(block['text'])
    text = '\n'.join(parts).strip()
    return text or None


def _decode_session_meta(entry: Dict[str, Any], ts: Optional[str]) -> SessionMetaRecord:
    payload = _obj(entry.get('payload'))
    session_id = payload.get('id')
    return SessionMetaRecord(
        timestamp=ts,
        session_id=session_id if isinstance(session_id, str) and session_id else None,
        started_at=ts or normalize_timestamp(payload.get('timestamp')),
        cwd=_str(payload.get('cwd')),
        originator=_str(payload.get('originator')),
        cli_version=_str(payload.get('cli_version')),
    )


def _decode_event(entry: Dict[str, Any], ts: Optional[str]) -> Record:
    payload = _obj(entry.get('payload'))
    subtype = payload.get('type')
    if subtype == TURN_ABORTED:
        return TurnAbortedRecord(timestamp=ts)
    if subtype == TOKEN_COUNT:
        info = _obj(payload.get('info'))
        return TokenCountRecord(
            timestamp=ts,
            total=TokenUsage.from_dict(info.get('total_token_usage')),
            last=TokenUsage.from_dict(info.get('last_token_usage')),
        )
    return OtherRecord(timestamp=ts, type=f"{EVENT_MSG}:{subtype}")


def _decode_response_item(entry: Dict[str, Any], ts: Optional[str]) -> Record:
    payload = _obj(entry.get('payload'))
    subtype = payload.get('type')
    if subtype == MESSAGE:
        return MessageRecord(
            timestamp=ts,
            role=_str(payload.get('role')),
            text=extract_message_text(payload),
        )
    if subtype in TOOL_CALL_TYPES:
        return ToolCallRecord(
            timestamp=ts,
            name=_str(payload.get('name')) or 'unknown',
            call_id=_str(payload.get('call_id')),
            arguments=_str(payload.get('arguments')),
            input=_str(payload.get('input')),
        )
    if subtype in TOOL_OUTPUT_TYPES:
        return ToolOutputRecord(
            timestamp=ts,
            call_id=_str(payload.get('call_id')),
            name=_str(payload.get('name')),
            output=_str(payload.get('output')),
        )
    return OtherRecord(timestamp=ts, type=f"{RESPONSE_ITEM}:{subtype}")


def decode_record(entry: Dict[str, Any]) -> Record:
    """Classify one decoded JSONL object into a record shape."""
    ts = normalize_timestamp(entry.get('timestamp'))
    entry_type = entry.get('type')

    if entry_type == SESSION_META:
        return _decode_session_meta(entry, ts)
    if entry_type == EVENT_MSG:
        return _decode_event(entry, ts)
    if entry_type == RESPONSE_ITEM:
        return _decode_response_item(entry, ts)
    return OtherRecord(timestamp=ts, type=_str(entry_type))
