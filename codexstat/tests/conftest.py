"""Shared fixtures: builders for Codex session log lines and a manual clock."""

import json
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import pytest


def usage(total: int = 0, input: int = 0, output: int = 0,
          cached: int = 0, reasoning: int = 0) -> Dict[str, int]:
    return {
        "total_tokens": total,
        "input_tokens": input,
        "output_tokens": output,
        "cached_input_tokens": cached,
        "reasoning_output_tokens": reasoning,
    }


class SessionLog:
    """Builds raw JSONL entries in the Codex rollout format."""

    usage = staticmethod(usage)

    @staticmethod
    def meta(session_id: str, ts: str, cwd: str = "/work/app",
             originator: str = "codex_cli_rs", cli_version: str = "0.46.0") -> Dict[str, Any]:
        return {
            "timestamp": ts,
            "type": "session_meta",
            "payload": {
                "id": session_id,
                "timestamp": ts,
                "cwd": cwd,
                "originator": originator,
                "cli_version": cli_version,
            },
        }

    @staticmethod
    def message(ts: str, role: str, text: str) -> Dict[str, Any]:
        part = "input_text" if role == "user" else "output_text"
        return {
            "timestamp": ts,
            "type": "response_item",
            "payload": {"type": "message", "role": role, "content": [{"type": part, "text": text}]},
        }

    @staticmethod
    def tool_call(ts: str, name: str, call_id: str, arguments: str = '{"command":["ls"]}') -> Dict[str, Any]:
        return {
            "timestamp": ts,
            "type": "response_item",
            "payload": {"type": "function_call", "name": name, "call_id": call_id, "arguments": arguments},
        }

    @staticmethod
    def tool_output(ts: str, call_id: str, output: str) -> Dict[str, Any]:
        return {
            "timestamp": ts,
            "type": "response_item",
            "payload": {"type": "function_call_output", "call_id": call_id, "output": output},
        }

    @staticmethod
    def tokens(ts: str, total: Optional[Dict[str, int]] = None,
               last: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
        return {
            "timestamp": ts,
            "type": "event_msg",
            "payload": {
                "type": "token_count",
                "info": {"total_token_usage": total, "last_token_usage": last},
            },
        }

    @staticmethod
    def aborted(ts: str) -> Dict[str, Any]:
        return {"timestamp": ts, "type": "event_msg", "payload": {"type": "turn_aborted"}}

    @staticmethod
    def write(path: Path, entries: Iterable[Any], mtime: Optional[float] = None) -> Path:
        """Write entries as JSONL; raw strings are written as-is."""
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = [e if isinstance(e, str) else json.dumps(e, ensure_ascii=False) for e in entries]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    def session(self, path: Path, session_id: str, day: str,
                user_text: str = "refactor the parser", tools: Iterable[str] = (),
                tokens: int = 100, errors: int = 0, cwd: str = "/work/app") -> Path:
        """
        A complete session on `day` (YYYY-MM-DD): one user and one assistant
        message, one call per tool name, one token report, and `errors`
        failing tool outputs.
        """
        tools = list(tools)
        start = f"{day}T10:00:00.000Z"
        entries = [
            self.meta(session_id, start, cwd=cwd),
            self.message(f"{day}T10:00:01.000Z", "user", user_text),
            self.message(f"{day}T10:00:02.000Z", "assistant", "On it."),
        ]
        for i, name in enumerate(tools):
            entries.append(self.tool_call(f"{day}T10:00:{10 + i:02d}.000Z", name, f"call_{i}"))
            output = "Error: command failed" if i < errors else "ok"
            entries.append(self.tool_output(f"{day}T10:00:{10 + i:02d}.500Z", f"call_{i}", output))
        for i in range(len(tools), errors):
            entries.append(self.aborted(f"{day}T10:00:{30 + i:02d}.000Z"))
        entries.append(self.tokens(
            f"{day}T10:01:00.000Z",
            total=usage(tokens, input=tokens - tokens // 4, output=tokens // 4),
        ))
        return self.write(path, entries)


class ManualClock:
    """Monotonic clock stand-in advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def log():
    return SessionLog()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def sessions_dir(tmp_path):
    path = tmp_path / "sessions"
    path.mkdir()
    return path


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"
