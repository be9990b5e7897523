"""
JSONL Parser for codexstat.

Streams JSONL files line-by-line for memory-efficient processing.
Never loads entire file into memory - critical for large session logs.
Reads happen in worker threads in bounded batches, so the event loop is
only suspended at read boundaries.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import AsyncIterator, IO, List, Optional, Tuple

logger = logging.getLogger("codexstat.etl")

# Lines handed over per worker-thread read
READ_BATCH_LINES = 512


def _open_text(file_path: Path) -> IO[str]:
    return open(file_path, 'r', encoding='utf-8', errors='replace')


def _read_batch(handle: IO[str], size: int) -> List[str]:
    lines = []
    for _ in range(size):
        line = handle.readline()
        if not line:
            break
        lines.append(line)
    return lines


def decode_line(line: str) -> Optional[dict]:
    """Decode one JSONL line; None for blank, malformed or non-object lines."""
    line = line.strip()
    if not line:
        return None
    try:
        entry = json.loads(line)
    except (json.JSONDecodeError, ValueError):
        return None
    return entry if isinstance(entry, dict) else None


async def stream_jsonl(
    file_path: Path,
    batch_size: int = READ_BATCH_LINES
) -> AsyncIterator[Tuple[int, dict]]:
    """
    Stream JSONL file line by line.

    Yields (line_number, parsed_dict) tuples.
    Skips malformed lines gracefully.

    CRITICAL: This function MUST stream line-by-line.
    Never use json.load() on the entire file.

    Raises:
        OSError: If the file can't be opened or read
    """
    handle = await asyncio.to_thread(_open_text, Path(file_path))
    malformed_count = 0
    line_num = 0
    try:
        while True:
            batch = await asyncio.to_thread(_read_batch, handle, batch_size)
            if not batch:
                break
            for line in batch:
                line_num += 1
                entry = decode_line(line)
                if entry is None:
                    if line.strip():
                        malformed_count += 1
                    continue
                yield line_num, entry
    finally:
        handle.close()
        if malformed_count > 0:
            logger.debug("Skipped %d malformed lines in %s", malformed_count, Path(file_path).name)


def _peek_first_entry(file_path: Path) -> Optional[dict]:
    with _open_text(file_path) as f:
        for line in f:
            entry = decode_line(line)
            if entry is not None:
                return entry
            if line.strip():
                return None
    return None


async def peek_first_entry(file_path: Path) -> Optional[dict]:
    """
    Read just the first non-blank entry from a JSONL file.

    Returns None when the first non-blank line does not decode, or the file
    is empty or unreadable.
    """
    try:
        return await asyncio.to_thread(_peek_first_entry, Path(file_path))
    except OSError:
        return None
