"""
Incremental processing for codexstat ETL pipeline.

Tracks file fingerprints (mtime, size) to avoid re-parsing unchanged files.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional, Set, Tuple

import aiosqlite

logger = logging.getLogger("codexstat.etl")

Fingerprint = Tuple[float, int]


async def get_fingerprint(file_path: Path) -> Optional[Fingerprint]:
    """
    Current (mtime, size) of a file.

    Returns None when the file can't be stat'ed; the caller skips it for
    this cycle and keeps whatever was indexed before.
    """
    try:
        stat = await asyncio.to_thread(os.stat, file_path)
    except OSError as e:
        logger.debug("Cannot stat %s: %s", file_path, e)
        return None
    return (stat.st_mtime, stat.st_size)


async def get_stored_fingerprint(
    db: aiosqlite.Connection,
    file_path: Path
) -> Optional[Fingerprint]:
    """Fingerprint recorded for a file at its last parse, if any."""
    cursor = await db.execute(
        "SELECT mtime, size FROM files WHERE file = ?",
        (str(file_path),)
    )
    row = await cursor.fetchone()
    if row is None:
        return None
    return (row['mtime'], row['size'])


async def should_process_file(
    db: aiosqlite.Connection,
    file_path: Path,
    fingerprint: Fingerprint
) -> bool:
    """
    Check if a file needs processing based on mtime/size.

    New files and files whose fingerprint differs are (re)parsed; an equal
    fingerprint means the stored rows are current.
    """
    stored = await get_stored_fingerprint(db, file_path)
    if stored is None:
        return True
    return stored != fingerprint


async def list_indexed_files(db: aiosqlite.Connection) -> Set[str]:
    """All file paths that currently have a row in the index."""
    cursor = await db.execute("SELECT file FROM files")
    rows = await cursor.fetchall()
    return {row['file'] for row in rows}
