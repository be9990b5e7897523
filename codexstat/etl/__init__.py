"""
ETL package - Extract, Transform, Load pipeline for session JSONL files.

Main entry point is refresh_index() which brings the index up to date
with the source directory in a single transaction.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Tuple

import aiosqlite

from codexstat.etl.extractor import build_file_index
from codexstat.etl.incremental import (
    get_fingerprint,
    list_indexed_files,
    should_process_file,
)
from codexstat.etl.loader import clear_index, delete_file, store_file_index
from codexstat.models.schema import INDEX_VERSION, ensure_database, get_meta, set_meta
from codexstat.utils.timestamps import utc_now_iso

logger = logging.getLogger("codexstat.etl")

JSONL_SUFFIX = '.jsonl'


def _scan_dir(directory: Path) -> Tuple[List[Path], List[Path]]:
    """List (subdirectories, jsonl files) of one directory."""
    dirs: List[Path] = []
    files: List[Path] = []
    with os.scandir(directory) as it:
        for entry in it:
            try:
                if entry.is_dir(follow_symlinks=False):
                    dirs.append(Path(entry.path))
                elif entry.is_file() and entry.name.endswith(JSONL_SUFFIX):
                    files.append(Path(entry.path))
            except OSError:
                continue
    return dirs, files


async def discover_jsonl_files(sessions_path: Path) -> List[Path]:
    """
    Discover all JSONL files under the sessions directory, recursively.

    Directories that cannot be listed are skipped; discovery never fails.

    Args:
        sessions_path: Root of the session logs (e.g. ~/.codex/sessions)

    Returns:
        Sorted list of absolute JSONL file paths
    """
    root = Path(sessions_path).expanduser().absolute()
    found: List[Path] = []
    pending = [root]

    while pending:
        directory = pending.pop()
        try:
            dirs, files = await asyncio.to_thread(_scan_dir, directory)
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", directory, e)
            continue
        found.extend(files)
        pending.extend(dirs)

    return sorted(found)


async def refresh_index(
    db: aiosqlite.Connection,
    sessions_path: Path,
    force_rebuild: bool = False
) -> Dict[str, Any]:
    """
    Run the full incremental refresh.

    Steps, all inside one transaction:
    1. Drop every derived row if the stored index version differs
    2. Delete rows of files no longer on disk
    3. Re-parse new or changed files and replace their rows
    4. Record source root, refresh time and index version

    Any failure rolls the whole refresh back and is re-raised.

    Args:
        db: Connection dedicated to writes
        sessions_path: Root of the session logs
        force_rebuild: Drop all derived rows regardless of version

    Returns:
        Dict with refresh statistics
    """
    await ensure_database(db)

    sessions_path = Path(sessions_path).expanduser().absolute()
    files = await discover_jsonl_files(sessions_path)
    on_disk = {str(f) for f in files}

    stats = {
        'files_total': len(files),
        'files_processed': 0,
        'files_skipped': 0,
        'files_removed': 0,
        'files_failed': 0,
        'full_rebuild': False,
    }

    await db.execute("BEGIN IMMEDIATE")
    try:
        stored_version = await get_meta(db, 'version')
        if force_rebuild or stored_version != str(INDEX_VERSION):
            await clear_index(db)
            stats['full_rebuild'] = True

        for stale in sorted(await list_indexed_files(db) - on_disk):
            await delete_file(db, stale)
            stats['files_removed'] += 1

        for file_path in files:
            fingerprint = await get_fingerprint(file_path)
            if fingerprint is None:
                stats['files_failed'] += 1
                continue

            if not await should_process_file(db, file_path, fingerprint):
                stats['files_skipped'] += 1
                continue

            try:
                index = await build_file_index(file_path)
            except OSError as e:
                logger.warning("Could not read %s: %s", file_path, e)
                stats['files_failed'] += 1
                continue

            await store_file_index(db, file_path, fingerprint, index)
            stats['files_processed'] += 1

        await set_meta(db, 'sessions_path', str(sessions_path))
        await set_meta(db, 'generated_at', utc_now_iso())
        await set_meta(db, 'version', str(INDEX_VERSION))

        await db.commit()
    except BaseException:
        logger.exception("Index refresh failed; rolling back")
        await db.rollback()
        raise

    logger.info(
        "Refresh complete: %d processed, %d unchanged, %d removed%s",
        stats['files_processed'],
        stats['files_skipped'],
        stats['files_removed'],
        " (full rebuild)" if stats['full_rebuild'] else "",
    )
    return stats
