"""
On-disk timeline cache.

One JSON document per session under <cache>/session/, named by the
URL-escaped session id. A document is reused only when its cache_version
stamp is current and its fingerprint matches the source file; anything
else (missing, unreadable, malformed, old) is a miss.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote

from codexstat.etl.incremental import Fingerprint

logger = logging.getLogger("codexstat.timeline")

# v1 documents predate token_usage events
TIMELINE_CACHE_VERSION = 2

SESSION_DIR = 'session'


def _read_json(path: Path) -> Any:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def _write_json_atomic(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + '.tmp')
    with open(tmp, 'w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False)
    os.replace(tmp, path)


class TimelineCache:
    """Per-session materialized timelines keyed by session id."""

    def __init__(self, cache_path: Path):
        self.directory = Path(cache_path) / SESSION_DIR

    def path_for(self, session_id: str) -> Path:
        return self.directory / f"{quote(session_id, safe='')}.json"

    async def load(
        self,
        session_id: str,
        fingerprint: Fingerprint
    ) -> Optional[Dict[str, Any]]:
        """Cached timeline for a session if still valid for this fingerprint."""
        path = self.path_for(session_id)
        try:
            doc = await asyncio.to_thread(_read_json, path)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.debug("Discarding unreadable timeline cache %s: %s", path.name, e)
            return None

        if not self.is_valid(doc, fingerprint):
            logger.debug("Timeline cache for %s is stale", session_id)
            return None

        return {
            "summary": doc["summary"],
            "truncated": bool(doc.get("truncated")),
            "events": doc["events"],
            "usage": doc.get("usage") or {},
        }

    @staticmethod
    def is_valid(doc: Any, fingerprint: Fingerprint) -> bool:
        if not isinstance(doc, dict):
            return False
        if doc.get("cache_version") != TIMELINE_CACHE_VERSION:
            return False
        mtime, size = fingerprint
        if doc.get("file_mtime") != mtime or doc.get("file_size") != size:
            return False
        return isinstance(doc.get("summary"), dict) and isinstance(doc.get("events"), list)

    async def store(
        self,
        session_id: str,
        fingerprint: Fingerprint,
        timeline: Dict[str, Any]
    ) -> None:
        """Persist a freshly built timeline; write failures are only logged."""
        mtime, size = fingerprint
        doc = dict(timeline)
        doc.update({
            "cache_version": TIMELINE_CACHE_VERSION,
            "file_mtime": mtime,
            "file_size": size,
        })
        path = self.path_for(session_id)
        try:
            await asyncio.to_thread(_write_json_atomic, path, doc)
        except OSError as e:
            logger.warning("Could not write timeline cache %s: %s", path, e)
