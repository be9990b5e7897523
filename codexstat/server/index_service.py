"""
Index service: the refresh coordinator behind every read operation.

Owns two connections to the index (one for the refresh transaction, one
for reads, so WAL gives readers a committed snapshot), the throttle
timestamp, the single in-flight refresh, and the short-lived snapshot.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import aiosqlite

from codexstat.config.loader import DATABASE_FILENAME, get_cache_path, get_sessions_path
from codexstat.etl import discover_jsonl_files, refresh_index
from codexstat.etl.extractor import build_file_index, session_id_from_path
from codexstat.etl.incremental import get_fingerprint
from codexstat.etl.parser import peek_first_entry
from codexstat.etl.records import SESSION_META
from codexstat.etl.timeline import MAX_TIMELINE_EVENTS, build_timeline
from codexstat.models.schema import ensure_database, get_connection
from codexstat.server.queries.session_queries import get_session_by_id, get_sessions
from codexstat.server.queries.snapshot_queries import get_index_snapshot
from codexstat.server.queries.wordcloud_queries import get_user_word_cloud
from codexstat.server.timeline_cache import TimelineCache
from codexstat.utils.timestamps import utc_now_iso

logger = logging.getLogger("codexstat.server")

DEFAULT_REFRESH_INTERVAL = 10.0
DEFAULT_SNAPSHOT_TTL = 10.0

SESSION_NOT_FOUND = "session file not found"


class IndexService:
    """
    Keeps the index fresh and answers queries from it.

    Refreshes are throttled to one per refresh_interval seconds; callers
    arriving while a refresh runs await that same refresh.
    """

    def __init__(
        self,
        sessions_path: Path,
        cache_path: Path,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        snapshot_ttl: float = DEFAULT_SNAPSHOT_TTL,
        max_timeline_events: int = MAX_TIMELINE_EVENTS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.sessions_path = Path(sessions_path).expanduser().absolute()
        self.cache_path = Path(cache_path).expanduser().absolute()
        self.db_path = self.cache_path / DATABASE_FILENAME
        self.refresh_interval = refresh_interval
        self.snapshot_ttl = snapshot_ttl
        self.max_timeline_events = max_timeline_events
        self.timeline_cache = TimelineCache(self.cache_path)
        self._clock = clock

        self._writer: Optional[aiosqlite.Connection] = None
        self._reader: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()
        self._in_flight: Optional[asyncio.Future] = None
        self._last_refresh: Optional[float] = None
        self._snapshot: Optional[Dict[str, Any]] = None
        self._snapshot_at: Optional[float] = None
        self.refresh_count = 0
        self.last_stats: Optional[Dict[str, Any]] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "IndexService":
        return cls(
            sessions_path=get_sessions_path(config),
            cache_path=get_cache_path(config),
            refresh_interval=config.get('refresh_interval_seconds', DEFAULT_REFRESH_INTERVAL),
            snapshot_ttl=config.get('snapshot_ttl_seconds', DEFAULT_SNAPSHOT_TTL),
            max_timeline_events=config.get('timeline_max_events', MAX_TIMELINE_EVENTS),
        )

    async def open(self) -> "IndexService":
        """Open both connections and make sure the schema exists."""
        if self._writer is None:
            self._writer = await get_connection(self.db_path)
            await ensure_database(self._writer)
            self._reader = await get_connection(self.db_path)
        return self

    async def close(self) -> None:
        if self._in_flight is not None and not self._in_flight.done():
            await asyncio.gather(self._in_flight, return_exceptions=True)
        for db in (self._reader, self._writer):
            if db is not None:
                await db.close()
        self._reader = None
        self._writer = None

    async def __aenter__(self) -> "IndexService":
        return await self.open()

    async def __aexit__(self, *exc) -> None:
        await self.close()

    @property
    def reader(self) -> aiosqlite.Connection:
        if self._reader is None:
            raise RuntimeError("IndexService is not open")
        return self._reader

    # -- refresh coordination ------------------------------------------------

    async def ensure_fresh(
        self,
        force: bool = False,
        rebuild: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """
        Refresh the index unless one ran within refresh_interval.

        force skips the throttle; rebuild also discards every indexed row
        first. A caller joining an in-flight refresh gets that refresh as is.

        Returns the snapshot produced by the refresh this call ran or
        joined, or None when the call was throttled.
        """
        async with self._lock:
            in_flight = self._in_flight
            if in_flight is None:
                now = self._clock()
                if (not (force or rebuild) and self._last_refresh is not None
                        and now - self._last_refresh < self.refresh_interval):
                    return None
                self._last_refresh = now
                in_flight = asyncio.ensure_future(self._run_refresh(rebuild))
                in_flight.add_done_callback(self._clear_in_flight)
                self._in_flight = in_flight

        return await asyncio.shield(in_flight)

    def _clear_in_flight(self, future: asyncio.Future) -> None:
        if self._in_flight is future:
            self._in_flight = None
        if future.cancelled() or future.exception() is not None:
            # Let the next caller retry instead of waiting out the interval
            self._last_refresh = None

    async def _run_refresh(self, rebuild: bool) -> Dict[str, Any]:
        await self.open()
        self.last_stats = await refresh_index(self._writer, self.sessions_path, force_rebuild=rebuild)
        self.refresh_count += 1
        snapshot = await get_index_snapshot(
            self.reader, str(self.sessions_path), str(self.cache_path)
        )
        self._snapshot = snapshot
        self._snapshot_at = self._clock()
        return snapshot

    async def refresh(self, rebuild: bool = False) -> Dict[str, Any]:
        """Refresh now regardless of the throttle; returns the refresh stats."""
        await self.ensure_fresh(force=True, rebuild=rebuild)
        return self.last_stats

    # -- read operations -----------------------------------------------------

    async def get_index_snapshot(self) -> Dict[str, Any]:
        """Totals, per-day breakdown and tool ranking."""
        if (self._snapshot is not None and self._snapshot_at is not None
                and self._clock() - self._snapshot_at < self.snapshot_ttl):
            return self._snapshot

        snapshot = await self.ensure_fresh()
        if snapshot is None:
            await self.open()
            snapshot = await get_index_snapshot(
                self.reader, str(self.sessions_path), str(self.cache_path)
            )
            self._snapshot = snapshot
            self._snapshot_at = self._clock()
        return snapshot

    async def list_sessions(
        self,
        query: Optional[str] = None,
        only_with_tools: bool = False,
        only_with_errors: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Paginated, filtered session list."""
        await self.ensure_fresh()
        await self.open()
        items, total = await get_sessions(
            self.reader, query, only_with_tools, only_with_errors, limit, offset
        )
        return {"generated_at": utc_now_iso(), "total": total, "items": items}

    async def get_user_word_cloud(
        self,
        days: Optional[int] = None,
        limit: Optional[int] = None,
        min_count: Optional[int] = None,
        query: Optional[str] = None,
        only_with_tools: bool = False,
        only_with_errors: bool = False,
    ) -> Dict[str, Any]:
        """Ranked tokens of user-authored text."""
        await self.ensure_fresh()
        await self.open()
        cloud = await get_user_word_cloud(
            self.reader, days, limit, min_count, query, only_with_tools, only_with_errors
        )
        cloud["generated_at"] = utc_now_iso()
        return cloud

    async def get_session_timeline(self, session_id: str) -> Dict[str, Any]:
        """
        Event timeline of one session, served from the timeline cache when
        the cached copy matches the file.
        """
        await self.ensure_fresh()
        await self.open()

        session = await get_session_by_id(self.reader, session_id)
        file_path = Path(session["file_path"]) if session else await self.find_session_file(session_id)
        if file_path is None:
            return self._missing_timeline(session_id)

        fingerprint = await get_fingerprint(file_path)
        if fingerprint is None:
            return self._missing_timeline(session_id)

        cached = await self.timeline_cache.load(session_id, fingerprint)
        if cached is not None:
            return cached

        try:
            summary = session
            if summary is None:
                summary = (await build_file_index(file_path)).summary.to_dict()
            timeline = await build_timeline(file_path, summary, self.max_timeline_events)
        except OSError as e:
            logger.warning("Could not read %s: %s", file_path, e)
            return self._missing_timeline(session_id)

        await self.timeline_cache.store(session_id, fingerprint, timeline)
        return timeline

    async def find_session_file(self, session_id: str) -> Optional[Path]:
        """
        Locate a session file not (yet) in the index.

        Tries the file name first, then the id in each file's leading
        session_meta record.
        """
        files = await discover_jsonl_files(self.sessions_path)
        for file_path in files:
            if session_id_from_path(file_path) == session_id:
                return file_path

        for file_path in files:
            entry = await peek_first_entry(file_path)
            if not entry or entry.get('type') != SESSION_META:
                continue
            payload = entry.get('payload')
            if isinstance(payload, dict) and payload.get('id') == session_id:
                return file_path
        return None

    @staticmethod
    def _missing_timeline(session_id: str) -> Dict[str, Any]:
        return {
            "summary": {
                "session_id": session_id,
                "file_path": "",
                "started_at": None,
                "ended_at": None,
                "duration_seconds": None,
                "cwd": None,
                "originator": None,
                "cli_version": None,
                "messages": 0,
                "tool_calls": 0,
                "errors": 1,
                "usage": {},
            },
            "truncated": False,
            "events": [{"ts": utc_now_iso(), "kind": "error", "text": SESSION_NOT_FOUND}],
            "usage": {},
        }
