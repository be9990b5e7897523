"""Tests for discovery, change detection and the refresh transaction."""

import os

import pytest
import pytest_asyncio

import codexstat.etl as etl
from codexstat.etl import discover_jsonl_files, refresh_index
from codexstat.etl.incremental import get_fingerprint, should_process_file
from codexstat.models.schema import INDEX_VERSION, ensure_database, get_connection, get_meta, set_meta
from codexstat.server.queries.snapshot_queries import get_daily, get_totals


@pytest_asyncio.fixture
async def db(tmp_path):
    conn = await get_connection(tmp_path / "cache" / "index.sqlite")
    await ensure_database(conn)
    yield conn
    await conn.close()


async def _count(db, table, file_path=None):
    if file_path is None:
        cursor = await db.execute(f"SELECT COUNT(*) FROM {table}")
    else:
        cursor = await db.execute(f"SELECT COUNT(*) FROM {table} WHERE file = ?", (str(file_path),))
    return (await cursor.fetchone())[0]


async def _rows(db):
    cursor = await db.execute("SELECT * FROM files ORDER BY file")
    return [tuple(row) for row in await cursor.fetchall()]


@pytest.mark.asyncio
class TestFileDiscovery:
    """Test JSONL file discovery."""

    async def test_recursive(self, sessions_dir):
        (sessions_dir / "2026" / "03" / "01").mkdir(parents=True)
        (sessions_dir / "2026" / "03" / "01" / "rollout-a.jsonl").write_text("{}")
        (sessions_dir / "2026" / "03" / "02").mkdir(parents=True)
        (sessions_dir / "2026" / "03" / "02" / "rollout-b.jsonl").write_text("{}")
        (sessions_dir / "top.jsonl").write_text("{}")

        files = await discover_jsonl_files(sessions_dir)

        assert [f.name for f in files] == ["rollout-a.jsonl", "rollout-b.jsonl", "top.jsonl"]
        assert all(f.is_absolute() for f in files)

    async def test_suffix_filter(self, sessions_dir):
        (sessions_dir / "notes.txt").write_text("x")
        (sessions_dir / "rollout.jsonl.bak").write_text("x")
        (sessions_dir / "rollout.jsonl").write_text("{}")

        files = await discover_jsonl_files(sessions_dir)

        assert [f.name for f in files] == ["rollout.jsonl"]

    async def test_missing_root(self, tmp_path):
        assert await discover_jsonl_files(tmp_path / "nope") == []

    async def test_unreadable_directory_skipped(self, sessions_dir, monkeypatch):
        good = sessions_dir / "good"
        bad = sessions_dir / "bad"
        good.mkdir()
        bad.mkdir()
        (good / "a.jsonl").write_text("{}")
        (bad / "b.jsonl").write_text("{}")

        real_scan = etl._scan_dir

        def flaky_scan(directory):
            if directory.name == "bad":
                raise PermissionError("denied")
            return real_scan(directory)

        monkeypatch.setattr(etl, "_scan_dir", flaky_scan)

        files = await discover_jsonl_files(sessions_dir)

        assert [f.name for f in files] == ["a.jsonl"]


@pytest.mark.asyncio
class TestIncrementalProcessing:
    """Test fingerprint-gated re-parsing."""

    async def test_first_refresh_processes_all(self, db, sessions_dir, log):
        log.session(sessions_dir / "a.jsonl", "a", "2026-03-01")
        log.session(sessions_dir / "b.jsonl", "b", "2026-03-02")

        stats = await refresh_index(db, sessions_dir)

        assert stats["files_total"] == 2
        assert stats["files_processed"] == 2
        assert stats["full_rebuild"] is True
        assert await get_meta(db, "version") == str(INDEX_VERSION)
        assert await get_meta(db, "sessions_path") == str(sessions_dir.absolute())

    async def test_idempotent(self, db, sessions_dir, log):
        log.session(sessions_dir / "a.jsonl", "a", "2026-03-01", tools=["shell"])
        log.session(sessions_dir / "b.jsonl", "b", "2026-03-02")
        await refresh_index(db, sessions_dir)
        before = await get_totals(db)
        rows_before = await _rows(db)

        stats = await refresh_index(db, sessions_dir)

        assert stats["files_processed"] == 0
        assert stats["files_skipped"] == 2
        assert stats["full_rebuild"] is False
        assert await get_totals(db) == before
        assert await _rows(db) == rows_before

    async def test_mtime_change_reparses_only_that_file(self, db, sessions_dir, log):
        a = log.session(sessions_dir / "a.jsonl", "a", "2026-03-01")
        log.session(sessions_dir / "b.jsonl", "b", "2026-03-02")
        await refresh_index(db, sessions_dir)

        os.utime(a, (a.stat().st_atime, a.stat().st_mtime + 30))
        stats = await refresh_index(db, sessions_dir)

        assert stats["files_processed"] == 1
        assert stats["files_skipped"] == 1

    async def test_appended_content_reparsed(self, db, sessions_dir, log):
        a = log.session(sessions_dir / "a.jsonl", "a", "2026-03-01", tokens=100)
        await refresh_index(db, sessions_dir)

        mtime = a.stat().st_mtime
        with open(a, "a", encoding="utf-8") as f:
            f.write('{"timestamp": "2026-03-01T10:05:00Z", "type": "event_msg", "payload": '
                    '{"type": "token_count", "info": {"total_token_usage": {"total_tokens": 250}}}}\n')
        os.utime(a, (mtime, mtime))
        stats = await refresh_index(db, sessions_dir)

        assert stats["files_processed"] == 1
        totals = await get_totals(db)
        assert totals["total_tokens"] == 250

    async def test_should_process_file(self, db, sessions_dir, log):
        a = log.session(sessions_dir / "a.jsonl", "a", "2026-03-01")
        fingerprint = await get_fingerprint(a)
        assert await should_process_file(db, a, fingerprint)

        await refresh_index(db, sessions_dir)

        assert not await should_process_file(db, a, fingerprint)
        assert await should_process_file(db, a, (fingerprint[0], fingerprint[1] + 1))

    async def test_fingerprint_missing_file(self, tmp_path):
        assert await get_fingerprint(tmp_path / "gone.jsonl") is None


@pytest.mark.asyncio
class TestDeletionCleanup:
    """Test removal of rows for deleted files."""

    async def test_deleted_file_rows_removed(self, db, sessions_dir, log):
        a = log.session(sessions_dir / "a.jsonl", "a", "2026-03-01",
                        user_text="parser lexer", tools=["shell"])
        log.session(sessions_dir / "b.jsonl", "b", "2026-03-02")
        await refresh_index(db, sessions_dir)
        assert await _count(db, "tool_counts", a) == 1
        assert await _count(db, "user_token_counts", a) == 2

        a.unlink()
        stats = await refresh_index(db, sessions_dir)

        assert stats["files_removed"] == 1
        assert await _count(db, "files", a) == 0
        assert await _count(db, "tool_counts", a) == 0
        assert await _count(db, "user_token_counts", a) == 0
        assert await _count(db, "files") == 1

    async def test_reparse_replaces_child_rows(self, db, sessions_dir, log):
        a = log.session(sessions_dir / "a.jsonl", "a", "2026-03-01", tools=["shell", "read"])
        await refresh_index(db, sessions_dir)

        log.session(a, "a", "2026-03-01", tools=["apply_patch"])
        os.utime(a, (a.stat().st_atime, a.stat().st_mtime + 60))
        await refresh_index(db, sessions_dir)

        cursor = await db.execute("SELECT tool_name, count FROM tool_counts WHERE file = ?", (str(a),))
        assert [tuple(r) for r in await cursor.fetchall()] == [("apply_patch", 1)]


@pytest.mark.asyncio
class TestRebuild:
    """Test full rebuilds."""

    async def test_version_mismatch_rebuilds(self, db, sessions_dir, log):
        log.session(sessions_dir / "a.jsonl", "a", "2026-03-01")
        await refresh_index(db, sessions_dir)
        await set_meta(db, "version", "1")
        await db.commit()

        stats = await refresh_index(db, sessions_dir)

        assert stats["full_rebuild"] is True
        assert stats["files_processed"] == 1
        assert await get_meta(db, "version") == str(INDEX_VERSION)

    async def test_force_rebuild(self, db, sessions_dir, log):
        log.session(sessions_dir / "a.jsonl", "a", "2026-03-01")
        await refresh_index(db, sessions_dir)

        stats = await refresh_index(db, sessions_dir, force_rebuild=True)

        assert stats["full_rebuild"] is True
        assert stats["files_processed"] == 1
        assert await _count(db, "files") == 1


@pytest.mark.asyncio
class TestFailureHandling:
    """Test per-file failures and transaction rollback."""

    async def test_unreadable_file_skipped(self, db, sessions_dir, log, monkeypatch):
        log.session(sessions_dir / "a.jsonl", "a", "2026-03-01")
        log.session(sessions_dir / "b.jsonl", "b", "2026-03-02")
        real_build = etl.build_file_index

        async def flaky_build(file_path):
            if file_path.name == "b.jsonl":
                raise PermissionError("denied")
            return await real_build(file_path)

        monkeypatch.setattr(etl, "build_file_index", flaky_build)

        stats = await refresh_index(db, sessions_dir)

        assert stats["files_processed"] == 1
        assert stats["files_failed"] == 1
        assert await _count(db, "files") == 1

    async def test_failure_rolls_back(self, db, sessions_dir, log, monkeypatch):
        a = log.session(sessions_dir / "a.jsonl", "a", "2026-03-01", tools=["shell"])
        await refresh_index(db, sessions_dir)
        generated_at = await get_meta(db, "generated_at")
        totals = await get_totals(db)

        a.unlink()
        log.session(sessions_dir / "b.jsonl", "b", "2026-03-02")
        log.session(sessions_dir / "c.jsonl", "c", "2026-03-03")
        real_build = etl.build_file_index

        async def broken_build(file_path):
            if file_path.name == "c.jsonl":
                raise RuntimeError("disk on fire")
            return await real_build(file_path)

        monkeypatch.setattr(etl, "build_file_index", broken_build)

        with pytest.raises(RuntimeError):
            await refresh_index(db, sessions_dir)

        assert await get_meta(db, "generated_at") == generated_at
        assert await get_totals(db) == totals
        assert await _count(db, "files", a) == 1
        assert await _count(db, "tool_counts", a) == 1


@pytest.mark.asyncio
class TestRollups:
    """Test that daily buckets add up to the totals."""

    async def test_daily_sums_equal_totals(self, db, sessions_dir, log):
        log.session(sessions_dir / "a.jsonl", "a", "2026-03-01", tools=["shell"], tokens=120, errors=1)
        log.session(sessions_dir / "b.jsonl", "b", "2026-03-01", tools=["shell", "read"], tokens=80)
        log.session(sessions_dir / "c.jsonl", "c", "2026-03-04", tokens=40, errors=2)
        log.write(sessions_dir / "d.jsonl", [log.message(None, "user", "no timestamps here")])
        await refresh_index(db, sessions_dir)

        totals = await get_totals(db)
        daily = await get_daily(db)

        assert list(daily) == ["2026-03-01", "2026-03-04", "unknown"]
        for field in ("sessions", "messages", "tool_calls", "errors", "total_tokens",
                      "input_tokens", "output_tokens", "cached_input_tokens",
                      "reasoning_output_tokens"):
            assert sum(day[field] for day in daily.values()) == totals[field], field
        assert totals["files"] == 4
        assert totals["total_tokens"] == 240
        assert totals["errors"] == 3
