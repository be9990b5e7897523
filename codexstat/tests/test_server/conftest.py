"""Test fixtures for server tests.

Writes a deterministic set of session logs and serves them through an
IndexService whose clock only moves when a test advances it.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from codexstat.server.app import create_app
from codexstat.server.index_service import IndexService


@pytest.fixture
def populated_sessions(sessions_dir, log):
    """Write five sessions, one per day, newest first.

    - s1 2026-03-05  /work/alpha  shell x2           500 tokens
    - s2 2026-03-04  /work/beta   aborted turn        200 tokens
    - s3 2026-03-03  /work/alpha  read (fails)        100 tokens
    - s4 2026-03-02  /work/gamma                       50 tokens
    - s5 2026-03-01  /work/beta   shell               150 tokens

    'parser' occurs 4 times in user text; every other word once.
    """
    day_dir = sessions_dir / "2026" / "03"
    log.session(day_dir / "05" / "rollout-s1.jsonl", "s1", "2026-03-05",
                user_text="refactor parser parser", tools=["shell", "shell"],
                tokens=500, cwd="/work/alpha")
    log.session(day_dir / "04" / "rollout-s2.jsonl", "s2", "2026-03-04",
                user_text="parser tests", tokens=200, errors=1, cwd="/work/beta")
    log.session(day_dir / "03" / "rollout-s3.jsonl", "s3", "2026-03-03",
                user_text="deploy script", tools=["read"], tokens=100, errors=1,
                cwd="/work/alpha")
    log.session(day_dir / "02" / "rollout-s4.jsonl", "s4", "2026-03-02",
                user_text="lexer", tokens=50, cwd="/work/gamma")
    log.session(day_dir / "01" / "rollout-s5.jsonl", "s5", "2026-03-01",
                user_text="parser", tools=["shell"], tokens=150, cwd="/work/beta")
    return sessions_dir


@pytest_asyncio.fixture
async def service(sessions_dir, cache_dir, clock):
    """An opened IndexService over the temporary directories."""
    svc = IndexService(sessions_dir, cache_dir, clock=clock)
    await svc.open()
    yield svc
    await svc.close()


@pytest.fixture
def test_config(sessions_dir, cache_dir):
    return {
        "sessions_path": str(sessions_dir),
        "cache_path": str(cache_dir),
        "refresh_interval_seconds": 10,
        "snapshot_ttl_seconds": 10,
        "timeline_max_events": 5000,
        "display": {"color_enabled": False},
    }


@pytest_asyncio.fixture
async def client(populated_sessions, service, test_config):
    """Create an async test client serving the populated sessions."""
    app = create_app(config=test_config, service=service)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
