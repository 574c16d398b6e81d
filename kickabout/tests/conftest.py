"""
Shared pytest configuration for backend tests.

Each test gets its own on-disk SQLite database (aiosqlite) so background
aggregate recomputes can open their own connections and see committed rows.
"""

import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402
from kickabout.database import db  # noqa: E402
from kickabout.database.db import Base  # noqa: E402
from kickabout.database.models import (  # noqa: E402
    Match,
    MatchParticipant,
    Profile,
    User,
)
from kickabout.services import aggregation_queue as aggregation_queue_module  # noqa: E402
from kickabout.services.aggregation_queue import AggregationQueue  # noqa: E402


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Create a fresh database and point db.AsyncSessionLocal at it."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'kickabout_test.db'}",
        echo=False,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Code that opens its own sessions (run_in_transaction, the aggregation
    # queue) must hit the same database as the test fixtures.
    test_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    original_async_session_local = db.AsyncSessionLocal
    db.AsyncSessionLocal = test_session_maker

    yield engine

    db.AsyncSessionLocal = original_async_session_local
    await engine.dispose()


@pytest_asyncio.fixture
async def aggregation_queue(test_engine, monkeypatch):
    """Install a fresh global aggregation queue and drain it after the test."""
    queue = AggregationQueue()
    monkeypatch.setattr(aggregation_queue_module, "_aggregation_queue", queue)
    yield queue
    await queue.wait_idle()


@pytest_asyncio.fixture
async def db_session(test_engine, aggregation_queue):
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


async def _create_user(db_session, display_name=None, favorite_position=None):
    """Create a user (and a profile when display_name is given), return user_id."""
    user = User()
    db_session.add(user)
    await db_session.flush()

    if display_name is not None:
        profile = Profile(
            user_id=user.id,
            display_name=display_name,
            favorite_position=favorite_position,
        )
        db_session.add(profile)
        await db_session.flush()
    return user.id


async def _create_match(db_session, participant_ids, title="Sunday kickabout"):
    """Create a match with the given participants, return match_id."""
    match = Match(title=title)
    db_session.add(match)
    await db_session.flush()
    for user_id in participant_ids:
        db_session.add(MatchParticipant(match_id=match.id, user_id=user_id))
    await db_session.flush()
    return match.id


@pytest_asyncio.fixture
async def users(db_session):
    """Create four users with profiles and commit them."""
    alice = await _create_user(db_session, "Alice Alpha", "forward")
    bob = await _create_user(db_session, "Bob Beta", "defender")
    carol = await _create_user(db_session, "Carol Gamma", "goalkeeper")
    dave = await _create_user(db_session, "Dave Delta")
    await db_session.commit()
    return {"alice": alice, "bob": bob, "carol": carol, "dave": dave}


@pytest_asyncio.fixture
async def make_user(db_session):
    """Factory fixture: await make_user("Name") -> user_id."""

    async def _make(display_name=None, favorite_position=None):
        return await _create_user(db_session, display_name, favorite_position)

    return _make


@pytest_asyncio.fixture
async def make_match(db_session):
    """Factory fixture: await make_match([user_ids]) -> match_id."""

    async def _make(participant_ids, title="Sunday kickabout"):
        return await _create_match(db_session, participant_ids, title)

    return _make
