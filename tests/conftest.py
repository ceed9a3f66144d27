import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from review_service.database.db import create_tables
from review_service.models import Film, Review, User
from review_service.services import BalancedAssignmentEngine, ReviewLifecycleManager, ReviewStore

OWNER = 1
REVIEWER = 2
OTHER_USER = 3
PUBLIC_FILM = 1
PRIVATE_FILM = 2
FOREIGN_FILM = 3


@pytest.fixture
async def engine(tmp_path):
    """Create a throwaway SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'reviews.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
async def add(session):
    """Persist the given rows."""
    async def _add(*rows):
        session.add_all(rows)
        await session.commit()
    return _add


@pytest.fixture
async def catalog(add):
    """Owner 1 with a public and a private movie, reviewers 2 and 3, a movie of user 3."""
    await add(
        User(id=OWNER, email="owner@example.com", full_name="Owner"),
        User(id=REVIEWER, email="reviewer@example.com", full_name="Reviewer"),
        User(id=OTHER_USER, email="other@example.com", full_name="Other"),
    )
    await add(
        Film(id=PUBLIC_FILM, title="Inception", owner=OWNER, private=False),
        Film(id=PRIVATE_FILM, title="Home videos", owner=OWNER, private=True),
        Film(id=FOREIGN_FILM, title="Heat", owner=OTHER_USER, private=False),
    )


@pytest.fixture
def store(session):
    return ReviewStore(session)


@pytest.fixture
def lifecycle(store):
    return ReviewLifecycleManager(store, page_size=10)


@pytest.fixture
def assignment(lifecycle, store):
    return BalancedAssignmentEngine(lifecycle, store)


async def stored_review(store: ReviewStore, film_id: int, reviewer_id: int) -> Review:
    return await store.query_review_by_key(film_id, reviewer_id)
