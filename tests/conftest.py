import itertools
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="reservation-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'library.db')}"
os.environ["SWEEP_ENABLED"] = "false"
os.environ.pop("CACHE_URL", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from reservation_service.cache import read_cache  # noqa: E402
from reservation_service.database import AsyncSessionLocal, engine  # noqa: E402
from reservation_service.models.library import Base, Book, User  # noqa: E402
from reservation_service.store import LibraryStore  # noqa: E402


@pytest_asyncio.fixture(autouse=True)
async def database():
    """Give every test empty tables and an empty read cache."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await read_cache.clear()
    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def session():
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def make_book():
    counter = itertools.count(1)

    async def _make(total_copies: int = 5, available_copies: int | None = None, title: str | None = None) -> int:
        n = next(counter)
        if available_copies is None:
            available_copies = total_copies
        async with AsyncSessionLocal() as session, session.begin():
            book = await LibraryStore(session).add_book(
                Book(
                    title=title or f"Book {n}",
                    author="Test Author",
                    isbn=str(9780000000000 + n),
                    total_copies=total_copies,
                    available_copies=available_copies,
                )
            )
            return book.id

    return _make


@pytest.fixture
def make_user():
    counter = itertools.count(1)

    async def _make(username: str | None = None) -> int:
        n = next(counter)
        username = username or f"reader{n}"
        async with AsyncSessionLocal() as session, session.begin():
            user = await LibraryStore(session).add_user(
                User(username=username, email=f"{username}@library.org")
            )
            return user.id

    return _make
