"""Tests for the record store queries used by the sweep and the listings."""

from datetime import timedelta

import pytest

from reservation_service.database import AsyncSessionLocal
from reservation_service.models.library import Book, Reservation, ReservationStatus, User, utcnow
from reservation_service.store import LibraryStore


@pytest.mark.asyncio
async def test_save_books_persists_new_and_changed_rows():
    async with AsyncSessionLocal() as session, session.begin():
        store = LibraryStore(session)
        await store.save_books([
            Book(title="A", author="X", isbn="9780000000101", total_copies=1, available_copies=1),
            Book(title="B", author="Y", isbn="9780000000102", total_copies=2, available_copies=2),
        ])

    async with AsyncSessionLocal() as session, session.begin():
        store = LibraryStore(session)
        book = await store.get_book_by_isbn("9780000000102")
        book.title = "B, revised"
        await store.save_books([book])

    async with AsyncSessionLocal() as session:
        store = LibraryStore(session)
        books = await store.list_books(0, 10)
        assert [b.title for b in books] == ["A", "B, revised"]
        assert await store.isbn_exists("9780000000101")
        assert not await store.isbn_exists("9780000000999")


@pytest.mark.asyncio
async def test_active_reservations_created_before_cutoff():
    now = utcnow()
    async with AsyncSessionLocal() as session, session.begin():
        store = LibraryStore(session)
        user = await store.add_user(User(username="sweeper", email="sweeper@library.org"))
        book = await store.add_book(
            Book(title="Old", author="Z", isbn="9780000000201", total_copies=5, available_copies=2)
        )
        await store.save_reservations([
            Reservation(user=user, books=[book], status=ReservationStatus.ACTIVE,
                        date_created=now - timedelta(days=10)),
            Reservation(user=user, books=[book], status=ReservationStatus.CANCELED,
                        date_created=now - timedelta(days=10)),
            Reservation(user=user, books=[book], status=ReservationStatus.ACTIVE,
                        date_created=now - timedelta(days=2)),
        ])

    async with AsyncSessionLocal() as session:
        store = LibraryStore(session)
        stale = await store.find_active_reservations_created_before(now - timedelta(days=7))
        mine = await store.find_reservations_by_user(user.id)

    assert len(stale) == 1
    assert stale[0].status == ReservationStatus.ACTIVE
    assert stale[0].book_ids == [book.id]
    assert len(mine) == 3
    assert all(r.user.username == "sweeper" for r in mine)


@pytest.mark.asyncio
async def test_get_books_returns_only_existing_ids(make_book):
    first = await make_book()
    second = await make_book()

    async with AsyncSessionLocal() as session:
        books = await LibraryStore(session).get_books([second, first, 999])

    assert set(books) == {first, second}
