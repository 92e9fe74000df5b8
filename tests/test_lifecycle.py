"""Tests for reservation creation and the terminal transitions."""

import pytest

from helpers import available_copies, reservation_count, reservation_status
from reservation_service.database import AsyncSessionLocal
from reservation_service.exceptions import (
    InsufficientStock,
    InvalidBookSet,
    InvalidTransition,
    NotFound,
)
from reservation_service.models.library import Book, Reservation, ReservationStatus, User
from reservation_service.services import lifecycle


async def _create(user_id: int, *book_ids: int) -> int:
    async with AsyncSessionLocal() as session, session.begin():
        user = await session.get(User, user_id)
        books = [await session.get(Book, book_id) for book_id in book_ids]
        reservation = await lifecycle.create(session, user, books)
        return reservation.id


class TestCreate:
    @pytest.mark.asyncio
    async def test_creates_active_reservation(self, make_user, make_book):
        user_id = await make_user()
        first = await make_book(total_copies=3)
        second = await make_book(total_copies=1)

        async with AsyncSessionLocal() as session, session.begin():
            user = await session.get(User, user_id)
            books = [await session.get(Book, second), await session.get(Book, first)]
            reservation = await lifecycle.create(session, user, books)

            assert reservation.status == ReservationStatus.ACTIVE
            assert reservation.user_id == user_id
            assert reservation.book_ids == [first, second]
            assert reservation.date_created is not None
            assert reservation.last_updated is not None
            assert [book.available_copies for book in reservation.books] == [2, 0]

        assert await available_copies(first) == 2
        assert await available_copies(second) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("book_count", [0, 4])
    async def test_book_set_size_is_bounded(self, make_user, make_book, book_count):
        user_id = await make_user()
        book_ids = [await make_book() for _ in range(book_count)]

        with pytest.raises(InvalidBookSet):
            await _create(user_id, *book_ids)

        for book_id in book_ids:
            assert await available_copies(book_id) == 5
        assert await reservation_count() == 0

    @pytest.mark.asyncio
    async def test_duplicate_books_are_rejected(self, make_user, make_book):
        user_id = await make_user()
        book_id = await make_book()

        with pytest.raises(InvalidBookSet):
            await _create(user_id, book_id, book_id)

        assert await available_copies(book_id) == 5

    @pytest.mark.asyncio
    async def test_nothing_created_without_stock(self, make_user, make_book):
        user_id = await make_user()
        available = await make_book(total_copies=2)
        empty = await make_book(total_copies=1, available_copies=0)

        with pytest.raises(InsufficientStock):
            await _create(user_id, available, empty)

        assert await reservation_count() == 0
        assert await available_copies(available) == 2


class TestTerminalTransitions:
    @pytest.mark.asyncio
    async def test_cancel_restores_copies(self, make_user, make_book):
        user_id = await make_user()
        first = await make_book(total_copies=2)
        second = await make_book(total_copies=2)
        reservation_id = await _create(user_id, first, second)

        async with AsyncSessionLocal() as session, session.begin():
            reservation = await lifecycle.cancel(session, reservation_id)
            assert reservation.status == ReservationStatus.CANCELED

        assert await reservation_status(reservation_id) == ReservationStatus.CANCELED
        assert await available_copies(first) == 2
        assert await available_copies(second) == 2

    @pytest.mark.asyncio
    async def test_expire_restores_copies(self, make_user, make_book):
        user_id = await make_user()
        book_id = await make_book(total_copies=1)
        reservation_id = await _create(user_id, book_id)
        assert await available_copies(book_id) == 0

        async with AsyncSessionLocal() as session, session.begin():
            await lifecycle.expire(session, reservation_id)

        assert await reservation_status(reservation_id) == ReservationStatus.EXPIRED
        assert await available_copies(book_id) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "first, second",
        [
            (lifecycle.cancel, lifecycle.cancel),
            (lifecycle.cancel, lifecycle.expire),
            (lifecycle.expire, lifecycle.cancel),
            (lifecycle.expire, lifecycle.expire),
        ],
    )
    async def test_terminal_states_are_final(self, make_user, make_book, first, second):
        user_id = await make_user()
        book_id = await make_book(total_copies=3)
        reservation_id = await _create(user_id, book_id)

        async with AsyncSessionLocal() as session, session.begin():
            finished = await first(session, reservation_id)
        final_status = finished.status

        async with AsyncSessionLocal() as session, session.begin():
            with pytest.raises(InvalidTransition):
                await second(session, reservation_id)

        assert await reservation_status(reservation_id) == final_status
        assert await available_copies(book_id) == 3

    @pytest.mark.asyncio
    async def test_lost_compare_and_set_releases_nothing(self, make_user, make_book):
        user_id = await make_user()
        book_id = await make_book(total_copies=2)
        reservation_id = await _create(user_id, book_id)

        # Load the reservation while it is still ACTIVE, then let another
        # session finish it before this one writes.
        async with AsyncSessionLocal() as stale_session:
            await stale_session.get(Reservation, reservation_id)

            async with AsyncSessionLocal() as other, other.begin():
                await lifecycle.expire(other, reservation_id)

            with pytest.raises(InvalidTransition):
                await lifecycle.cancel(stale_session, reservation_id)
            await stale_session.rollback()

        assert await reservation_status(reservation_id) == ReservationStatus.EXPIRED
        assert await available_copies(book_id) == 2

    @pytest.mark.asyncio
    async def test_unknown_reservation(self):
        async with AsyncSessionLocal() as session, session.begin():
            with pytest.raises(NotFound):
                await lifecycle.cancel(session, 999)
