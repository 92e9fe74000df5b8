"""Inventory ledger: the only code allowed to change ``Book.available_copies``.

Each counter change is a single conditional UPDATE whose WHERE clause carries
the bounds check, so two callers can never both take the last copy of a book
and a copy can never be returned twice.
"""
import logging
from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.orm.util import identity_key

from reservation_service.exceptions import InsufficientStock, NotFound, OverRelease
from reservation_service.models.library import Book, utcnow

logger = logging.getLogger(__name__)


def _check_count(count: int) -> None:
    if count < 1:
        raise ValueError(f"count must be a positive integer, got {count}")


def _sync_loaded_book(session: AsyncSession, book_id: int, available: int) -> None:
    """Push the counter written by the store onto an already loaded Book, if any."""
    book = session.identity_map.get(identity_key(Book, book_id))
    if book is not None:
        set_committed_value(book, "available_copies", available)


async def reserve(session: AsyncSession, book_id: int, count: int = 1) -> int:
    """Take ``count`` copies of a book, returning the new available count.

    Raises InsufficientStock when fewer than ``count`` copies are available.
    """
    _check_count(count)
    result = await session.execute(
        update(Book)
        .where(Book.id == book_id, Book.available_copies >= count)
        .values(available_copies=Book.available_copies - count, last_updated=utcnow())
        .returning(Book.available_copies)
        .execution_options(synchronize_session=False)
    )
    available = result.scalar_one_or_none()
    if available is None:
        title = await session.scalar(select(Book.title).where(Book.id == book_id))
        if title is None:
            raise NotFound("book", book_id)
        logger.info("Book %s has fewer than %d copies available", book_id, count)
        raise InsufficientStock(book_id, title)

    _sync_loaded_book(session, book_id, available)
    return available


async def release(session: AsyncSession, book_id: int, count: int = 1) -> int:
    """Return ``count`` copies of a book, returning the new available count.

    Raises OverRelease when the increment would exceed the book's total stock.
    """
    _check_count(count)
    result = await session.execute(
        update(Book)
        .where(Book.id == book_id, Book.available_copies + count <= Book.total_copies)
        .values(available_copies=Book.available_copies + count, last_updated=utcnow())
        .returning(Book.available_copies)
        .execution_options(synchronize_session=False)
    )
    available = result.scalar_one_or_none()
    if available is None:
        exists = await session.scalar(select(Book.id).where(Book.id == book_id))
        if exists is None:
            raise NotFound("book", book_id)
        logger.critical(
            "Refusing to release %d copies of book %s: total stock would be exceeded",
            count, book_id,
        )
        raise OverRelease(book_id, count)

    _sync_loaded_book(session, book_id, available)
    return available


async def reserve_many(session: AsyncSession, book_ids: Iterable[int]) -> dict[int, int]:
    """Take one copy of each book, all or nothing.

    Books are locked in ascending id order so two admissions over overlapping
    sets cannot deadlock. If any book is unavailable, the copies already taken
    by this call are given back before InsufficientStock is re-raised.
    """
    counters: dict[int, int] = {}
    taken: list[int] = []
    try:
        for book_id in sorted(set(book_ids)):
            counters[book_id] = await reserve(session, book_id)
            taken.append(book_id)
    except (InsufficientStock, NotFound):
        for book_id in reversed(taken):
            await release(session, book_id)
        raise
    return counters
