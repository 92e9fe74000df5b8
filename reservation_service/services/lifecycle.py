"""Reservation state machine.

ACTIVE is the only non-terminal state. ``cancel`` and ``expire`` move a
reservation to CANCELED or EXPIRED with a compare-and-set on the status column,
and give the reservation's copies back to the ledger in the same transaction.
Whoever loses the compare-and-set gets InvalidTransition and releases nothing,
which is what keeps a reservation from being released twice.
"""
import logging
from collections.abc import Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from reservation_service.exceptions import InvalidBookSet, InvalidTransition, NotFound
from reservation_service.models.library import (
    TERMINAL_STATUSES,
    Book,
    Reservation,
    ReservationStatus,
    User,
    utcnow,
)
from reservation_service.services import ledger
from reservation_service.store import LibraryStore

logger = logging.getLogger(__name__)

MAX_BOOKS_PER_RESERVATION = 3


async def create(session: AsyncSession, user: User, books: Sequence[Book]) -> Reservation:
    """Admit a new ACTIVE reservation of ``books`` for ``user``.

    Nothing is written when the ledger cannot take a copy of every book.
    """
    book_ids = [book.id for book in books]
    if not 1 <= len(book_ids) <= MAX_BOOKS_PER_RESERVATION:
        raise InvalidBookSet(
            f"A reservation must hold between 1 and {MAX_BOOKS_PER_RESERVATION} books"
        )
    if len(set(book_ids)) != len(book_ids):
        raise InvalidBookSet("A reservation cannot hold the same book twice")

    await ledger.reserve_many(session, book_ids)

    reservation = Reservation(
        status=ReservationStatus.ACTIVE,
        user_id=user.id,
        user=user,
        books=sorted(books, key=lambda book: book.id),
    )
    await LibraryStore(session).save_reservation(reservation)
    logger.info(
        "Reservation %s created for user %s with books %s",
        reservation.id, user.id, book_ids,
    )
    return reservation


async def _finish(
    session: AsyncSession, reservation_id: int, target: ReservationStatus
) -> Reservation:
    reservation = await LibraryStore(session).get_reservation(reservation_id)
    if reservation is None:
        raise NotFound("reservation", reservation_id)
    if reservation.status in TERMINAL_STATUSES:
        raise InvalidTransition(reservation_id)

    now = utcnow()
    result = await session.execute(
        update(Reservation)
        .where(
            Reservation.id == reservation_id,
            Reservation.status == ReservationStatus.ACTIVE,
        )
        .values(status=target, last_updated=now)
        .returning(Reservation.id)
        .execution_options(synchronize_session=False)
    )
    if result.scalar_one_or_none() is None:
        # Another caller finished the reservation after it was loaded.
        raise InvalidTransition(reservation_id)

    set_committed_value(reservation, "status", target)
    set_committed_value(reservation, "last_updated", now)

    for book_id in reservation.book_ids:
        await ledger.release(session, book_id)

    logger.info("Reservation %s is now %s", reservation_id, target.value)
    return reservation


async def cancel(session: AsyncSession, reservation_id: int) -> Reservation:
    return await _finish(session, reservation_id, ReservationStatus.CANCELED)


async def expire(session: AsyncSession, reservation_id: int) -> Reservation:
    return await _finish(session, reservation_id, ReservationStatus.EXPIRED)
