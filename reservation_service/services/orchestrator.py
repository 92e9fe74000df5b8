"""Reservation orchestrator: the entry points the request layer calls.

Each command runs in one transaction on the session it is given, so either all
of its effects are committed or none are. Read caches are invalidated after a
successful commit.
"""
import logging
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from reservation_service.cache import BOOKS, RESERVATIONS, USER_RESERVATIONS, read_cache
from reservation_service.exceptions import InvalidTransition, LimitExceeded, NotFound
from reservation_service.models.library import Reservation
from reservation_service.schemas.library import ReservationResult
from reservation_service.services import lifecycle
from reservation_service.services.lifecycle import MAX_BOOKS_PER_RESERVATION
from reservation_service.store import LibraryStore

logger = logging.getLogger(__name__)


def _to_result(reservation: Reservation) -> ReservationResult:
    return ReservationResult.model_validate(reservation)


async def reserve_books(
    session: AsyncSession, user_id: int, book_ids: Iterable[int]
) -> ReservationResult:
    requested = list(book_ids)
    if not 1 <= len(requested) <= MAX_BOOKS_PER_RESERVATION:
        raise LimitExceeded(len(requested), MAX_BOOKS_PER_RESERVATION)

    store = LibraryStore(session)
    async with session.begin():
        user = await store.get_user(user_id)
        if user is None:
            raise NotFound("user", user_id, "User not found")

        books = await store.get_books(requested)
        for book_id in requested:
            if book_id not in books:
                raise NotFound("book", book_id)

        reservation = await lifecycle.create(session, user, [books[book_id] for book_id in requested])
        result = _to_result(reservation)

    await read_cache.invalidate(BOOKS, RESERVATIONS, USER_RESERVATIONS)
    return result


async def cancel_reservation(session: AsyncSession, reservation_id: int) -> ReservationResult:
    try:
        async with session.begin():
            reservation = await lifecycle.cancel(session, reservation_id)
            result = _to_result(reservation)
    except InvalidTransition as exc:
        raise InvalidTransition(
            reservation_id, "Only active reservations can be canceled"
        ) from exc

    await read_cache.invalidate(BOOKS, RESERVATIONS, USER_RESERVATIONS)
    return result


async def list_reservations_for_user(session: AsyncSession, user_id: int) -> list[ReservationResult]:
    async def load() -> list[dict]:
        reservations = await LibraryStore(session).find_reservations_by_user(user_id)
        return [_to_result(r).model_dump(mode="json") for r in reservations]

    payload = await read_cache.get_or_load(USER_RESERVATIONS, str(user_id), load)
    return [ReservationResult.model_validate(item) for item in payload]


async def get_reservation(session: AsyncSession, reservation_id: int) -> ReservationResult:
    async def load() -> dict:
        reservation = await LibraryStore(session).get_reservation(reservation_id)
        if reservation is None:
            raise NotFound("reservation", reservation_id, "Reservation not found")
        return _to_result(reservation).model_dump(mode="json")

    payload = await read_cache.get_or_load(RESERVATIONS, f"id:{reservation_id}", load)
    return ReservationResult.model_validate(payload)


async def list_reservations(session: AsyncSession, page: int, size: int) -> list[ReservationResult]:
    async def load() -> list[dict]:
        reservations = await LibraryStore(session).list_reservations(page, size)
        return [_to_result(r).model_dump(mode="json") for r in reservations]

    payload = await read_cache.get_or_load(RESERVATIONS, f"page:{page}:{size}", load)
    return [ReservationResult.model_validate(item) for item in payload]
