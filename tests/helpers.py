from datetime import datetime

from sqlalchemy import select, update

from reservation_service.database import AsyncSessionLocal
from reservation_service.models.library import Book, Reservation, ReservationStatus


async def available_copies(book_id: int) -> int:
    async with AsyncSessionLocal() as session:
        return await session.scalar(select(Book.available_copies).where(Book.id == book_id))


async def reservation_status(reservation_id: int) -> ReservationStatus | None:
    async with AsyncSessionLocal() as session:
        return await session.scalar(select(Reservation.status).where(Reservation.id == reservation_id))


async def reservation_count() -> int:
    async with AsyncSessionLocal() as session:
        return len((await session.scalars(select(Reservation.id))).all())


async def backdate(reservation_id: int, created: datetime) -> None:
    async with AsyncSessionLocal() as session, session.begin():
        await session.execute(
            update(Reservation)
            .where(Reservation.id == reservation_id)
            .values(date_created=created)
            .execution_options(synchronize_session=False)
        )
