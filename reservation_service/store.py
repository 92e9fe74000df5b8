"""Record store for books, users and reservations.

A ``LibraryStore`` wraps one ``AsyncSession``. Every mutating call only adds to
or flushes the session, so all of them run inside whatever transaction the
caller has opened and commit or roll back together.
"""
from collections.abc import Iterable, Sequence
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_service.models.library import Book, Reservation, ReservationStatus, User


class LibraryStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    # Books

    async def get_book(self, book_id: int) -> Book | None:
        return await self.session.get(Book, book_id)

    async def get_books(self, book_ids: Iterable[int]) -> dict[int, Book]:
        ids = list(book_ids)
        if not ids:
            return {}
        result = await self.session.execute(select(Book).where(Book.id.in_(ids)))
        return {book.id: book for book in result.scalars()}

    async def get_book_by_isbn(self, isbn: str) -> Book | None:
        result = await self.session.execute(select(Book).where(Book.isbn == isbn))
        return result.scalar_one_or_none()

    async def isbn_exists(self, isbn: str) -> bool:
        result = await self.session.execute(select(Book.id).where(Book.isbn == isbn))
        return result.first() is not None

    async def list_books(self, page: int, size: int) -> Sequence[Book]:
        result = await self.session.execute(
            select(Book).order_by(Book.id).offset(page * size).limit(size)
        )
        return result.scalars().all()

    async def add_book(self, book: Book) -> Book:
        self.session.add(book)
        await self.session.flush()
        return book

    async def save_books(self, books: Iterable[Book]) -> None:
        self.session.add_all(list(books))
        await self.session.flush()

    # Users

    async def get_user(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def email_exists(self, email: str) -> bool:
        result = await self.session.execute(
            select(User.id).where(func.lower(User.email) == email.lower())
        )
        return result.first() is not None

    async def username_exists(self, username: str) -> bool:
        result = await self.session.execute(select(User.id).where(User.username == username))
        return result.first() is not None

    async def list_users(self, page: int, size: int) -> Sequence[User]:
        result = await self.session.execute(
            select(User).order_by(User.id).offset(page * size).limit(size)
        )
        return result.scalars().all()

    async def add_user(self, user: User) -> User:
        self.session.add(user)
        await self.session.flush()
        return user

    # Reservations

    async def get_reservation(self, reservation_id: int) -> Reservation | None:
        return await self.session.get(Reservation, reservation_id)

    async def list_reservations(self, page: int, size: int) -> Sequence[Reservation]:
        result = await self.session.execute(
            select(Reservation).order_by(Reservation.id).offset(page * size).limit(size)
        )
        return result.scalars().all()

    async def save_reservation(self, reservation: Reservation) -> Reservation:
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def save_reservations(self, reservations: Iterable[Reservation]) -> None:
        self.session.add_all(list(reservations))
        await self.session.flush()

    async def find_active_reservations_created_before(self, cutoff: datetime) -> Sequence[Reservation]:
        result = await self.session.execute(
            select(Reservation)
            .where(
                Reservation.status == ReservationStatus.ACTIVE,
                Reservation.date_created < cutoff,
            )
            .order_by(Reservation.id)
        )
        return result.scalars().all()

    async def find_reservations_by_user(self, user_id: int) -> Sequence[Reservation]:
        result = await self.session.execute(
            select(Reservation).where(Reservation.user_id == user_id).order_by(Reservation.id)
        )
        return result.scalars().all()
