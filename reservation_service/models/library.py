import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class ReservationStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CANCELED = "CANCELED"
    EXPIRED = "EXPIRED"


TERMINAL_STATUSES = frozenset({ReservationStatus.CANCELED, ReservationStatus.EXPIRED})


class TimestampMixin:
    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )


reservation_books = Table(
    "reservation_books",
    Base.metadata,
    Column("reservation_id", ForeignKey("reservations.id"), primary_key=True),
    Column("book_id", ForeignKey("books.id"), primary_key=True),
)


class Book(TimestampMixin, Base):
    """A title with a fixed stock of lendable copies.

    ``available_copies`` is the authoritative count of copies not held by an
    active reservation. It is only ever changed by the inventory ledger.
    """

    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint("total_copies > 0", name="ck_books_total_positive"),
        CheckConstraint("available_copies >= 0", name="ck_books_available_non_negative"),
        CheckConstraint("available_copies <= total_copies", name="ck_books_available_within_total"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    isbn: Mapped[str] = mapped_column(String(13), nullable=False, unique=True)
    total_copies: Mapped[int] = mapped_column(Integer, nullable=False)
    available_copies: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return (
            f"Book(id={self.id!r}, isbn={self.isbn!r}, "
            f"available={self.available_copies!r}/{self.total_copies!r})"
        )


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, username={self.username!r})"


class Reservation(TimestampMixin, Base):
    """A hold on one to three books for a single user.

    The owning user and the book set are fixed at creation. Reservations are
    never deleted; terminal ones remain as history.
    """

    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_status_date_created", "status", "date_created"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus, name="reservation_status", native_enum=False, length=16),
        nullable=False,
        default=ReservationStatus.ACTIVE,
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)

    # One-directional: a User does not hold its reservations in memory.
    user: Mapped[User] = relationship(lazy="selectin")
    books: Mapped[list[Book]] = relationship(
        secondary=reservation_books,
        lazy="selectin",
        order_by=Book.id,
    )

    @property
    def book_ids(self) -> list[int]:
        return [book.id for book in self.books]

    def __repr__(self) -> str:
        return (
            f"Reservation(id={self.id!r}, status={self.status!r}, "
            f"user_id={self.user_id!r}, books={self.book_ids!r})"
        )
