"""Books and users: creation and cached reads."""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_service.cache import BOOKS, USERS, read_cache
from reservation_service.exceptions import DuplicateEntity, NotFound
from reservation_service.models.library import Book, User
from reservation_service.schemas.library import BookCreate, BookResponse, UserCreate, UserResponse
from reservation_service.store import LibraryStore

logger = logging.getLogger(__name__)


async def create_book(session: AsyncSession, data: BookCreate) -> int:
    store = LibraryStore(session)
    try:
        async with session.begin():
            if await store.isbn_exists(data.isbn):
                raise DuplicateEntity(f"Book with isbn {data.isbn} already exists")
            book = await store.add_book(Book(**data.model_dump()))
    except IntegrityError as exc:
        raise DuplicateEntity(f"Book with isbn {data.isbn} already exists") from exc

    await read_cache.invalidate(BOOKS)
    logger.info("Book %s created (isbn=%s, copies=%d)", book.id, book.isbn, book.total_copies)
    return book.id


async def get_book(session: AsyncSession, book_id: int) -> BookResponse:
    async def load() -> dict:
        book = await LibraryStore(session).get_book(book_id)
        if book is None:
            raise NotFound("book", book_id)
        return BookResponse.model_validate(book).model_dump()

    return BookResponse.model_validate(await read_cache.get_or_load(BOOKS, f"id:{book_id}", load))


async def get_book_by_isbn(session: AsyncSession, isbn: str) -> BookResponse:
    async def load() -> dict:
        book = await LibraryStore(session).get_book_by_isbn(isbn)
        if book is None:
            raise NotFound("book", isbn, f"Book not found with isbn {isbn}")
        return BookResponse.model_validate(book).model_dump()

    return BookResponse.model_validate(await read_cache.get_or_load(BOOKS, f"isbn:{isbn}", load))


async def list_books(session: AsyncSession, page: int, size: int) -> list[BookResponse]:
    async def load() -> list[dict]:
        books = await LibraryStore(session).list_books(page, size)
        return [BookResponse.model_validate(book).model_dump() for book in books]

    payload = await read_cache.get_or_load(BOOKS, f"page:{page}:{size}", load)
    return [BookResponse.model_validate(item) for item in payload]


async def create_user(session: AsyncSession, data: UserCreate) -> int:
    store = LibraryStore(session)
    try:
        async with session.begin():
            if await store.email_exists(data.email):
                raise DuplicateEntity("Email already exists")
            if await store.username_exists(data.username):
                raise DuplicateEntity("Username already exists")
            user = await store.add_user(User(username=data.username, email=data.email))
    except IntegrityError as exc:
        raise DuplicateEntity("An entry with these details already exists") from exc

    await read_cache.invalidate(USERS)
    logger.info("User %s created (%s)", user.id, user.username)
    return user.id


async def get_user(session: AsyncSession, user_id: int) -> UserResponse:
    async def load() -> dict:
        user = await LibraryStore(session).get_user(user_id)
        if user is None:
            raise NotFound("user", user_id, "User not found")
        return UserResponse.model_validate(user).model_dump()

    return UserResponse.model_validate(await read_cache.get_or_load(USERS, f"id:{user_id}", load))


async def list_users(session: AsyncSession, page: int, size: int) -> list[UserResponse]:
    async def load() -> list[dict]:
        users = await LibraryStore(session).list_users(page, size)
        return [UserResponse.model_validate(user).model_dump() for user in users]

    payload = await read_cache.get_or_load(USERS, f"page:{page}:{size}", load)
    return [UserResponse.model_validate(item) for item in payload]
