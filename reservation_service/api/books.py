from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_service.database import get_db
from reservation_service.schemas.library import BookCreate, BookResponse
from reservation_service.services import catalogue

router = APIRouter(prefix="/api/v1/books", tags=["books"])


@router.get("", response_model=list[BookResponse])
async def list_books(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await catalogue.list_books(db, page, size)


@router.get("/isbn/{isbn}", response_model=BookResponse)
async def get_book_by_isbn(
    isbn: str = Path(pattern=r"^\d{13}$"),
    db: AsyncSession = Depends(get_db),
):
    return await catalogue.get_book_by_isbn(db, isbn)


@router.get("/{book_id}", response_model=BookResponse)
async def get_book(book_id: int, db: AsyncSession = Depends(get_db)):
    return await catalogue.get_book(db, book_id)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=int)
async def create_book(request: BookCreate, db: AsyncSession = Depends(get_db)):
    return await catalogue.create_book(db, request)
