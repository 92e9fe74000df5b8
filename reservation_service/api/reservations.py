from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_service.database import get_db
from reservation_service.schemas.library import ReservationResult, ReserveRequest
from reservation_service.services import orchestrator

router = APIRouter(prefix="/api/v1/reservations", tags=["reservations"])


@router.get("", response_model=list[ReservationResult])
async def list_reservations(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await orchestrator.list_reservations(db, page, size)


@router.get("/user/{user_id}", response_model=list[ReservationResult])
async def list_reservations_for_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return await orchestrator.list_reservations_for_user(db, user_id)


@router.get("/{reservation_id}", response_model=ReservationResult)
async def get_reservation(reservation_id: int, db: AsyncSession = Depends(get_db)):
    return await orchestrator.get_reservation(db, reservation_id)


@router.post("/{user_id}", status_code=status.HTTP_201_CREATED, response_model=ReservationResult)
async def reserve_books(
    user_id: int,
    request: ReserveRequest | None = None,
    books_ids: list[int] | None = Query(None, alias="booksIds"),
    db: AsyncSession = Depends(get_db),
):
    """Reserve one to three books for a user, all or nothing.

    Book ids come from the JSON body, or from repeated ``booksIds`` query
    parameters when there is no body. The body wins when both are sent.
    """
    book_ids = request.book_ids if request is not None else books_ids or []
    return await orchestrator.reserve_books(db, user_id, book_ids)


@router.put("/cancel/{reservation_id}", status_code=status.HTTP_202_ACCEPTED, response_model=ReservationResult)
async def cancel_reservation(reservation_id: int, db: AsyncSession = Depends(get_db)):
    return await orchestrator.cancel_reservation(db, reservation_id)
