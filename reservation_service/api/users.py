from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_service.database import get_db
from reservation_service.schemas.library import UserCreate, UserResponse
from reservation_service.services import catalogue

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("", response_model=list[UserResponse])
async def list_users(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await catalogue.list_users(db, page, size)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return await catalogue.get_user(db, user_id)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=int)
async def create_user(request: UserCreate, db: AsyncSession = Depends(get_db)):
    return await catalogue.create_user(db, request)
