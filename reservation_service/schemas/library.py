from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, model_validator

from reservation_service.models.library import ReservationStatus


class BookCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    author: str = Field(min_length=1, max_length=255)
    isbn: str = Field(pattern=r"^\d{13}$", description="ISBN must be 13 digits")
    total_copies: int = Field(gt=0)
    available_copies: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _available_within_total(self) -> "BookCreate":
        if self.available_copies is None:
            self.available_copies = self.total_copies
        elif self.available_copies > self.total_copies:
            raise ValueError("available_copies cannot exceed total_copies")
        return self


class BookResponse(BaseModel):
    id: int
    title: str
    author: str
    isbn: str
    total_copies: int
    available_copies: int

    model_config = {"from_attributes": True}


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr


class UserResponse(BaseModel):
    id: int
    username: str
    email: str

    model_config = {"from_attributes": True}


class ReserveRequest(BaseModel):
    book_ids: list[int]


class ReservationResult(BaseModel):
    id: int
    status: ReservationStatus
    user: UserResponse
    books: list[BookResponse]
    date_created: datetime
    last_updated: datetime

    model_config = {"from_attributes": True}


class SweepResult(BaseModel):
    cutoff: datetime
    candidates: int = 0
    expired: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def noop(self) -> bool:
        return self.candidates == 0


class ErrorResponse(BaseModel):
    status: int
    error: str
    message: str
    path: str
    timestamp: datetime
    validation_errors: dict[str, str] | None = None
