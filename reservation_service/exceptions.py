"""Exception hierarchy for the reservation service.

Every business-rule violation has its own type so callers can branch on the
kind of failure instead of on message text. Each type carries the HTTP status
the request layer renders it with.
"""


class ReservationServiceError(Exception):
    """Base class for all errors raised by the reservation core."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ReservationServiceError):
    """A user, book or reservation does not exist.

    Attributes:
        entity: Kind of record that was looked up ("user", "book", ...).
        entity_id: The identifier that was not found.
    """

    status_code = 404

    def __init__(self, entity: str, entity_id: object, message: str | None = None):
        super().__init__(message or f"{entity.capitalize()} not found with id {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStock(ReservationServiceError):
    """No copy of a book is left to reserve.

    Attributes:
        book_id: The first book that could not be reserved.
        title: Its title, when known.
    """

    status_code = 409

    def __init__(self, book_id: int, title: str | None = None):
        label = f"'{title}'" if title else f"with id {book_id}"
        super().__init__(f"Book {label} is not available for reservation")
        self.book_id = book_id
        self.title = title


class LimitExceeded(ReservationServiceError):
    """The number of books requested is outside the allowed range."""

    status_code = 400

    def __init__(self, requested: int, limit: int):
        super().__init__(
            f"A reservation must contain between 1 and {limit} books, got {requested}"
        )
        self.requested = requested
        self.limit = limit


class InvalidBookSet(ReservationServiceError):
    """The book set is empty, too large or contains duplicates."""

    status_code = 400


class InvalidTransition(ReservationServiceError):
    """A terminal reservation was targeted by cancel or expire."""

    status_code = 409

    def __init__(self, reservation_id: int, message: str | None = None):
        super().__init__(message or f"Reservation {reservation_id} is no longer active")
        self.reservation_id = reservation_id


class OverRelease(ReservationServiceError):
    """Releasing copies would push a book above its total stock.

    This means a reservation was released twice. It is an internal invariant
    violation and must never be corrected silently.
    """

    status_code = 500

    def __init__(self, book_id: int, count: int):
        super().__init__(f"Releasing {count} cop(ies) of book {book_id} would exceed total stock")
        self.book_id = book_id
        self.count = count


class DuplicateEntity(ReservationServiceError):
    """A unique attribute (ISBN, email) is already registered."""

    status_code = 409
