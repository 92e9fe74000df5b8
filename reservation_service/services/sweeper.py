"""Expiry sweep: gives back the copies held by reservations past the hold period."""
import asyncio
import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reservation_service.cache import BOOKS, RESERVATIONS, USER_RESERVATIONS, read_cache
from reservation_service.config import settings
from reservation_service.database import AsyncSessionLocal
from reservation_service.exceptions import InvalidTransition, NotFound, ReservationServiceError
from reservation_service.models.library import utcnow
from reservation_service.schemas.library import SweepResult
from reservation_service.services import lifecycle
from reservation_service.store import LibraryStore

logger = logging.getLogger(__name__)


async def run_expiry_sweep(
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
    now: datetime | None = None,
) -> SweepResult:
    """Expire every ACTIVE reservation created before ``now - hold period``.

    Each reservation is expired in its own transaction, so a crash leaves the
    sweep partially applied and the next run picks up the rest. A reservation
    that was canceled or expired in the meantime is skipped; any other failure
    on one reservation is logged and counted without stopping the sweep.
    """
    cutoff = (now or utcnow()) - timedelta(days=settings.hold_period_days)
    logger.info("Looking for active reservations created before %s", cutoff.isoformat())

    async with session_factory() as session:
        stale = await LibraryStore(session).find_active_reservations_created_before(cutoff)
        candidates = [reservation.id for reservation in stale]

    result = SweepResult(cutoff=cutoff, candidates=len(candidates))
    if not candidates:
        logger.info("No reservations to expire.")
        return result

    for reservation_id in candidates:
        try:
            async with session_factory() as session, session.begin():
                await lifecycle.expire(session, reservation_id)
        except (InvalidTransition, NotFound):
            result.skipped += 1
            logger.info("Reservation %s is no longer active, skipping", reservation_id)
        except (ReservationServiceError, SQLAlchemyError, TimeoutError, OSError):
            result.failed += 1
            logger.exception("Could not expire reservation %s", reservation_id)
        else:
            result.expired += 1

    if result.expired:
        await read_cache.invalidate(BOOKS, RESERVATIONS, USER_RESERVATIONS)

    logger.info(
        "Expired %d reservation(s), skipped %d, failed %d.",
        result.expired, result.skipped, result.failed,
    )
    return result


def seconds_until(now: datetime, hour: int, minute: int) -> float:
    """Seconds from ``now`` to the next occurrence of ``hour:minute``."""
    next_run = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if next_run <= now:
        next_run += timedelta(days=1)
    return (next_run - now).total_seconds()


async def run_sweep_scheduler() -> None:
    logger.info(
        "Expiry sweep scheduled daily at %02d:%02d UTC", settings.sweep_hour, settings.sweep_minute
    )
    while True:
        await asyncio.sleep(seconds_until(utcnow(), settings.sweep_hour, settings.sweep_minute))
        try:
            await run_expiry_sweep()
        except Exception:
            logger.exception("Expiry sweep failed, will retry at the next scheduled time")
