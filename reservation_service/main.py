import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from reservation_service.api.books import router as books_router
from reservation_service.api.errors import register_exception_handlers
from reservation_service.api.reservations import router as reservations_router
from reservation_service.api.users import router as users_router
from reservation_service.config import settings
from reservation_service.database import engine
from reservation_service.services.sweeper import run_sweep_scheduler

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

_sweeper_task: asyncio.Task | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _sweeper_task
    if settings.sweep_enabled:
        logger.info("Starting expiry sweep scheduler...")
        _sweeper_task = asyncio.create_task(run_sweep_scheduler())
    yield
    if _sweeper_task:
        _sweeper_task.cancel()
        try:
            await _sweeper_task
        except asyncio.CancelledError:
            pass
        _sweeper_task = None
    await engine.dispose()
    logger.info("Reservation service stopped.")


app = FastAPI(
    title="Reservation Service",
    description="Book reservations against a finite stock of copies",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Content-Type"],
)

register_exception_handlers(app)

app.include_router(books_router)
app.include_router(users_router)
app.include_router(reservations_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
