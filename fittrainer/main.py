import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from fittrainer.api.clients import router as clients_router
from fittrainer.api.errors import fittrainer_error_handler
from fittrainer.api.plans import router as plans_router
from fittrainer.api.sessions import router as sessions_router
from fittrainer.config.settings import settings
from fittrainer.core.errors import FitTrainerError
from fittrainer.core.logger import setup_logger
from fittrainer.db.session import check_database_connection, init_db
from fittrainer.scheduler import start_scheduler

setup_logger(level=settings.log_level, log_file=settings.log_file, serialize=settings.log_json)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Check the database, create tables and start the sweep scheduler (when enabled)."""
    check_database_connection()
    init_db()

    scheduler = None
    if settings.sweep_enabled:
        scheduler = start_scheduler()
    else:
        logger.info("[SCHEDULER] Sweep scheduler disabled (SWEEP_ENABLED=false)")

    await asyncio.sleep(0)
    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        logger.info("[SCHEDULER] Stopped sweep scheduler")


def create_app() -> FastAPI:
    app = FastAPI(title="FitTrainer Pro API", lifespan=lifespan)
    app.add_exception_handler(FitTrainerError, fittrainer_error_handler)
    app.include_router(clients_router)
    app.include_router(sessions_router)
    app.include_router(plans_router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
