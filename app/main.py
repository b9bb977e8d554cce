import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from app.api.router import api_router
from app.background.scheduler import shutdown_scheduler, start_scheduler
from app.core.config import get_settings
from app.core.db import init_database, test_database_connection

logger = logging.getLogger(__name__)
settings = get_settings()

db_initialized = False
db_error: str | None = None


async def initialize_database() -> None:
    """Connect and create tables; failures are recorded for the health endpoints."""
    global db_initialized, db_error
    try:
        if not await test_database_connection():
            db_error = "Database connection failed"
            logger.error(db_error)
            return
        await asyncio.wait_for(init_database(), timeout=30.0)
        db_initialized = True
        logger.info("Database initialization complete")
    except asyncio.TimeoutError:
        db_error = "Database initialization timed out after 30s"
        logger.error(db_error)
    except Exception as exc:
        db_error = str(exc)
        logger.exception("Error initializing database", extra={"error": db_error})


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info("Starting application initialization")
    await initialize_database()

    if settings.enable_scheduler:
        try:
            start_scheduler()
        except Exception as exc:
            logger.exception("Error starting scheduler", extra={"error": str(exc)})

    yield

    logger.info("Shutting down")
    shutdown_scheduler()


app = FastAPI(
    title=settings.project_name,
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    expose_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    return {"status": "ok", "environment": settings.environment}


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """Responds immediately and reports database status."""
    return {
        "status": "ok",
        "service": settings.project_name,
        "database_ready": db_initialized,
        "database_error": db_error,
    }


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict:
    if not db_initialized:
        raise HTTPException(
            status_code=503,
            detail={"status": "not_ready", "database_ready": False, "error": db_error},
        )
    return {"status": "ready", "database_ready": True}
