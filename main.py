from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List
import logging
import uvicorn

from tracker.core.config import settings
from tracker.core.exceptions import APIException
from tracker.core.logging_config import setup_logging
from tracker.api.analytics_routes import router as analytics_router
from tracker.api.data_collection_routes import router as data_collection_router
from tracker.database import init_database, close_database, create_tables, is_initialized

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    logger.info("Starting Social Media Account Tracker...")

    try:
        await init_database()
        await create_tables()
        if is_initialized():
            logger.info("Database ready")
    except Exception as e:
        logger.warning(f"WARNING: Database initialization failed: {e}")
        logger.warning("Starting in fallback mode - data endpoints will fail until the database is reachable")

    yield

    # Shutdown
    logger.info("Shutting down Social Media Account Tracker...")
    await close_database()


app = FastAPI(
    title="Social Media Account Tracker",
    description="Instagram account collection and analytics API",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(APIException)
async def api_exception_handler(request, exc: APIException):
    content = exc.detail if isinstance(exc.detail, dict) else {"success": False, "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    logger.error(f"VALIDATION ERROR on {request.url}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"success": False, "message": "Invalid request parameters", "error": str(exc.errors())}
    )


def get_allowed_origins() -> List[str]:
    """Get allowed origins based on environment"""
    if settings.DEBUG:
        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "*"
        ]
    allowed = settings.ALLOWED_ORIGINS.split(",")
    return [origin.strip() for origin in allowed if origin.strip()]


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(analytics_router, prefix="/api/v1")
app.include_router(data_collection_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {
        "message": "Social Media Account Tracker API",
        "status": "running",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc)
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy" if is_initialized() else "degraded",
        "database": "connected" if is_initialized() else "not_initialized",
        "timestamp": datetime.now(timezone.utc)
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG
    )
