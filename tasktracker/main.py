import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from tasktracker.auth.tokens import get_token_service
from tasktracker.cache.layer import CacheLayer, get_cache_layer
from tasktracker.core.config import get_settings
from tasktracker.core.exception_handlers import setup_exception_handlers
from tasktracker.database import get_db, get_engine
from tasktracker.routers import auth, tasks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # refuse to start without a signing secret
    get_token_service()
    cache_layer = get_cache_layer()
    await cache_layer.init_cache()
    yield
    await cache_layer.close()
    await get_engine().dispose()


app = FastAPI(
    title="Task Tracker API",
    description="Multi-tenant task tracking API with JWT auth and a Redis read-through cache",
    swagger_ui_parameters={"displayRequestDuration": True},
    version="1.0.0",
    lifespan=lifespan,
)

setup_exception_handlers(app)

# Include routers
app.include_router(auth.router)
app.include_router(tasks.router)


@app.get("/")
async def root():
    return {
        "message": "Welcome to Task Tracker API",
        "docs": "/docs",
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    cache: CacheLayer = Depends(get_cache_layer),
):
    try:
        await db.scalar(text("SELECT 1"))
        database = "up"
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database health check failed: {e}")
        database = "down"

    body = {
        "status": "healthy" if database == "up" else "unavailable",
        "database": database,
        "cache": cache.get_stats(),
    }
    if database != "up":
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body
