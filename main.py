from fastapi import FastAPI
from contextlib import asynccontextmanager
from typing import Optional
import logging
from redis.asyncio import Redis
from fastapi_cache import FastAPICache
from fastapi_cache.backends.inmemory import InMemoryBackend
from fastapi_cache.backends.redis import RedisBackend

from config.settings import Settings, settings
from storage import build_stores
from auth.router import router as auth_router
from files.router import router as files_router, storage_router

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)


async def init_cache(app_settings: Settings) -> Optional[Redis]:
    """Redis-backed response cache when REDIS_URL is set, in-memory otherwise"""
    if not app_settings.REDIS_URL:
        FastAPICache.init(InMemoryBackend(), prefix="fastapi-cache", expire=app_settings.STORAGE_CACHE_TTL)
        logger.info("Using in-memory response cache")
        return None

    redis = Redis.from_url(
        app_settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5
    )
    try:
        await redis.ping()
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {str(e)}")
        await redis.aclose()
        raise
    logger.info("Successfully connected to Redis server")
    FastAPICache.init(RedisBackend(redis), prefix="fastapi-cache", expire=app_settings.STORAGE_CACHE_TTL)
    return redis


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Builds the stores and cache for the lifetime of the app"""
        file_store, user_store = build_stores(app_settings)
        try:
            await file_store.init()
            await user_store.init()
        except Exception as e:
            logger.error(f"Startup error: {str(e)}")
            raise
        logger.info(f"Storage backend ready: {app_settings.STORAGE_BACKEND}")
        app.state.file_store = file_store
        app.state.user_store = user_store

        redis = await init_cache(app_settings)
        try:
            yield
        finally:
            await user_store.close()
            await file_store.close()
            if redis is not None:
                await redis.aclose()

    app = FastAPI(
        title="Cloud Drive API",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = app_settings

    app.include_router(auth_router)
    app.include_router(files_router)
    app.include_router(storage_router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL
    )
