import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from articlehub.cache import cache
from articlehub.config import settings
from articlehub.exceptions import ServiceError, service_error_handler
from articlehub.middleware import TimingMiddleware
from articlehub.routers import articles, users

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup; an unreachable Redis leaves the cache disabled, never fatal.
    await cache.connect(
        settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        db=settings.REDIS_DB,
        tls=settings.REDIS_TLS,
    )
    yield
    # Shutdown
    await cache.disconnect()


app = FastAPI(
    title="articlehub",
    description="Articles with PUBLIC / RESTRICTED / PRIVATE visibility",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_exception_handler(ServiceError, service_error_handler)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(articles.router)
app.include_router(users.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "cache": "enabled" if cache.enabled else "disabled"}
