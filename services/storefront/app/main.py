"""
Storefront — FastAPI application entrypoint
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from app.core.config import get_settings
from app.core.redis_client import close_redis
from app.middleware.auth import JWTAuthMiddleware
from app.middleware.rate_limiter import SlidingWindowRateLimiter
from app.sync.dual_write import drain_background_tasks
from app.api import admin, auth, cart, dashboard, health, notifications, storefront, transactions, upload

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.SUPER_ADMIN_SCRIPT_URL:
        logger.warning("SUPER_ADMIN_SCRIPT_URL is not set; vendor data will come from the local cache only")
    yield
    # Let background sheet deletes finish before the Redis pool goes away
    await drain_background_tasks()
    await close_redis()


app = FastAPI(
    title="E-Kantin Storefront",
    description="Campus food ordering: vendor menus, cart, checkout and order tracking over spreadsheet-backed stores.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Order matters: the limiter runs before Auth so rejected logins never reach the routes
app.add_middleware(JWTAuthMiddleware)
app.add_middleware(SlidingWindowRateLimiter)

if settings.METRICS_ENABLED:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(storefront.router)
app.include_router(cart.router)
app.include_router(transactions.router)
app.include_router(upload.router)
app.include_router(admin.router)
app.include_router(dashboard.router)
app.include_router(notifications.router)


@app.get("/")
async def root():
    return {"service": settings.SERVICE_NAME, "version": settings.SERVICE_VERSION}
