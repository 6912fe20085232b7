"""
Social Network API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Create tables if not present
  3. Expose Prometheus /metrics endpoint
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from app.config import settings
from app.database import init_db
from app.errors import SocialNetworkError
from app.telemetry import DOMAIN_ERRORS_TOTAL, setup_tracing, instrument_app
from app.routers import auth, connections, feed, posts, users

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Social Network API (env=%s)", settings.environment)
    await init_db()
    logger.info("Database ready. API ready.")
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title="Social Network API",
    description=(
        "Professional networking: profiles, posts, likes, comments and "
        "connection requests."
    ),
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(SocialNetworkError)
async def social_network_error_handler(request: Request, exc: SocialNetworkError):
    DOMAIN_ERRORS_TOTAL.labels(code=exc.code).inc()
    logger.warning(
        "%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
        headers=headers,
    )


# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(posts.router, prefix="/posts", tags=["Posts"])
app.include_router(feed.router, prefix="/feed", tags=["Feed"])
app.include_router(connections.router, prefix="/connections", tags=["Connections"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
