"""FastAPI application for the bug tracker."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.middleware.base import BaseHTTPMiddleware

from server.config import ServerConfig
from server.database import create_tables
from server.routers import router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan with proper startup and shutdown."""
    print("🚀 Application startup")
    create_tables()
    print("✅ Application startup complete!")
    yield
    print("🔄 Application shutting down...")


# Request timing middleware
class ProcessTimeMiddleware(BaseHTTPMiddleware):
    """Add process time header to responses for monitoring."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response


# Error handling middleware
class DatabaseErrorMiddleware(BaseHTTPMiddleware):
    """Turn database outages (locked SQLite file, lost connection, exhausted pool) into a 503."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except (OperationalError, DisconnectionError, PoolTimeoutError) as e:
            logger.warning("Database unavailable for %s %s: %s", request.method, request.url.path, e)
            return JSONResponse(
                status_code=503,
                content={
                    "detail": "Service temporarily unavailable due to high load. Please try again in a moment.",
                    "error_type": "database_connection_error",
                },
            )


app = FastAPI(
    title="Bug Tracker API",
    description="Projects, bugs and CI test-failure ingestion",
    version="0.1.0",
    lifespan=lifespan,
)

# Add middleware in order (last added is first executed)
app.add_middleware(DatabaseErrorMiddleware)
app.add_middleware(ProcessTimeMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ServerConfig.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, tags=["api"])


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/health/detailed")
async def detailed_health():
    """Detailed health check: a database round trip plus the connection-pool status line."""
    from sqlalchemy import text

    from server.database import engine

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except (OperationalError, DisconnectionError, PoolTimeoutError) as e:
        logger.warning("Detailed health check could not reach the database: %s", e)
        return {"status": "unhealthy", "database": "disconnected", "error": str(e), "timestamp": time.time()}

    return {
        "status": "healthy",
        "database": "connected",
        "database_backend": engine.dialect.name,
        "connection_pool": engine.pool.status(),
        "timestamp": time.time(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.app:app", **ServerConfig.get_development_config())
