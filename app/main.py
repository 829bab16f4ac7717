"""
Pool Stats Exporter - Main Application Entry Point
"""
import os
import sys
import logging
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

# Setup logging FIRST
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

from core.config import load_settings
from core.exporter import build_exporter, set_exporter
from api import health, metrics


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the exporter from config and run its pollers for the app lifetime"""
    settings = load_settings()
    logging.getLogger().setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
    logger.info(f"🚀 Starting Pool Stats Exporter on {settings.WEB_HOST}:{settings.WEB_PORT}")

    exporter = build_exporter(settings)
    set_exporter(exporter)
    exporter.start()
    try:
        yield
    finally:
        logger.info("🛑 Shutting down Pool Stats Exporter")
        await exporter.stop()
        set_exporter(None)


app = FastAPI(
    title="Pool Stats Exporter",
    description="Prometheus exporter for mining pool account statistics",
    version=health.VERSION,
    lifespan=lifespan,
)


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response


app.add_middleware(RequestIdMiddleware)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", "unknown")
    status_code = 500
    detail = "Internal server error"
    if isinstance(exc, HTTPException):
        status_code = exc.status_code
        detail = exc.detail

    if status_code >= 500:
        logger.exception(
            "Unhandled exception",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": str(request.url.path)
            }
        )

    return JSONResponse(
        status_code=status_code,
        content={
            "detail": detail,
            "request_id": request_id
        }
    )


app.include_router(metrics.router, tags=["metrics"])
app.include_router(health.router, tags=["health"])


if __name__ == "__main__":
    import uvicorn
    settings = load_settings()
    uvicorn.run(
        "main:app",
        host=settings.WEB_HOST,
        port=settings.WEB_PORT,
        reload=False
    )
