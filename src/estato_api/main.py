"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from estato_api.api.errors import register_exception_handlers
from estato_api.api.otp_routes import router as otp_router
from estato_api.config import settings
from estato_api.otp.service import build_otp_service
from estato_api.otp.sweeper import ExpirySweeper

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    logger.info("Starting %s …", settings.app_name)
    service = build_otp_service(settings)
    app.state.otp_service = service

    sweeper = None
    if settings.otp_sweep_interval_seconds > 0:
        sweeper = ExpirySweeper(service.store, settings.otp_sweep_interval_seconds)
        sweeper.start()
    app.state.otp_sweeper = sweeper
    yield
    if sweeper is not None:
        await sweeper.stop()
    logger.info("Shutting down %s …", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Estato property marketplace API — phone and email verification",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(otp_router)


@app.get("/health")
async def health_check():
    """Simple liveness probe."""
    return {
        "success": True,
        "message": f"{settings.app_name} is running",
        "timestamp": datetime.now(UTC).isoformat(),
    }


def run() -> None:
    """Serve the app with uvicorn (``estato-api`` console script)."""
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    run()
