"""FastAPI application entry point for the LabLink API."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lablink.app.config import get_settings
from lablink.app.routes.labs import router as labs_router
from lablink.app.routes.orders import router as orders_router
from lablink.domain.schemas import HealthResponse
from lablink.infra.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database on startup."""
    await init_db()
    logger.info("LabLink API started")
    yield


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="LabLink API",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware; debug mode allows all origins
_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(labs_router)
app.include_router(orders_router)


@app.get("/health", tags=["health"], response_model=HealthResponse)
async def health_check():
    """Return service health status."""
    return {"status": "ok", "service": "lablink"}


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "lablink.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
